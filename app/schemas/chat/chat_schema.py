from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.chat.conversation_model import ConversationRole


class UserTimeMeta(BaseModel):
    local_time_iso: Optional[str] = None
    timezone: Optional[str] = None
    offset_minutes: Optional[int] = None


class TutorRequest(BaseModel):
    message: str = Field(min_length=1)
    session_id: Optional[int] = None
    user_time_meta: Optional[UserTimeMeta] = Field(
        default=None, validation_alias=AliasChoices("user_time_meta", "userTimeMeta")
    )


class ConversationTurnOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    role: ConversationRole
    message: str
    context: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
