import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.analytics.insight_model import InsightPriority
from app.models.progress.learning_progress_model import Mood


class ProgressCreate(BaseModel):
    plan_id: Optional[int] = None
    day: Optional[dt.date] = Field(default=None, validation_alias=AliasChoices("date", "day"))
    duration_minutes: int = Field(default=0, ge=0)
    topic: Optional[str] = None
    evaluation: Optional[Dict[str, Any]] = None
    focus_score: int = Field(default=5, ge=1, le=10)
    mood: Mood = Mood.NEUTRAL
    notes: Optional[str] = None


class InsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    insight_type: str
    title: str
    description: str
    data: Optional[Dict[str, Any]] = None
    priority: InsightPriority
    is_read: bool
    created_at: Optional[dt.datetime] = None


class QuizResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    module_id: int
    score: int
    total_questions: int
    answers: List[Any] = Field(default_factory=list)
    time_taken: int
    created_at: Optional[dt.datetime] = None
