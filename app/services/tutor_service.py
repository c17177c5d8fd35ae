import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core import ai_service
from app.core.exceptions import ValidationError
from app.crud import conversation_crud, persona_crud
from app.models.chat.conversation_model import ConversationRole
from app.models.user.user_model import User

logger = logging.getLogger(__name__)

HISTORY_TURNS = ai_service.TUTOR_HISTORY_TURNS


def send_tutor_message(
    db: Session,
    user: User,
    message: str,
    session_id: Optional[int] = None,
    user_time_meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Answer one tutor message and append both turns to the session log."""
    persona = persona_crud.get_persona(db, user.id)
    if persona is None:
        raise ValidationError("Learning persona has not been created. Please complete onboarding first.")

    if session_id is None:
        session_id = conversation_crud.next_session_id(db, user.id)

    history = [
        {"role": turn.role.value, "message": turn.message}
        for turn in conversation_crud.session_turns(db, user.id, session_id, limit=HISTORY_TURNS)
    ]

    reply = ai_service.chat_with_tutor(
        db, user, message, persona.as_prompt_context(), history=history, user_time_meta=user_time_meta
    )

    conversation_crud.add_turn(
        db,
        user_id=user.id,
        session_id=session_id,
        role=ConversationRole.USER,
        message=message,
        context={"user_time_meta": user_time_meta} if user_time_meta else None,
    )
    conversation_crud.add_turn(
        db, user_id=user.id, session_id=session_id, role=ConversationRole.ASSISTANT, message=reply
    )
    logger.info("Tutor reply stored for user %s in session %s", user.id, session_id)
    return {"message": reply, "session_id": session_id}
