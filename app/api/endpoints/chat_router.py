from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_db
from app.crud import conversation_crud
from app.models.user.user_model import User
from app.schemas.chat.chat_schema import ConversationTurnOut, TutorRequest
from app.services import tutor_service

router = APIRouter()


@router.post("/tutor")
def chat_with_tutor(
    payload: TutorRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    time_meta = payload.user_time_meta.model_dump(exclude_none=True) if payload.user_time_meta else None
    return tutor_service.send_tutor_message(
        db, current_user, payload.message, session_id=payload.session_id, user_time_meta=time_meta
    )


@router.get("/history")
def read_history(
    session_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if session_id is not None:
        turns = conversation_crud.session_turns(db, current_user.id, session_id)
    else:
        turns = conversation_crud.recent_turns(db, current_user.id)
    return {"history": [ConversationTurnOut.model_validate(turn) for turn in turns]}


@router.get("/sessions")
def list_chat_sessions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"sessions": conversation_crud.list_sessions(db, current_user.id)}


@router.delete("/sessions/{session_id}")
def delete_chat_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    deleted = conversation_crud.delete_session(db, current_user.id, session_id)
    return {"message": "Chat session deleted", "deleted_messages": deleted}
