import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, NotFoundError
from app.crud import study_crud
from app.models.study.study_plan_model import LearningSession, PlanStatus
from app.models.user.user_model import User
from app.schemas.study.study_schema import LearningSessionOut

logger = logging.getLogger(__name__)


def _serialize(session: Optional[LearningSession]) -> Optional[Dict[str, Any]]:
    if session is None:
        return None
    return LearningSessionOut.model_validate(session).model_dump()


def start_session(db: Session, user: User, plan_id: int) -> Dict[str, Any]:
    """Resume the user's open session if there is one, otherwise open a new one."""
    plan = study_crud.get_plan(db, plan_id)
    if plan is None or plan.status != PlanStatus.ACTIVE:
        raise NotFoundError("Study plan not found")
    if plan.user_id != user.id:
        raise AuthorizationError("You do not have access to this study plan")

    active = study_crud.get_active_session(db, user.id)
    if active is not None:
        return {"message": "Resuming the current session", "session": _serialize(active), "resumed": True}

    session = LearningSession(user_id=user.id, plan_id=plan.id, start_time=datetime.now(timezone.utc))
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("Learning session %s started on plan %s", session.id, plan.id)
    return {"message": "Session started", "session": _serialize(session), "resumed": False}


def end_session(db: Session, user: User, session_id: int, duration_minutes: int, pomodoro_count: int) -> Dict[str, Any]:
    session = study_crud.get_session(db, session_id)
    if session is None:
        raise NotFoundError("Learning session not found")
    if session.user_id != user.id:
        raise AuthorizationError("You do not have access to this session")

    session.end_time = datetime.now(timezone.utc)
    session.duration_minutes = duration_minutes
    session.pomodoro_count = pomodoro_count
    session.completed = True
    db.commit()
    db.refresh(session)

    next_module = study_crud.first_module_without_content(db, session.plan_id)
    if next_module is None:
        modules = study_crud.get_modules(db, session.plan_id)
        next_module = modules[-1] if modules else None

    summary = f"You studied for {duration_minutes} minutes with {pomodoro_count} pomodoro(s)."
    if next_module is not None:
        summary += f" Next up: {next_module.title}."

    return {
        "message": "Session ended",
        "session": _serialize(session),
        "summary": summary,
        "next_module": next_module.title if next_module is not None else None,
    }


def active_session(db: Session, user: User) -> Dict[str, Any]:
    return {"session": _serialize(study_crud.get_active_session(db, user.id))}
