"""Persistence helpers for the tutor chat log."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.chat.conversation_model import ConversationRole, ConversationTurn


def next_session_id(db: Session, user_id: int) -> int:
    current = (
        db.query(func.max(ConversationTurn.session_id))
        .filter(ConversationTurn.user_id == user_id)
        .scalar()
    )
    return (current or 0) + 1


def add_turn(
    db: Session,
    *,
    user_id: int,
    session_id: int,
    role: ConversationRole,
    message: str,
    context: Optional[dict[str, Any]] = None,
) -> ConversationTurn:
    turn = ConversationTurn(user_id=user_id, session_id=session_id, role=role, message=message, context=context)
    db.add(turn)
    db.commit()
    db.refresh(turn)
    return turn


def session_turns(db: Session, user_id: int, session_id: int, limit: Optional[int] = None) -> list[ConversationTurn]:
    """Turns of one session in chronological order; ``limit`` keeps the latest ones."""

    query = db.query(ConversationTurn).filter(
        ConversationTurn.user_id == user_id, ConversationTurn.session_id == session_id
    )
    if limit is None:
        return query.order_by(ConversationTurn.id.asc()).all()
    latest = query.order_by(ConversationTurn.id.desc()).limit(limit).all()
    return list(reversed(latest))


def recent_turns(db: Session, user_id: int, limit: int = 50) -> list[ConversationTurn]:
    latest = (
        db.query(ConversationTurn)
        .filter(ConversationTurn.user_id == user_id)
        .order_by(ConversationTurn.id.desc())
        .limit(limit)
        .all()
    )
    return list(reversed(latest))


def list_sessions(db: Session, user_id: int, limit: int = 50) -> list[dict[str, Any]]:
    """One summary per session, most recently active first."""

    rows = (
        db.query(
            ConversationTurn.session_id,
            func.min(ConversationTurn.created_at),
            func.max(ConversationTurn.created_at),
            func.count(ConversationTurn.id),
            func.max(ConversationTurn.id),
        )
        .filter(ConversationTurn.user_id == user_id)
        .group_by(ConversationTurn.session_id)
        .order_by(func.max(ConversationTurn.id).desc())
        .limit(limit)
        .all()
    )

    sessions = []
    for session_id, first_at, last_at, count, _ in rows:
        first_user_turn = (
            db.query(ConversationTurn.message)
            .filter(
                ConversationTurn.user_id == user_id,
                ConversationTurn.session_id == session_id,
                ConversationTurn.role == ConversationRole.USER,
            )
            .order_by(ConversationTurn.id.asc())
            .first()
        )
        sessions.append(
            {
                "session_id": session_id,
                "first_message_at": first_at,
                "last_message_at": last_at,
                "message_count": count,
                "first_user_message": first_user_turn[0] if first_user_turn else None,
            }
        )
    return sessions


def delete_session(db: Session, user_id: int, session_id: int) -> int:
    deleted = (
        db.query(ConversationTurn)
        .filter(ConversationTurn.user_id == user_id, ConversationTurn.session_id == session_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
