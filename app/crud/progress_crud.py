"""Progress records and their rolling aggregates."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.progress.learning_progress_model import LearningProgress, Mood


def add_progress(
    db: Session,
    *,
    user_id: int,
    plan_id: Optional[int] = None,
    day: Optional[date] = None,
    duration_minutes: int = 0,
    topic: str = "Unknown Topic",
    evaluation: Optional[dict[str, Any]] = None,
    focus_score: int = 5,
    mood: Mood = Mood.NEUTRAL,
    notes: Optional[str] = None,
    commit: bool = True,
) -> LearningProgress:
    record = LearningProgress(
        user_id=user_id,
        plan_id=plan_id,
        date=day or date.today(),
        duration_minutes=duration_minutes,
        topic=topic,
        evaluation=evaluation,
        focus_score=focus_score,
        mood=mood,
        notes=notes,
    )
    db.add(record)
    if commit:
        db.commit()
        db.refresh(record)
    else:
        db.flush()
    return record


def recent_progress(db: Session, user_id: int, limit: int = 30) -> list[LearningProgress]:
    return (
        db.query(LearningProgress)
        .filter(LearningProgress.user_id == user_id)
        .order_by(LearningProgress.date.desc(), LearningProgress.id.desc())
        .limit(limit)
        .all()
    )


def progress_stats(db: Session, user_id: int, days: int = 30) -> dict[str, Any]:
    since = date.today() - timedelta(days=days)
    total_sessions, total_minutes, avg_focus = (
        db.query(
            func.count(LearningProgress.id),
            func.coalesce(func.sum(LearningProgress.duration_minutes), 0),
            func.avg(LearningProgress.focus_score),
        )
        .filter(LearningProgress.user_id == user_id, LearningProgress.date >= since)
        .one()
    )
    return {
        "total_sessions": int(total_sessions or 0),
        "total_minutes": int(total_minutes or 0),
        "avg_focus": round(float(avg_focus), 1) if avg_focus is not None else 0.0,
    }


def serialize_progress(record: LearningProgress) -> dict[str, Any]:
    return {
        "id": record.id,
        "plan_id": record.plan_id,
        "date": record.date.isoformat() if record.date else None,
        "duration_minutes": record.duration_minutes,
        "topic": record.topic,
        "evaluation": record.evaluation,
        "focus_score": record.focus_score,
        "mood": record.mood.value if record.mood else None,
        "notes": record.notes,
    }
