"""Queries over study plans, modules and learning sessions.

Helpers that belong to a multi-statement operation never commit; the
calling service owns the transaction.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.progress.learning_progress_model import QuizResult
from app.models.study.study_plan_model import (
    Difficulty,
    LearningModule,
    LearningSession,
    PlanStatus,
    StudyPlan,
)


def get_plan(db: Session, plan_id: int) -> Optional[StudyPlan]:
    return db.get(StudyPlan, plan_id)


def list_active_plans(db: Session, user_id: int) -> list[StudyPlan]:
    return (
        db.query(StudyPlan)
        .filter(StudyPlan.user_id == user_id, StudyPlan.status == PlanStatus.ACTIVE)
        .order_by(StudyPlan.created_at.desc(), StudyPlan.id.desc())
        .all()
    )


def get_modules(db: Session, plan_id: int) -> list[LearningModule]:
    return (
        db.query(LearningModule)
        .filter(LearningModule.plan_id == plan_id)
        .order_by(LearningModule.order.asc())
        .all()
    )


def get_module(db: Session, module_id: int) -> Optional[LearningModule]:
    return db.get(LearningModule, module_id)


def get_module_by_order(db: Session, plan_id: int, order: int) -> Optional[LearningModule]:
    return (
        db.query(LearningModule)
        .filter(LearningModule.plan_id == plan_id, LearningModule.order == order)
        .first()
    )


def first_module_without_content(db: Session, plan_id: int) -> Optional[LearningModule]:
    return (
        db.query(LearningModule)
        .filter(LearningModule.plan_id == plan_id, LearningModule.content == "")
        .order_by(LearningModule.order.asc())
        .first()
    )


def count_modules(db: Session, plan_id: int) -> int:
    return db.query(func.count(LearningModule.id)).filter(LearningModule.plan_id == plan_id).scalar() or 0


def count_completed_modules(db: Session, plan_id: int, user_id: int) -> int:
    """A module counts as completed once the user has any quiz result for it."""

    return (
        db.query(func.count(func.distinct(QuizResult.module_id)))
        .join(LearningModule, LearningModule.id == QuizResult.module_id)
        .filter(LearningModule.plan_id == plan_id, QuizResult.user_id == user_id)
        .scalar()
        or 0
    )


def apply_difficulty_after(db: Session, plan_id: int, after_order: int, difficulty: Difficulty) -> int:
    """Overwrite the difficulty of every module placed after ``after_order``."""

    return (
        db.query(LearningModule)
        .filter(LearningModule.plan_id == plan_id, LearningModule.order > after_order)
        .update({LearningModule.difficulty: difficulty}, synchronize_session="fetch")
    )


def delete_module_rows(db: Session, module: LearningModule) -> None:
    db.query(QuizResult).filter(QuizResult.module_id == module.id).delete(synchronize_session=False)
    db.delete(module)


def deactivate_plan_rows(db: Session, plan: StudyPlan) -> int:
    """Drop the plan's modules and quiz results, then flag the plan inactive."""

    module_ids = [row[0] for row in db.query(LearningModule.id).filter(LearningModule.plan_id == plan.id)]
    if module_ids:
        db.query(QuizResult).filter(QuizResult.module_id.in_(module_ids)).delete(synchronize_session=False)
        db.query(LearningModule).filter(LearningModule.id.in_(module_ids)).delete(synchronize_session=False)
    db.query(LearningSession).filter(
        LearningSession.plan_id == plan.id, LearningSession.completed.is_(False)
    ).update({LearningSession.completed: True}, synchronize_session=False)
    plan.status = PlanStatus.INACTIVE
    return len(module_ids)


def get_session(db: Session, session_id: int) -> Optional[LearningSession]:
    return db.get(LearningSession, session_id)


def get_active_session(db: Session, user_id: int) -> Optional[LearningSession]:
    return (
        db.query(LearningSession)
        .filter(LearningSession.user_id == user_id, LearningSession.completed.is_(False))
        .order_by(LearningSession.start_time.desc(), LearningSession.id.desc())
        .first()
    )
