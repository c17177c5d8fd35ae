"""Utility helpers for test factories."""

from __future__ import annotations

from datetime import date, timedelta

from app.core.security import create_access_token, get_password_hash
from app.models.persona.learning_persona_model import LearningPersona, LearningStyle
from app.models.progress.learning_progress_model import LearningProgress
from app.models.study.study_plan_model import (
    Difficulty,
    LearningModule,
    ModuleType,
    PlanStatus,
    StudyPlan,
)
from app.models.user.user_model import User


def create_user(db, password: str | None = None, **kwargs) -> User:
    defaults = {
        "name": "Budi",
        "email": "budi@example.com",
        "hashed_password": get_password_hash(password) if password else "x",
        "is_active": True,
    }
    defaults.update(kwargs)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_persona(db, user: User, **kwargs) -> LearningPersona:
    defaults = {
        "user_id": user.id,
        "learning_style": LearningStyle.VISUAL,
        "focus_level": "medium",
        "preferred_time": "morning",
        "preferred_duration": 25,
        "detail_level": "medium",
        "motivation_type": "intrinsic",
        "learning_pace": "moderate",
    }
    defaults.update(kwargs)
    persona = LearningPersona(**defaults)
    db.add(persona)
    user.onboarding_completed = True
    db.commit()
    db.refresh(persona)
    return persona


def create_plan(db, user: User, *, module_count: int = 3, **kwargs) -> StudyPlan:
    defaults = {
        "user_id": user.id,
        "subject": "Biologi",
        "topic": "Fotosintesis",
        "schedule": [{"day": i + 1, "topic": f"Part {i + 1}", "duration": "30 menit"} for i in range(module_count)],
        "total_duration_minutes": 90,
        "difficulty": Difficulty.MEDIUM,
        "target_date": date.today() + timedelta(days=7),
        "status": PlanStatus.ACTIVE,
    }
    defaults.update(kwargs)
    plan = StudyPlan(**defaults)
    db.add(plan)
    db.flush()
    for index in range(module_count):
        db.add(
            LearningModule(
                plan_id=plan.id,
                title=f"Part {index + 1}",
                content="",
                order=index + 1,
                duration_minutes=30,
                difficulty=plan.difficulty,
                module_type=ModuleType.INTRO if index == 0 else ModuleType.CORE,
                quiz_data={},
            )
        )
    db.commit()
    db.refresh(plan)
    return plan


def add_progress_rows(db, user: User, count: int) -> None:
    for index in range(count):
        db.add(
            LearningProgress(
                user_id=user.id,
                date=date.today() - timedelta(days=index),
                duration_minutes=30,
                topic=f"Session {index + 1}",
                focus_score=6,
            )
        )
    db.commit()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}
