"""Study plans, their modules and the sessions spent on them."""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as EnumSQL,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class PlanStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ModuleType(str, enum.Enum):
    INTRO = "intro"
    CORE = "core"
    SUMMARY = "summary"


def _values(enum_cls):
    return [member.value for member in enum_cls]


class StudyPlan(Base):
    __tablename__ = "study_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    topic: Mapped[str] = mapped_column(String(255), nullable=False)
    schedule: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tips: Mapped[list | None] = mapped_column(JSON, nullable=True)
    total_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    difficulty: Mapped[Difficulty] = mapped_column(
        EnumSQL(Difficulty, name="difficulty_level", values_callable=_values),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    target_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[PlanStatus] = mapped_column(
        EnumSQL(PlanStatus, name="plan_status", values_callable=_values),
        nullable=False,
        default=PlanStatus.ACTIVE,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="study_plans")
    modules: Mapped[List["LearningModule"]] = relationship(
        back_populates="plan",
        order_by="LearningModule.order",
    )


class LearningModule(Base):
    """A unit of a plan; ``content`` and ``quiz_data`` are filled on first access."""

    __tablename__ = "learning_modules"
    __table_args__ = (UniqueConstraint("plan_id", "module_order", name="uq_learning_module_plan_order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    plan_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order: Mapped[int] = mapped_column("module_order", Integer, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=25)
    difficulty: Mapped[Difficulty] = mapped_column(
        EnumSQL(Difficulty, name="difficulty_level", values_callable=_values),
        nullable=False,
        default=Difficulty.MEDIUM,
    )
    module_type: Mapped[ModuleType] = mapped_column(
        EnumSQL(ModuleType, name="module_type", values_callable=_values),
        nullable=False,
        default=ModuleType.CORE,
    )
    quiz_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    plan = relationship("StudyPlan", back_populates="modules")

    @property
    def has_content(self) -> bool:
        return bool((self.content or "").strip())


class LearningSession(Base):
    """A focused study session; at most one incomplete session per user by convention."""

    __tablename__ = "learning_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id: Mapped[int] = mapped_column(Integer, ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pomodoro_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    plan = relationship("StudyPlan")
