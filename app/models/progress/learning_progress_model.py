"""Progress records and quiz results, both append-only."""

from __future__ import annotations

import enum
import datetime as dt
from typing import Optional

from sqlalchemy import Date, DateTime, Enum as EnumSQL, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base


class Mood(str, enum.Enum):
    HAPPY = "happy"
    NEUTRAL = "neutral"
    TIRED = "tired"
    FRUSTRATED = "frustrated"
    MOTIVATED = "motivated"


class LearningProgress(Base):
    __tablename__ = "learning_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, default=dt.date.today)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    topic: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown Topic")
    evaluation: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    focus_score: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    mood: Mapped[Mood] = mapped_column(
        EnumSQL(Mood, name="learning_mood", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=Mood.NEUTRAL,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class QuizResult(Base):
    __tablename__ = "quiz_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("learning_modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    answers: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    time_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def percentage(self) -> float:
        if not self.total_questions:
            return 0.0
        return self.score / self.total_questions * 100
