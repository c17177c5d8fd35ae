"""Learning persona inferred from the onboarding questionnaire."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum as EnumSQL, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base


class LearningStyle(str, enum.Enum):
    VISUAL = "visual"
    VERBAL = "verbal"
    KINESTHETIC = "kinesthetic"
    MIXED = "mixed"


class LearningPersona(Base):
    __tablename__ = "learning_personas"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True
    )
    learning_style: Mapped[LearningStyle] = mapped_column(
        EnumSQL(LearningStyle, name="learning_style", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
        default=LearningStyle.MIXED,
    )
    focus_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    preferred_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    preferred_duration: Mapped[int] = mapped_column(Integer, default=25)
    detail_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    motivation_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    learning_pace: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    raw_analysis: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user = relationship("User", back_populates="persona")

    def as_prompt_context(self) -> dict:
        """Flatten the persona into the variables used by the prompt templates."""
        return {
            "learning_style": self.learning_style.value if self.learning_style else "mixed",
            "focus_level": self.focus_level or "medium",
            "preferred_time": self.preferred_time or "flexible",
            "preferred_duration": self.preferred_duration or 25,
            "detail_level": self.detail_level or "medium",
            "motivation_type": self.motivation_type or "intrinsic",
            "learning_pace": self.learning_pace or "moderate",
        }


class OnboardingResponse(Base):
    """One answer of the onboarding questionnaire."""

    __tablename__ = "onboarding_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[str] = mapped_column(String(100), nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
