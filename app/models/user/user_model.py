from sqlalchemy import Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base_class import Base
from typing import List, Optional, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from ..persona.learning_persona_model import LearningPersona
    from ..study.study_plan_model import StudyPlan


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    phone_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # --- Verification secrets (delivery is simulated through the logs) ---
    email_verification_token: Mapped[Optional[str]] = mapped_column(String(128), index=True, nullable=True)
    email_verification_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    phone_verification_code: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    phone_verification_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    persona: Mapped[Optional["LearningPersona"]] = relationship(back_populates="user", uselist=False)
    study_plans: Mapped[List["StudyPlan"]] = relationship(back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
