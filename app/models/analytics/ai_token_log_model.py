# Fichier: backend/app/models/analytics/ai_token_log_model.py
from sqlalchemy import Integer, String, DateTime, Float, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base_class import Base
from datetime import datetime


class AITokenLog(Base):
    __tablename__ = "ai_token_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    feature: Mapped[str] = mapped_column(String(100))  # ex: 'tutor_chat', 'module_content'
    model_name: Mapped[str] = mapped_column(String(100))

    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0)

    cost_usd: Mapped[float] = mapped_column(Float, default=0.0)
