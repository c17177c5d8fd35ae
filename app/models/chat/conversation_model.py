"""Append-only tutor chat log grouped by a per-user session number."""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum as EnumSQL, ForeignKey, Integer, JSON, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base


class ConversationRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    role: Mapped[ConversationRole] = mapped_column(
        EnumSQL(ConversationRole, name="conversation_role", values_callable=lambda obj: [e.value for e in obj]),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
