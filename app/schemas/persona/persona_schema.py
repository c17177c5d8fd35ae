"""Schemas for the onboarding questionnaire and the learning persona."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.persona.learning_persona_model import LearningStyle


class OnboardingAnswer(BaseModel):
    question_id: str
    answer: Any = None


class OnboardingResponsesRequest(BaseModel):
    responses: List[OnboardingAnswer] = Field(min_length=1)


class LearningPersonaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    learning_style: LearningStyle
    focus_level: Optional[str] = None
    preferred_time: Optional[str] = None
    preferred_duration: int
    detail_level: Optional[str] = None
    motivation_type: Optional[str] = None
    learning_pace: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = Field(default=None, validation_alias="raw_analysis")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
