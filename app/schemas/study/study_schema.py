"""Request and response schemas for study plans, modules, sessions and quizzes."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.study.study_plan_model import Difficulty, ModuleType, PlanStatus


class CreatePlanRequest(BaseModel):
    subject: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    difficulty: Optional[str] = None


class MaterialPreferences(BaseModel):
    learning_goal: Optional[str] = None
    preferred_format: Optional[str] = None
    detail_level: Optional[str] = None
    focus_keywords: Optional[str] = None


class CreatePlanFromMaterialRequest(BaseModel):
    subject: str = Field(min_length=1)
    material_text: str = Field(min_length=1)
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    question_count: Optional[int] = None
    preferences: MaterialPreferences = Field(default_factory=MaterialPreferences)


class GenerateContentRequest(BaseModel):
    plan_id: int
    module_order: int = Field(ge=1)
    topic: str = Field(min_length=1)


class TargetDateRequest(BaseModel):
    target_days: Optional[Any] = None


class StartSessionRequest(BaseModel):
    plan_id: int


class EndSessionRequest(BaseModel):
    duration_minutes: int = Field(default=0, ge=0)
    pomodoro_count: int = Field(default=0, ge=0)


class QuizAnswer(BaseModel):
    model_config = ConfigDict(extra="allow")

    question: Optional[str] = None
    user_answer: Optional[Any] = None
    correct_answer: Optional[Any] = None
    is_correct: Optional[bool] = None


class QuizSubmission(BaseModel):
    module_id: int
    score: int = Field(ge=0)
    total_questions: int = Field(gt=0)
    answers: List[QuizAnswer] = Field(default_factory=list)
    time_taken: int = Field(default=0, ge=0)


class PlanProgress(BaseModel):
    total_modules: int
    completed_modules: int
    progress_percentage: int
    is_completed: bool


class LearningModuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    title: str
    content: str
    order: int
    duration_minutes: int
    difficulty: Difficulty
    module_type: ModuleType
    quiz_data: Dict[str, Any] = Field(default_factory=dict)


class StudyPlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subject: str
    topic: str
    schedule: List[Dict[str, Any]] = Field(default_factory=list)
    tips: Optional[List[Any]] = None
    total_duration_minutes: int
    difficulty: Difficulty
    target_date: Optional[date] = None
    status: PlanStatus
    created_at: Optional[datetime] = None


class LearningSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: int
    pomodoro_count: int
    completed: bool
