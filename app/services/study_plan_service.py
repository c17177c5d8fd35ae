"""Study plan orchestration: generation, lazy module content and cleanup.

The LLM answers durations and day counts as free text often enough that
every numeric field of a generated plan goes through the ``parse_*``
helpers below before it reaches the database.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import ai_service
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.crud import persona_crud, study_crud
from app.models.persona.learning_persona_model import LearningPersona
from app.models.study.study_plan_model import (
    Difficulty,
    LearningModule,
    ModuleType,
    PlanStatus,
    StudyPlan,
)
from app.models.user.user_model import User
from app.schemas.study.study_schema import CreatePlanFromMaterialRequest, LearningModuleOut, StudyPlanOut

logger = logging.getLogger(__name__)

DEFAULT_PLAN_MINUTES = 60
DEFAULT_MODULE_MINUTES = 25
DEFAULT_TARGET_DAYS = 7
DEFAULT_MATERIAL_QUESTIONS = 15
MIN_MATERIAL_QUESTIONS = 5
MAX_MATERIAL_QUESTIONS = 35

PERSONA_REQUIRED_MESSAGE = "Learning persona has not been created. Please complete onboarding first."

_HOURS_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*(?:jam|hours?|hrs?|h)(?![a-z])", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*(?:menit|minutes?|mins?|m)(?![a-z])", re.IGNORECASE)
_DAYS_RE = re.compile(r"(\d+)\s*(?:hari|days?)(?![a-z])", re.IGNORECASE)
_WEEKS_RE = re.compile(r"(\d+)\s*(?:minggu|weeks?)(?![a-z])", re.IGNORECASE)
_FIRST_INT_RE = re.compile(r"\d+")

_DIFFICULTY_ALIASES = {
    "easy": Difficulty.EASY,
    "mudah": Difficulty.EASY,
    "beginner": Difficulty.EASY,
    "pemula": Difficulty.EASY,
    "medium": Difficulty.MEDIUM,
    "sedang": Difficulty.MEDIUM,
    "intermediate": Difficulty.MEDIUM,
    "menengah": Difficulty.MEDIUM,
    "normal": Difficulty.MEDIUM,
    "hard": Difficulty.HARD,
    "sulit": Difficulty.HARD,
    "susah": Difficulty.HARD,
    "advanced": Difficulty.HARD,
    "lanjut": Difficulty.HARD,
}


def _positive_number(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    rounded = int(round(value))
    return rounded if rounded > 0 else None


def _first_integer(text: str) -> Optional[int]:
    match = _FIRST_INT_RE.search(text)
    if match and int(match.group()) > 0:
        return int(match.group())
    return None


def parse_duration_minutes(value: Any, default: int = DEFAULT_PLAN_MINUTES) -> int:
    """Normalize ``90``, ``"120 menit"`` or ``"3 jam 45 menit"`` to whole minutes."""

    number = _positive_number(value)
    if number is not None:
        return number
    if not isinstance(value, str):
        return default

    hours = sum(float(h.replace(",", ".")) for h in _HOURS_RE.findall(value))
    minutes = sum(int(m) for m in _MINUTES_RE.findall(value))
    total = int(round(hours * 60)) + minutes
    if total > 0:
        return total

    return _first_integer(value) or default


def parse_target_days(value: Any, default: int = DEFAULT_TARGET_DAYS) -> int:
    """Normalize ``10``, ``"7 hari"`` or ``"2 weeks"`` to a number of days."""

    number = _positive_number(value)
    if number is not None:
        return number
    if not isinstance(value, str):
        return default

    days = _DAYS_RE.search(value)
    if days and int(days.group(1)) > 0:
        return int(days.group(1))
    weeks = _WEEKS_RE.search(value)
    if weeks and int(weeks.group(1)) > 0:
        return int(weeks.group(1)) * 7

    return _first_integer(value) or default


def normalize_difficulty(value: Any, default: Difficulty = Difficulty.MEDIUM) -> Difficulty:
    if isinstance(value, Difficulty):
        return value
    if not isinstance(value, str):
        return default
    return _DIFFICULTY_ALIASES.get(value.strip().lower(), default)


def compute_target_date(days: int, today: Optional[date] = None) -> date:
    return (today or date.today()) + timedelta(days=days)


def module_type_for(index: int, count: int) -> ModuleType:
    if index == 0:
        return ModuleType.INTRO
    if index == count - 1:
        return ModuleType.SUMMARY
    return ModuleType.CORE


def clamp_question_count(value: Optional[int]) -> int:
    if value is None:
        return DEFAULT_MATERIAL_QUESTIONS
    return max(MIN_MATERIAL_QUESTIONS, min(MAX_MATERIAL_QUESTIONS, int(value)))


class StudyPlanService:
    """Plan and module operations on behalf of one user."""

    def __init__(self, db: Session, user: User):
        self.db = db
        self.user = user

    # --- helpers ---

    def _require_persona(self) -> LearningPersona:
        persona = persona_crud.get_persona(self.db, self.user.id)
        if persona is None:
            raise ValidationError(PERSONA_REQUIRED_MESSAGE)
        return persona

    def owned_plan(self, plan_id: int) -> StudyPlan:
        plan = study_crud.get_plan(self.db, plan_id)
        if plan is None or plan.status != PlanStatus.ACTIVE:
            raise NotFoundError("Study plan not found")
        if plan.user_id != self.user.id:
            raise AuthorizationError("You do not have access to this study plan")
        return plan

    def plan_progress(self, plan: StudyPlan) -> dict[str, Any]:
        total = study_crud.count_modules(self.db, plan.id)
        completed = study_crud.count_completed_modules(self.db, plan.id, self.user.id)
        percentage = round(completed / total * 100) if total else 0
        return {
            "total_modules": total,
            "completed_modules": completed,
            "progress_percentage": percentage,
            "is_completed": total > 0 and completed >= total,
        }

    def _persist_generated_plan(
        self,
        generated: dict[str, Any],
        *,
        subject: str,
        topic: str,
        requested_difficulty: Optional[str],
    ) -> StudyPlan:
        """Store the plan and one empty module per schedule entry in one transaction."""

        schedule = [entry for entry in generated.get("schedule") or [] if isinstance(entry, dict)]
        target_days = parse_target_days(generated.get("target_days"))
        difficulty = normalize_difficulty(generated.get("difficulty") or requested_difficulty)

        plan = StudyPlan(
            user_id=self.user.id,
            subject=subject,
            topic=topic,
            schedule=schedule,
            tips=generated.get("tips") if isinstance(generated.get("tips"), list) else None,
            total_duration_minutes=parse_duration_minutes(generated.get("total_duration"), DEFAULT_PLAN_MINUTES),
            difficulty=difficulty,
            target_date=compute_target_date(target_days),
            status=PlanStatus.ACTIVE,
        )

        try:
            self.db.add(plan)
            self.db.flush()
            for index, entry in enumerate(schedule):
                title = entry.get("topic") or entry.get("activity") or f"{topic} - part {index + 1}"
                self.db.add(
                    LearningModule(
                        plan_id=plan.id,
                        title=str(title)[:255],
                        content="",
                        order=index + 1,
                        duration_minutes=parse_duration_minutes(entry.get("duration"), DEFAULT_MODULE_MINUTES),
                        difficulty=difficulty,
                        module_type=module_type_for(index, len(schedule)),
                        quiz_data={},
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(plan)
        logger.info("Study plan %s created for user %s with %s modules", plan.id, self.user.id, len(schedule))
        return plan

    # --- creation ---

    def create_from_topic(self, subject: str, topic: str, difficulty: Optional[str] = None) -> dict[str, Any]:
        persona = self._require_persona()
        requested = normalize_difficulty(difficulty).value
        generated = ai_service.generate_study_plan(
            self.db, self.user, persona.as_prompt_context(), subject, topic, requested
        )
        plan = self._persist_generated_plan(generated, subject=subject, topic=topic, requested_difficulty=difficulty)
        return {"message": "Study plan created successfully", "plan": {**generated, "plan_id": plan.id}}

    def create_from_material(self, payload: CreatePlanFromMaterialRequest) -> dict[str, Any]:
        persona = self._require_persona()
        context = persona.as_prompt_context()
        topic = (payload.topic or "").strip() or payload.subject
        requested = normalize_difficulty(payload.difficulty).value

        generated = ai_service.generate_study_plan_from_material(
            self.db,
            self.user,
            context,
            payload.subject,
            topic,
            payload.material_text,
            requested,
            payload.preferences.model_dump(),
        )
        plan = self._persist_generated_plan(
            generated, subject=payload.subject, topic=topic, requested_difficulty=payload.difficulty
        )

        quiz = ai_service.generate_quiz_from_material(
            self.db,
            self.user,
            payload.material_text,
            topic,
            plan.difficulty.value,
            clamp_question_count(payload.question_count),
            context,
        )
        return {
            "message": "Study plan created from material",
            "plan": {**generated, "plan_id": plan.id},
            "quiz": quiz,
        }

    # --- lecture ---

    def list_plans(self) -> list[dict[str, Any]]:
        return [
            {**StudyPlanOut.model_validate(plan).model_dump(), "progress": self.plan_progress(plan)}
            for plan in study_crud.list_active_plans(self.db, self.user.id)
        ]

    def get_plan_detail(self, plan_id: int) -> dict[str, Any]:
        plan = self.owned_plan(plan_id)
        modules = study_crud.get_modules(self.db, plan.id)
        return {
            "plan": StudyPlanOut.model_validate(plan).model_dump(),
            "modules": [LearningModuleOut.model_validate(module).model_dump() for module in modules],
            "progress": self.plan_progress(plan),
        }

    # --- contenu des modules ---

    def get_module_content(self, plan_id: int, module_order: int, topic: str) -> dict[str, Any]:
        """Serve the stored lesson, generating and persisting it on first access."""

        plan = self.owned_plan(plan_id)
        module = study_crud.get_module_by_order(self.db, plan.id, module_order)
        if module is not None and module.has_content:
            return {"content": module.content, "quiz": module.quiz_data or {}, "cached": True}

        persona = self._require_persona()
        context = persona.as_prompt_context()
        module_type = ModuleType.INTRO if module_order == 1 else ModuleType.CORE
        difficulty = module.difficulty if module is not None else plan.difficulty

        content = ai_service.generate_module_content(self.db, self.user, context, topic, module_type.value)
        quiz = ai_service.generate_quiz(self.db, self.user, topic, difficulty.value, persona=context)

        try:
            if module is None:
                module = LearningModule(
                    plan_id=plan.id,
                    title=topic[:255],
                    order=module_order,
                    duration_minutes=DEFAULT_MODULE_MINUTES,
                    difficulty=difficulty,
                    module_type=module_type,
                )
                self.db.add(module)
            module.content = content
            module.quiz_data = quiz
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same (plan, order) row first.
            self.db.rollback()
            return self._store_in_existing_module(plan.id, module_order, content, quiz)
        except Exception:
            self.db.rollback()
            raise

        logger.info("Content generated for plan %s module %s", plan.id, module_order)
        return {"content": content, "quiz": quiz, "cached": False}

    def _store_in_existing_module(self, plan_id: int, module_order: int, content: str, quiz: dict) -> dict[str, Any]:
        module = study_crud.get_module_by_order(self.db, plan_id, module_order)
        if module is None:
            raise NotFoundError("Module not found")
        if module.has_content:
            return {"content": module.content, "quiz": module.quiz_data or {}, "cached": True}
        try:
            module.content = content
            module.quiz_data = quiz
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return {"content": content, "quiz": quiz, "cached": False}

    # --- dates ---

    def update_target_date(self, plan_id: int, target_days: Any = None) -> dict[str, Any]:
        plan = self.owned_plan(plan_id)
        days = parse_target_days(target_days)
        plan.target_date = compute_target_date(days)
        self.db.commit()
        return {"message": "Target date updated", "target_date": plan.target_date.isoformat(), "target_days": days}

    def fix_dates(self) -> dict[str, Any]:
        plans = study_crud.list_active_plans(self.db, self.user.id)
        updated = 0
        for plan in plans:
            days = len(plan.schedule or []) or DEFAULT_TARGET_DAYS
            new_date = compute_target_date(days)
            if plan.target_date != new_date:
                plan.target_date = new_date
                updated += 1
        self.db.commit()
        return {"message": "Target dates fixed", "total_plans": len(plans), "updated_count": updated}

    # --- suppression ---

    def delete_plan(self, plan_id: int) -> None:
        plan = self.owned_plan(plan_id)
        try:
            removed = study_crud.deactivate_plan_rows(self.db, plan)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Study plan %s deactivated (%s modules removed)", plan_id, removed)

    def delete_module(self, module_id: int) -> None:
        module = study_crud.get_module(self.db, module_id)
        if module is None:
            raise NotFoundError("Module not found")
        self.owned_plan(module.plan_id)
        try:
            study_crud.delete_module_rows(self.db, module)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
