import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.core import ai_service
from app.core.exceptions import NotFoundError, ValidationError
from app.crud import persona_crud, progress_crud
from app.models.persona.learning_persona_model import LearningPersona, LearningStyle
from app.models.user.user_model import User
from app.services.study_plan_service import parse_duration_minutes

logger = logging.getLogger(__name__)

DEFAULT_SESSION_MINUTES = 25

_TEXT_FIELDS = ("focus_level", "preferred_time", "detail_level", "motivation_type", "learning_pace")

_STYLE_ALIASES = {
    "visual": LearningStyle.VISUAL,
    "verbal": LearningStyle.VERBAL,
    "auditory": LearningStyle.VERBAL,
    "auditori": LearningStyle.VERBAL,
    "kinesthetic": LearningStyle.KINESTHETIC,
    "kinestetik": LearningStyle.KINESTHETIC,
    "mixed": LearningStyle.MIXED,
    "campuran": LearningStyle.MIXED,
}


def normalize_learning_style(value: Any) -> LearningStyle:
    if isinstance(value, LearningStyle):
        return value
    if not isinstance(value, str):
        return LearningStyle.MIXED
    return _STYLE_ALIASES.get(value.strip().lower(), LearningStyle.MIXED)


def persona_fields(analysis: Dict[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Map an analyzer answer onto ``LearningPersona`` columns.

    With ``partial`` only the keys present in ``analysis`` are returned, which
    is what an adaptation needs; otherwise every column gets a value.
    """
    fields: Dict[str, Any] = {}

    if not partial or "learning_style" in analysis:
        fields["learning_style"] = normalize_learning_style(analysis.get("learning_style"))
    if not partial or "preferred_duration" in analysis:
        fields["preferred_duration"] = parse_duration_minutes(
            analysis.get("preferred_duration"), DEFAULT_SESSION_MINUTES
        )
    for key in _TEXT_FIELDS:
        if key in analysis and analysis[key] is not None:
            fields[key] = str(analysis[key])[:50]
        elif not partial:
            fields[key] = None
    return fields


def generate_persona(db: Session, user: User) -> LearningPersona:
    answers = persona_crud.get_onboarding_answers(db, user.id)
    if not answers:
        raise ValidationError("No onboarding responses found")

    analysis = ai_service.analyze_learning_style(db, user, answers)
    persona = persona_crud.upsert_persona(db, user, persona_fields(analysis), analysis)
    logger.info("Persona generated for user %s (%s)", user.id, persona.learning_style.value)
    return persona


def adapt_persona(db: Session, user: User) -> Dict[str, Any]:
    """Ask the model whether recent progress calls for persona changes and apply them."""
    persona = persona_crud.get_persona(db, user.id)
    if persona is None:
        raise NotFoundError("Learning persona not found")

    rows = [progress_crud.serialize_progress(r) for r in progress_crud.recent_progress(db, user.id)]
    suggestion = ai_service.suggest_persona_update(db, user, persona.as_prompt_context(), rows)

    changes = suggestion.get("suggested_changes")
    if not suggestion.get("needs_update") or not isinstance(changes, dict):
        return {"updated": False, "reason": suggestion.get("reason"), "changes": {}}

    applied = persona_fields(changes, partial=True)
    for key, value in applied.items():
        setattr(persona, key, value)
    db.commit()
    db.refresh(persona)

    logger.info("Persona of user %s adapted: %s", user.id, sorted(applied))
    return {
        "updated": bool(applied),
        "reason": suggestion.get("reason"),
        "changes": {k: getattr(v, "value", v) for k, v in applied.items()},
    }
