import json
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.core import ai_service
from app.core.exceptions import ValidationError
from app.crud import insight_crud, persona_crud, progress_crud
from app.models.persona.learning_persona_model import LearningPersona
from app.models.user.user_model import User
from app.schemas.analytics.analytics_schema import InsightOut

logger = logging.getLogger(__name__)

MIN_PROGRESS_RECORDS = 3


def _require_persona(db: Session, user: User) -> LearningPersona:
    persona = persona_crud.get_persona(db, user.id)
    if persona is None:
        raise ValidationError("Learning persona has not been created. Please complete onboarding first.")
    return persona


def generate_insights(db: Session, user: User) -> Dict[str, Any]:
    persona = _require_persona(db, user)
    records = progress_crud.recent_progress(db, user.id)
    if len(records) < MIN_PROGRESS_RECORDS:
        raise ValidationError(
            f"At least {MIN_PROGRESS_RECORDS} progress records are needed to generate insights"
        )

    rows = [progress_crud.serialize_progress(record) for record in records]
    analysis = ai_service.analyze_progress(db, user, persona.as_prompt_context(), rows)
    stored = insight_crud.create_insights(db, user.id, analysis["insights"])
    logger.info("%s insights stored for user %s", len(stored), user.id)

    return {
        "summary": analysis.get("summary"),
        "insights": [InsightOut.model_validate(insight).model_dump() for insight in stored],
        "motivational_message": analysis.get("motivational_message"),
    }


def motivation_message(db: Session, user: User) -> Dict[str, Any]:
    persona = _require_persona(db, user)
    stats = progress_crud.progress_stats(db, user.id)
    message = ai_service.generate_motivation(
        db, user, persona.as_prompt_context(), json.dumps(stats, ensure_ascii=False)
    )
    return {"message": message, "stats": stats}

