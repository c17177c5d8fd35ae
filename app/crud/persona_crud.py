"""Persistence helpers for onboarding answers and learning personas."""

from __future__ import annotations

import json
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from app.models.persona.learning_persona_model import LearningPersona, OnboardingResponse
from app.models.user.user_model import User


def save_onboarding_responses(db: Session, user_id: int, responses: Iterable[tuple[str, Any]]) -> int:
    """Store questionnaire answers; structured answers are JSON encoded."""

    count = 0
    for question_id, answer in responses:
        if isinstance(answer, (dict, list)):
            stored = json.dumps(answer, ensure_ascii=False)
        else:
            stored = "" if answer is None else str(answer)
        db.add(OnboardingResponse(user_id=user_id, question_id=str(question_id), answer=stored))
        count += 1
    db.commit()
    return count


def _decode_answer(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def get_onboarding_answers(db: Session, user_id: int) -> dict[str, Any]:
    """Latest answer per question, JSON decoded when possible."""

    rows = (
        db.query(OnboardingResponse)
        .filter(OnboardingResponse.user_id == user_id)
        .order_by(OnboardingResponse.id.asc())
        .all()
    )
    return {row.question_id: _decode_answer(row.answer) for row in rows}


def get_persona(db: Session, user_id: int) -> Optional[LearningPersona]:
    return db.query(LearningPersona).filter(LearningPersona.user_id == user_id).first()


def upsert_persona(db: Session, user: User, fields: dict[str, Any], raw_analysis: dict[str, Any]) -> LearningPersona:
    """Create or replace the persona and flag onboarding as completed, in one commit."""

    persona = get_persona(db, user.id)
    if persona is None:
        persona = LearningPersona(user_id=user.id)
        db.add(persona)

    for key, value in fields.items():
        setattr(persona, key, value)
    persona.raw_analysis = raw_analysis
    user.onboarding_completed = True

    db.commit()
    db.refresh(persona)
    return persona
