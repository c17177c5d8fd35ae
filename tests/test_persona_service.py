import pytest

from app.core import ai_service
from app.core.exceptions import NotFoundError, ValidationError
from app.crud import persona_crud
from app.models.persona.learning_persona_model import LearningStyle
from app.services import persona_service
from tests.utils import add_progress_rows, create_persona, create_user


def test_persona_fields_normalizes_values():
    fields = persona_service.persona_fields(
        {"learning_style": "Kinestetik", "preferred_duration": "45 menit", "focus_level": "high", "analysis": "..."}
    )

    assert fields["learning_style"] is LearningStyle.KINESTHETIC
    assert fields["preferred_duration"] == 45
    assert fields["focus_level"] == "high"
    assert fields["learning_pace"] is None


def test_partial_fields_only_touch_present_keys():
    assert persona_service.persona_fields({"learning_pace": "fast"}, partial=True) == {"learning_pace": "fast"}


def test_unknown_style_defaults_to_mixed():
    assert persona_service.normalize_learning_style("telepathic") is LearningStyle.MIXED
    assert persona_service.normalize_learning_style(None) is LearningStyle.MIXED


def test_onboarding_answers_keep_latest_and_decode_json(db_session):
    user = create_user(db_session)
    persona_crud.save_onboarding_responses(db_session, user.id, [("q1", "pagi"), ("q2", ["video", "diagram"])])
    persona_crud.save_onboarding_responses(db_session, user.id, [("q1", "malam")])

    assert persona_crud.get_onboarding_answers(db_session, user.id) == {"q1": "malam", "q2": ["video", "diagram"]}


def test_generate_persona_requires_answers(db_session):
    user = create_user(db_session)
    with pytest.raises(ValidationError):
        persona_service.generate_persona(db_session, user)


def test_generate_persona_marks_onboarding_completed(db_session, monkeypatch):
    user = create_user(db_session)
    persona_crud.save_onboarding_responses(db_session, user.id, [("style", "I like diagrams")])
    analysis = {"learning_style": "visual", "preferred_duration": 30, "analysis": "Visual learner"}
    monkeypatch.setattr(ai_service, "analyze_learning_style", lambda db, usr, answers: dict(analysis))

    persona = persona_service.generate_persona(db_session, user)

    assert persona.learning_style is LearningStyle.VISUAL
    assert persona.preferred_duration == 30
    assert persona.raw_analysis["analysis"] == "Visual learner"
    assert user.onboarding_completed is True

    # A second run replaces the persona instead of adding one.
    analysis["learning_style"] = "verbal"
    again = persona_service.generate_persona(db_session, user)
    assert again.id == persona.id
    assert again.learning_style is LearningStyle.VERBAL


def test_adapt_persona_applies_suggested_changes(db_session, monkeypatch):
    user = create_user(db_session)
    create_persona(db_session, user, preferred_duration=25)
    add_progress_rows(db_session, user, 3)
    seen = {}

    def fake_suggest(db, usr, persona, rows):
        seen["rows"] = rows
        return {"needs_update": True, "suggested_changes": {"preferred_duration": "50 menit"}, "reason": "Long focus"}

    monkeypatch.setattr(ai_service, "suggest_persona_update", fake_suggest)

    result = persona_service.adapt_persona(db_session, user)

    assert result == {"updated": True, "reason": "Long focus", "changes": {"preferred_duration": 50}}
    assert len(seen["rows"]) == 3
    assert persona_crud.get_persona(db_session, user.id).preferred_duration == 50


def test_adapt_persona_without_update(db_session, monkeypatch):
    user = create_user(db_session)
    create_persona(db_session, user)
    monkeypatch.setattr(ai_service, "suggest_persona_update", lambda *args: {"needs_update": False})

    assert persona_service.adapt_persona(db_session, user)["updated"] is False


def test_adapt_persona_requires_persona(db_session):
    user = create_user(db_session)
    with pytest.raises(NotFoundError):
        persona_service.adapt_persona(db_session, user)
