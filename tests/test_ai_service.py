from types import SimpleNamespace

import pytest

from app.core import ai_service, prompt_manager
from app.core.exceptions import LLMResponseError, MaterialEmptyError, QuotaExceededError, StudyFlowError
from app.models.analytics.ai_token_log_model import AITokenLog
from tests.utils import create_user


class FakeAPIError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))],
            usage=SimpleNamespace(prompt_tokens=1000, completion_tokens=500),
        )


@pytest.fixture()
def fake_llm(monkeypatch):
    def install(*outcomes):
        completions = FakeCompletions(outcomes)
        monkeypatch.setattr(ai_service, "openai_client", SimpleNamespace(chat=SimpleNamespace(completions=completions)))
        return completions

    return install


def test_call_ai_and_log_records_usage(db_session, fake_llm):
    user = create_user(db_session)
    completions = fake_llm("Halo!")

    content = ai_service.call_ai_and_log(
        db_session, user, system_prompt="sys", user_prompt="hi", feature_name="tutor_chat"
    )

    assert content == "Halo!"
    assert completions.calls[0]["model"] == "gemini/gemini-2.5-flash"
    log = db_session.query(AITokenLog).one()
    assert log.feature == "tutor_chat"
    assert log.prompt_tokens == 1000
    assert log.completion_tokens == 500
    assert log.cost_usd == pytest.approx(0.0003 + 0.00125)


def test_transient_failure_is_retried(db_session, fake_llm):
    user = create_user(db_session)
    completions = fake_llm(FakeAPIError("overloaded", 503), "ok")

    assert ai_service.call_ai_and_log(db_session, user, system_prompt="s", user_prompt="u", feature_name="f") == "ok"
    assert len(completions.calls) == 2


def test_quota_failure_raises_quota_error(db_session, fake_llm):
    user = create_user(db_session)
    fake_llm(FakeAPIError("insufficient_quota", 429))

    with pytest.raises(QuotaExceededError):
        ai_service.call_ai_and_log(db_session, user, system_prompt="s", user_prompt="u", feature_name="f")
    assert db_session.query(AITokenLog).count() == 0


def test_missing_client_is_reported(db_session, monkeypatch):
    user = create_user(db_session)
    monkeypatch.setattr(ai_service, "openai_client", None)

    with pytest.raises(StudyFlowError) as excinfo:
        ai_service.call_ai_and_log(db_session, user, system_prompt="s", user_prompt="u", feature_name="f")
    assert excinfo.value.status_code == 503


def test_generate_quiz_caps_question_count(db_session, fake_llm):
    user = create_user(db_session)
    completions = fake_llm('{"questions": [{"question": "Apa itu sel?"}]}')

    quiz = ai_service.generate_quiz(db_session, user, "Sel", "easy", question_count=35)

    assert quiz["questions"][0]["question"] == "Apa itu sel?"
    assert "Number of questions: 10" in completions.calls[0]["messages"][1]["content"]


def test_generate_study_plan_requires_schedule(db_session, fake_llm):
    user = create_user(db_session)
    fake_llm('{"subject": "Math", "schedule": []}')

    with pytest.raises(LLMResponseError) as excinfo:
        ai_service.generate_study_plan(db_session, user, {}, "Math", "Algebra", "medium")
    assert excinfo.value.reason == "missing_array"


def test_blank_material_is_rejected_before_any_call(db_session, fake_llm):
    user = create_user(db_session)
    completions = fake_llm()

    with pytest.raises(MaterialEmptyError):
        ai_service.generate_quiz_from_material(db_session, user, "   ", "Topic", "easy")
    assert completions.calls == []


def test_unusable_adaptation_answer_keeps_persona(db_session, fake_llm):
    user = create_user(db_session)
    fake_llm("I think the persona is fine.")

    assert ai_service.suggest_persona_update(db_session, user, {}, []) == {"needs_update": False}


def test_clean_html_removes_quiz_blocks():
    html = (
        "<h2>Materi</h2><p>Fotosintesis terjadi di kloroplas.</p>"
        "<h3>Quiz Singkat</h3><p>Jawaban: A</p><p>Testing the idea is useful.</p>"
    )

    cleaned = ai_service.clean_generated_content(html)

    assert cleaned == "<h2>Materi</h2><p>Fotosintesis terjadi di kloroplas.</p><p>Testing the idea is useful.</p>"


def test_clean_html_removes_zero_width_and_decorative_characters():
    cleaned = ai_service.clean_generated_content("<p>Halo\u200b dunia \u2605</p>")
    assert cleaned == "<p>Halo dunia </p>"


def test_clean_plain_text_strips_non_ascii():
    assert ai_service.clean_generated_content("Halo \U0001F44B dunia\n\n\n\nSampai jumpa") == "Halo dunia\n\nSampai jumpa"


@pytest.mark.parametrize(
    "hour, expected",
    [(5, "pagi"), (10, "pagi"), (11, "siang"), (14, "siang"), (15, "sore"), (17, "sore"), (18, "malam"), (0, "malam"), (4, "malam")],
)
def test_resolve_daypart(hour, expected):
    assert ai_service.resolve_daypart(hour) == expected


def test_time_context_uses_local_hour():
    context = ai_service._time_context(
        {"local_time_iso": "2024-05-01T07:30:00+07:00", "timezone": "Asia/Jakarta", "offset_minutes": 420}
    )
    assert "07:30 (pagi)" in context
    assert "Asia/Jakarta" in context
    assert "420" in context


def test_time_context_without_time_is_neutral():
    assert "neutral greeting" in ai_service._time_context({"local_time_iso": "yesterday"})
    assert "neutral greeting" in ai_service._time_context(None)


def test_prompt_defaults_and_guardrail():
    rendered = prompt_manager.render_template("Hi {{ name|default('kamu') }} in {{ lang }}", {"lang": "id", "name": ""})
    assert rendered == "Hi kamu in id"

    prompt = prompt_manager.get_prompt("tutor.chat", ensure_json=True)
    assert "Bahasa Indonesia" in prompt
    assert prompt.endswith(prompt_manager.JSON_GUARDRAIL)
