import pytest

from app.core import ai_service
from app.core.exceptions import ValidationError
from app.crud import conversation_crud, insight_crud
from app.models.analytics.insight_model import Insight, InsightPriority
from app.models.chat.conversation_model import ConversationRole, ConversationTurn
from app.services import insight_service, tutor_service
from tests.utils import add_progress_rows, create_persona, create_user


@pytest.fixture()
def user(db_session):
    user = create_user(db_session)
    create_persona(db_session, user)
    return user


@pytest.fixture()
def fake_tutor(monkeypatch):
    calls = []

    def fake_chat(db, usr, message, persona, history=None, user_time_meta=None):
        calls.append({"message": message, "history": history, "meta": user_time_meta})
        return f"reply to {message}"

    monkeypatch.setattr(ai_service, "chat_with_tutor", fake_chat)
    return calls


def test_new_sessions_are_numbered_per_user(db_session, user, fake_tutor):
    other = create_user(db_session, email="other@example.com")
    create_persona(db_session, other)
    tutor_service.send_tutor_message(db_session, other, "hello")
    tutor_service.send_tutor_message(db_session, other, "hello again")

    first = tutor_service.send_tutor_message(db_session, user, "Apa itu sel?")
    second = tutor_service.send_tutor_message(db_session, user, "Apa itu DNA?")

    assert first == {"message": "reply to Apa itu sel?", "session_id": 1}
    assert second["session_id"] == 2


def test_history_of_the_session_is_sent(db_session, user, fake_tutor):
    tutor_service.send_tutor_message(db_session, user, "first", session_id=7)
    tutor_service.send_tutor_message(db_session, user, "second", session_id=7, user_time_meta={"timezone": "Asia/Jakarta"})

    assert fake_tutor[0]["history"] == []
    assert fake_tutor[1]["history"] == [
        {"role": "user", "message": "first"},
        {"role": "assistant", "message": "reply to first"},
    ]
    assert fake_tutor[1]["meta"] == {"timezone": "Asia/Jakarta"}
    turns = conversation_crud.session_turns(db_session, user.id, 7)
    assert [t.role for t in turns] == [ConversationRole.USER, ConversationRole.ASSISTANT] * 2


def test_history_is_capped(db_session, user, fake_tutor):
    for index in range(8):
        tutor_service.send_tutor_message(db_session, user, f"m{index}", session_id=1)

    assert len(fake_tutor[-1]["history"]) == tutor_service.HISTORY_TURNS


def test_tutor_requires_persona(db_session, fake_tutor):
    stranger = create_user(db_session, email="stranger@example.com")
    with pytest.raises(ValidationError):
        tutor_service.send_tutor_message(db_session, stranger, "hi")
    assert fake_tutor == []


def test_sessions_summary_and_delete(db_session, user, fake_tutor):
    tutor_service.send_tutor_message(db_session, user, "pertama", session_id=1)
    tutor_service.send_tutor_message(db_session, user, "kedua", session_id=2)

    sessions = conversation_crud.list_sessions(db_session, user.id)
    assert [s["session_id"] for s in sessions] == [2, 1]
    assert sessions[1]["first_user_message"] == "pertama"
    assert sessions[1]["message_count"] == 2

    assert conversation_crud.delete_session(db_session, user.id, 1) == 2
    assert db_session.query(ConversationTurn).count() == 2


def test_insights_need_three_progress_records(db_session, user):
    add_progress_rows(db_session, user, 2)
    with pytest.raises(ValidationError):
        insight_service.generate_insights(db_session, user)


def test_generated_insights_are_stored(db_session, user, monkeypatch):
    add_progress_rows(db_session, user, 3)
    analysis = {
        "summary": "Steady week",
        "insights": [
            {"type": "focus", "title": "Morning focus", "description": "Best before noon", "priority": "high", "action": "Study at 8"},
            {"type": "pace", "title": "Pace", "description": "Good", "priority": "bogus"},
        ],
        "motivational_message": "Keep going",
    }
    monkeypatch.setattr(ai_service, "analyze_progress", lambda *args: analysis)

    result = insight_service.generate_insights(db_session, user)

    assert result["summary"] == "Steady week"
    assert [i["priority"] for i in result["insights"]] == [InsightPriority.HIGH, InsightPriority.MEDIUM]
    stored = db_session.query(Insight).filter_by(title="Morning focus").one()
    assert stored.data == {"action": "Study at 8"}


def test_unread_insights_are_ordered_by_priority(db_session, user):
    insight_crud.create_insights(
        db_session,
        user.id,
        [
            {"title": "low", "priority": "low"},
            {"title": "high", "priority": "high"},
            {"title": "medium", "priority": "medium"},
        ],
    )

    assert [i.title for i in insight_crud.list_unread(db_session, user.id)] == ["high", "medium", "low"]


def test_mark_read_checks_owner(db_session, user):
    other = create_user(db_session, email="other@example.com")
    [insight] = insight_crud.create_insights(db_session, user.id, [{"title": "mine"}])

    assert insight_crud.mark_read(db_session, other.id, insight.id) is None
    assert insight_crud.mark_read(db_session, user.id, insight.id).is_read is True
    assert insight_crud.list_unread(db_session, user.id) == []


def test_motivation_uses_recent_stats(db_session, user, monkeypatch):
    add_progress_rows(db_session, user, 2)
    seen = {}

    def fake_motivation(db, usr, persona, summary):
        seen["summary"] = summary
        return "Semangat!"

    monkeypatch.setattr(ai_service, "generate_motivation", fake_motivation)

    result = insight_service.motivation_message(db_session, user)

    assert result["message"] == "Semangat!"
    assert result["stats"]["total_sessions"] == 2
    assert '"total_minutes": 60' in seen["summary"]
