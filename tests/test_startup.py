import pytest
from sqlalchemy import inspect

from app import main
from app.db import session as session_module


@pytest.mark.asyncio
async def test_startup_creates_tables(tmp_path):
    session_module.configure_database(f"sqlite+aiosqlite:///{tmp_path / 'startup.db'}")
    try:
        await main.startup()
        tables = set(inspect(session_module.sync_engine).get_table_names())
    finally:
        session_module.configure_database()

    assert {
        "users",
        "learning_personas",
        "onboarding_responses",
        "study_plans",
        "learning_modules",
        "learning_sessions",
        "learning_progress",
        "quiz_results",
        "conversations",
        "insights",
        "ai_token_logs",
    } <= tables
