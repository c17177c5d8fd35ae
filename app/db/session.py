"""Database engines and the request-scoped session factory.

The async engine is only used at startup to create the schema; request
handlers work with plain synchronous sessions. When PostgreSQL cannot be
reached during local development the module falls back to a SQLite file so
the API still boots.
"""

from __future__ import annotations

import logging
import os
from time import perf_counter
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./studyflow_local.db"

# These globals are populated by ``configure_database``.
async_engine: AsyncEngine
sync_engine: Engine
SessionLocal: sessionmaker


def _sync_url_for(async_url: str) -> tuple[str, dict[str, Any]]:
    """Map the async URL onto the driver used by request sessions."""

    url = make_url(async_url)
    if url.drivername.startswith("postgresql+"):
        return url.set(drivername="postgresql").render_as_string(hide_password=False), {}
    if url.drivername == "sqlite+aiosqlite":
        # Sessions cross threads under FastAPI's threadpool.
        return url.set(drivername="sqlite").render_as_string(hide_password=False), {"check_same_thread": False}
    return url.render_as_string(hide_password=False), {}


def _fallback_enabled() -> bool:
    if os.getenv("DISABLE_SQLITE_FALLBACK") == "1":
        return False
    return (settings.ENVIRONMENT or "").lower() in {"development", "local"}


def _log_slow_queries(engine: Engine) -> None:
    threshold_ms = max(settings.SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS or 0, 0)
    if threshold_ms == 0:
        return

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        context._studyflow_started = perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _report(conn, cursor, statement, parameters, context, executemany):
        started = getattr(context, "_studyflow_started", None)
        if started is None:
            return
        elapsed_ms = (perf_counter() - started) * 1000.0
        if elapsed_ms >= threshold_ms:
            logger.warning("Slow SQL (%.1f ms) - %s", elapsed_ms, " ".join(str(statement).split())[:200])


def configure_database(database_url: str | None = None, *, allow_fallback: bool = True) -> None:
    """Initialise the engines and the session factory.

    ``database_url`` defaults to the environment configuration.
    """

    global async_engine, sync_engine, SessionLocal

    async_url = str(database_url or settings.DATABASE_URL)
    safe_url = make_url(async_url).render_as_string(hide_password=True)
    logger.info("Configuring database: %s", safe_url)

    sync_url, connect_args = _sync_url_for(async_url)
    candidate = create_engine(sync_url, pool_pre_ping=True, connect_args=connect_args)

    try:
        with candidate.connect() as connection:
            connection.execute(text("SELECT 1"))
    except (OperationalError, OSError) as exc:
        candidate.dispose()
        if allow_fallback and _fallback_enabled():
            logger.warning("Database '%s' is unreachable (%s). Falling back to SQLite.", safe_url, exc)
            configure_database(SQLITE_FALLBACK_URL, allow_fallback=False)
            return
        logger.error("Database connection failed: %s", exc)
        raise

    _log_slow_queries(candidate)
    async_engine = create_async_engine(async_url, echo=False)
    sync_engine = candidate
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=sync_engine)


configure_database()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
