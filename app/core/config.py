# Fichier: studyflow/backend/app/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List
from pydantic import ValidationError, field_validator
import sys

class Settings(BaseSettings):
    DATABASE_URL: str
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    BACKEND_CORS_ORIGIN_REGEXES: List[str] = []

    ENVIRONMENT: str = "development"

    # --- Auth configuration ---
    # La clé secrète pour signer les JWTs.
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60

    # --- Verification flows ---
    EMAIL_VERIFICATION_TTL_H: int = 24
    PHONE_VERIFICATION_TTL_MIN: int = 10

    # --- LLM gateway (OpenAI-compatible proxy, e.g. LiteLLM) ---
    LLM_API_KEY: Optional[str] = None
    LLM_BASE_URL: Optional[str] = None
    LLM_MODEL: str = "gemini/gemini-2.5-flash"
    LLM_TIMEOUT_SECONDS: float = 120.0
    LLM_MAX_ATTEMPTS: int = 3
    LLM_RETRY_BASE_DELAY_SECONDS: float = 1.0
    RESPONSE_LANGUAGE: str = "Bahasa Indonesia"

    # Material sent to the model is truncated to these sizes.
    MATERIAL_MAX_CHARS: int = 12000
    MATERIAL_QUIZ_MAX_CHARS: int = 8000

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs always use the asyncpg driver.

        Managed Postgres providers still expose database URLs using the legacy
        ``postgres://`` scheme, which SQLAlchemy no longer understands. Those
        URLs, as well as ``postgresql://`` and psycopg variants, are upgraded to
        ``postgresql+asyncpg://`` so the async engine boots correctly. SQLite
        and other backends are left untouched.
        """

        if not isinstance(value, str):
            return value

        if "+asyncpg" in value:
            return value

        replacements = {
            "postgres://": "postgresql+asyncpg://",
            "postgresql://": "postgresql+asyncpg://",
            "postgresql+psycopg2://": "postgresql+asyncpg://",
            "postgresql+psycopg://": "postgresql+asyncpg://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("LLM_MAX_ATTEMPTS")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        return max(int(value), 1)


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Print missing or invalid environment variables, one per line.

    The exception is raised while the module is imported, which makes it hard
    to tell from the traceback which variable is responsible.
    """

    print("Configuration error while loading environment variables:", file=sys.stderr)

    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "Unknown validation error")
        type_name = error.get("type")
        hint = f"{message} (type={type_name})" if type_name else message
        print(f"  - {location}: {hint}", file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
