import logging
import re

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Imports de l'application
from app.core.config import settings
from app.core.exceptions import StudyFlowError
from app.db.base_class import Base
from app.db import base as _models  # noqa: F401  (enregistre les tables)
from app.db import session as db_session
from app.api.api import api_router

# --- Configuration du logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# --- Initialisation de l'application FastAPI ---
app = FastAPI(
    title="StudyFlow AI API",
    openapi_url="/api/openapi.json"
)


def _cors_options() -> dict[str, object]:
    """CORS settings: explicit origins plus optional regexes from the environment."""
    origins = sorted({o.strip().rstrip("/") for o in settings.BACKEND_CORS_ORIGINS if o and o.strip()})
    options: dict[str, object] = {
        "allow_origins": origins,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["Authorization", "Content-Type"],
    }

    patterns = []
    for pattern in settings.BACKEND_CORS_ORIGIN_REGEXES:
        try:
            re.compile(pattern)
        except re.error as exc:
            logger.warning("Regex CORS ignorée (invalide): %s (%s)", pattern, exc)
            continue
        patterns.append(f"(?:{pattern})")
    if patterns:
        options["allow_origin_regex"] = "|".join(patterns)

    logger.info("CORS origins configurés: %s", origins)
    return options


# --- Configuration des Middlewares ---
app.add_middleware(CORSMiddleware, **_cors_options())


# --- Gestion des erreurs : toujours {"error": ...} ---
@app.exception_handler(StudyFlowError)
async def studyflow_error_handler(request: Request, exc: StudyFlowError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_code, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        content = {"error": exc.detail.get("error", "Request failed"), **exc.detail}
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg", "")).removeprefix("Value error, ")
        details.append({"field": field, "message": message})
    first = details[0]["message"] if details else "Invalid request"
    return JSONResponse(status_code=400, content={"error": first, "details": details})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(exc)})


app.include_router(api_router, prefix="/api")


# --- Événement de Démarrage ---
@app.on_event("startup")
async def startup():
    logger.info("Vérification et création des tables de la base de données...")
    async with db_session.async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Les tables de la base de données sont prêtes.")


@app.get("/api/health")
def health():
    return {"status": "ok", "message": "StudyFlow AI API is running"}
