# Fichier: studyflow/backend/app/core/security.py

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from jose import jwt
from passlib import exc as passlib_exc
from passlib.context import CryptContext

from app.core.config import settings

# --- Configuration de la Sécurité ---
ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
logger = logging.getLogger(__name__)


def create_access_token(subject: Union[str, Any], expires_delta: timedelta = None) -> str:
    """Crée un token d'accès JWT dont ``sub`` est l'identifiant utilisateur."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def verify_password(plain_password: str | None, hashed_password: str | None) -> bool:
    """Vérifie si un mot de passe en clair correspond à un mot de passe haché."""

    if not plain_password or not hashed_password:
        return False

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError, passlib_exc.PasslibError) as exc:
        logger.warning("Password verification failed: %s", exc)
        return False


def get_password_hash(password: str) -> str:
    """Hache un mot de passe."""
    return pwd_context.hash(password)


def generate_email_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def generate_phone_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"
