import logging
import re
from typing import Generator, Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from app.core import security
from app.core.config import settings
from app.db import session as db_session
from app.models.user.user_model import User

log = logging.getLogger(__name__)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide one SQLAlchemy session per request.

    ``get_current_user`` and the route handler both depend on ``get_db``. The
    session is cached on ``request.state`` with a reference counter so the
    user returned by the auth dependency stays attached until the handler
    has finished.
    """

    state = request.state
    db: Optional[Session] = getattr(state, "_db_session", None)
    if db is None:
        db = db_session.SessionLocal()
        state._db_session = db
        state._db_refcount = 0

    state._db_refcount = getattr(state, "_db_refcount", 0) + 1
    try:
        yield db
    finally:
        state._db_refcount -= 1
        if state._db_refcount <= 0:
            try:
                db.close()
            finally:
                del state._db_session
                del state._db_refcount


def _normalize_token_value(raw_token: str | None) -> str | None:
    """Return a clean JWT string from a header or cookie value.

    Browsers can percent-encode cookie values (``Bearer%20...``) and some
    clients send quoted strings or a lower-case ``bearer`` prefix.
    """

    if raw_token is None:
        return None

    token = unquote(raw_token.strip().strip('"').strip("'"))
    if not token:
        return None

    match = re.match(r"^(bearer|token)[\s,:]+(.+)$", token, flags=re.IGNORECASE)
    if match:
        token = match.group(2)

    token = token.strip()
    return token or None


def _decode_user_from_token(token: str | None, db: Session) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    token = _normalize_token_value(token)
    if not token:
        log.warning("Authentication failed: no token provided.")
        raise credentials_exception

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[security.ALGORITHM])
        user_id_str = payload.get("sub")
        if user_id_str is None:
            log.warning("Authentication failed: token has no 'sub'.")
            raise credentials_exception
        user_id = int(user_id_str)
    except ExpiredSignatureError:
        log.warning("Authentication failed: token expired.")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="token_expired")
    except (JWTError, ValueError, TypeError):
        log.warning("Authentication failed: malformed token.")
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        log.warning("Authentication failed: user %s not found.", user_id)
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="inactive_user")

    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token_sources = (
        request.headers.get("Authorization"),
        request.cookies.get("access_token"),
        request.headers.get("X-Access-Token"),
    )

    last_unauthorized_error: HTTPException | None = None

    for candidate in token_sources:
        token = _normalize_token_value(candidate)
        if not token:
            continue

        try:
            return _decode_user_from_token(token, db)
        except HTTPException as exc:
            if exc.status_code != status.HTTP_401_UNAUTHORIZED:
                raise
            last_unauthorized_error = exc

    if last_unauthorized_error is not None:
        raise last_unauthorized_error

    return _decode_user_from_token(None, db)
