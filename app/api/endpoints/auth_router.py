# Fichier: studyflow/backend/app/api/endpoints/auth_router.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_current_user, get_db
from app.core import security
from app.core.config import settings
from app.crud import user_crud
from app.models.user.user_model import User
from app.schemas.user import user_schema

router = APIRouter()
logger = logging.getLogger(__name__)


def _is_expired(expires_at: Optional[datetime]) -> bool:
    if expires_at is None:
        return True
    # SQLite rend des datetimes naïfs : on les considère en UTC.
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < datetime.now(timezone.utc)


def _auth_payload(message: str, user: User, response: Response) -> dict:
    token = security.create_access_token(subject=user.id)
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        samesite="none",
        secure=settings.ENVIRONMENT == "production",
        path="/",
    )
    return {"message": message, "token": token, "user": user_schema.User.model_validate(user)}


@router.post("/register", response_model=user_schema.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: user_schema.RegisterRequest, response: Response, db: Session = Depends(get_db)):
    if user_crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    user = user_crud.create_user(db, name=payload.name, email=payload.email, password=payload.password)
    logger.info("New user registered: %s", user.id)
    return _auth_payload("Registration successful", user, response)


@router.post("/login", response_model=user_schema.AuthResponse)
def login(payload: user_schema.LoginRequest, response: Response, db: Session = Depends(get_db)):
    user = user_crud.get_user_by_email(db, payload.email)
    if not user or not security.verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="inactive_user")
    return _auth_payload("Login successful", user, response)


@router.get("/me", response_model=user_schema.User)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/change-password")
def change_password(
    payload: user_schema.ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not security.verify_password(payload.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user_crud.update_password(db, current_user, payload.new_password)
    return {"message": "Password changed successfully"}


# --- Vérification e-mail (l'envoi réel est simulé dans les logs) ---

@router.post("/send-email-verification")
def send_email_verification(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if current_user.email_verified:
        raise HTTPException(status_code=400, detail="Email is already verified")

    token = security.generate_email_token()
    expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.EMAIL_VERIFICATION_TTL_H)
    user_crud.store_email_verification_token(db, current_user, token, expires_at)
    logger.info("Email verification token for %s: %s", current_user.email, token)
    return {"message": "Verification email sent"}


@router.post("/verify-email")
def verify_email(payload: user_schema.VerifyEmailRequest, db: Session = Depends(get_db)):
    user = user_crud.get_user_by_email_token(db, payload.token)
    if user is None or _is_expired(user.email_verification_expires_at):
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")
    user_crud.mark_email_verified(db, user)
    return {"message": "Email verified successfully"}


# --- Téléphone ---

@router.put("/phone")
def update_phone(
    payload: user_schema.PhoneUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_crud.update_phone(db, current_user, payload.phone)
    return {"message": "Phone number updated", "phone": current_user.phone}


@router.post("/send-phone-verification")
def send_phone_verification(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    if not current_user.phone:
        raise HTTPException(status_code=400, detail="No phone number registered")
    if current_user.phone_verified:
        raise HTTPException(status_code=400, detail="Phone number is already verified")

    code = security.generate_phone_code()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.PHONE_VERIFICATION_TTL_MIN)
    user_crud.store_phone_verification_code(db, current_user, code, expires_at)
    logger.info("Phone verification code for %s: %s", current_user.phone, code)
    return {"message": "Verification code sent"}


@router.post("/verify-phone")
def verify_phone(
    payload: user_schema.VerifyPhoneRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if (
        not current_user.phone_verification_code
        or current_user.phone_verification_code != payload.code.strip()
        or _is_expired(current_user.phone_verification_expires_at)
    ):
        raise HTTPException(status_code=400, detail="Invalid or expired verification code")
    user_crud.mark_phone_verified(db, current_user)
    return {"message": "Phone number verified successfully"}


@router.get("/verification-status", response_model=user_schema.VerificationStatus)
def verification_status(current_user: User = Depends(get_current_user)):
    return user_schema.VerificationStatus(
        email=current_user.email,
        email_verified=current_user.email_verified,
        phone=current_user.phone,
        phone_verified=current_user.phone_verified,
    )
