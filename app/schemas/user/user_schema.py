# Fichier: studyflow/backend/app/schemas/user/user_schema.py
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

MIN_PASSWORD_LENGTH = 6
PHONE_RE = re.compile(r"^(\+62|62|0)[8-9][0-9]{7,11}$")


def _check_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


# --- Requêtes ---

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()

    @field_validator("password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        return _check_password(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password_length(cls, value: str) -> str:
        return _check_password(value)


class VerifyEmailRequest(BaseModel):
    token: str


class PhoneUpdateRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def _indonesian_number(cls, value: str) -> str:
        cleaned = re.sub(r"[\s-]", "", value or "")
        if not PHONE_RE.match(cleaned):
            raise ValueError("Invalid phone number format (e.g. 081234567890 or +6281234567890)")
        return cleaned


class VerifyPhoneRequest(BaseModel):
    code: str


# --- Réponses ---
# Pas de mot de passe ni de secret de vérification ici.

class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    email_verified: bool = False
    phone_verified: bool = False
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    message: str
    token: str
    user: User


class VerificationStatus(BaseModel):
    email: EmailStr
    email_verified: bool
    phone: Optional[str] = None
    phone_verified: bool
