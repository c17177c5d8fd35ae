# Fichier: studyflow/backend/app/crud/user_crud.py

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.security import get_password_hash
from app.models.user.user_model import User


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Récupère un utilisateur par son adresse email (insensible à la casse).

    Returns:
        L'objet User s'il est trouvé, sinon None.
    """
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(db: Session, *, name: str, email: str, password: str) -> User:
    """Crée un nouvel utilisateur avec un mot de passe haché."""
    db_user = User(
        name=name.strip(),
        email=normalize_email(email),
        hashed_password=get_password_hash(password),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_password(db: Session, user: User, new_password: str) -> None:
    user.hashed_password = get_password_hash(new_password)
    db.commit()


def store_email_verification_token(db: Session, user: User, token: str, expires_at: datetime) -> None:
    user.email_verification_token = token
    user.email_verification_expires_at = expires_at
    db.commit()


def get_user_by_email_token(db: Session, token: str) -> Optional[User]:
    return db.query(User).filter(User.email_verification_token == token).first()


def mark_email_verified(db: Session, user: User) -> None:
    user.email_verified = True
    user.email_verification_token = None
    user.email_verification_expires_at = None
    db.commit()


def update_phone(db: Session, user: User, phone: str) -> None:
    """A new number always has to be verified again."""
    user.phone = phone
    user.phone_verified = False
    user.phone_verification_code = None
    user.phone_verification_expires_at = None
    db.commit()


def store_phone_verification_code(db: Session, user: User, code: str, expires_at: datetime) -> None:
    user.phone_verification_code = code
    user.phone_verification_expires_at = expires_at
    db.commit()


def mark_phone_verified(db: Session, user: User) -> None:
    user.phone_verified = True
    user.phone_verification_code = None
    user.phone_verification_expires_at = None
    db.commit()
