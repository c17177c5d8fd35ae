from datetime import datetime, timedelta, timezone

import pytest

from app.core import security
from app.crud import user_crud
from tests.utils import auth_headers, create_user


def _register(client, **overrides):
    payload = {"name": "Budi", "email": "Budi@Example.com", "password": "rahasia"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


def test_register_returns_token_and_user(client):
    response = _register(client)

    assert response.status_code == 201
    body = response.json()
    assert body["token"]
    assert body["user"]["email"] == "budi@example.com"
    assert body["user"]["onboarding_completed"] is False
    assert "hashed_password" not in body["user"]


def test_register_rejects_duplicate_email(client):
    _register(client)
    response = _register(client, email="budi@example.com")

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"password": "123"}, "Password must be at least 6 characters"),
        ({"name": "   "}, "Name is required"),
    ],
)
def test_register_validation_errors(client, overrides, message):
    response = _register(client, **overrides)

    assert response.status_code == 400
    assert response.json()["error"] == message


def test_login(client):
    _register(client)

    ok = client.post("/api/auth/login", json={"email": "budi@example.com", "password": "rahasia"})
    wrong = client.post("/api/auth/login", json={"email": "budi@example.com", "password": "salah123"})

    assert ok.status_code == 200
    assert ok.json()["message"] == "Login successful"
    assert wrong.status_code == 401
    assert wrong.json() == {"error": "Invalid email or password"}


def test_me_requires_token(client):
    client.cookies.clear()
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}


def test_me_with_bearer_token(client, db_session):
    user = create_user(db_session)

    response = client.get("/api/auth/me", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["id"] == user.id


def test_change_password(client, db_session):
    user = create_user(db_session, password="rahasia")
    headers = auth_headers(user)

    wrong = client.put(
        "/api/auth/change-password", json={"current_password": "nope", "new_password": "baru123"}, headers=headers
    )
    ok = client.put(
        "/api/auth/change-password", json={"current_password": "rahasia", "new_password": "baru123"}, headers=headers
    )

    assert wrong.status_code == 400
    assert ok.status_code == 200
    db_session.refresh(user)
    assert security.verify_password("baru123", user.hashed_password)


def test_email_verification_flow(client, db_session, monkeypatch):
    user = create_user(db_session)
    headers = auth_headers(user)
    monkeypatch.setattr(security, "generate_email_token", lambda: "tok-123")

    assert client.post("/api/auth/send-email-verification", headers=headers).status_code == 200
    assert client.post("/api/auth/verify-email", json={"token": "bad"}).status_code == 400
    assert client.post("/api/auth/verify-email", json={"token": "tok-123"}).status_code == 200

    status = client.get("/api/auth/verification-status", headers=headers).json()
    assert status["email_verified"] is True
    assert client.post("/api/auth/send-email-verification", headers=headers).status_code == 400


def test_expired_email_token_is_rejected(client, db_session):
    user = create_user(db_session)
    user_crud.store_email_verification_token(
        db_session, user, "old", datetime.now(timezone.utc) - timedelta(minutes=1)
    )

    assert client.post("/api/auth/verify-email", json={"token": "old"}).status_code == 400


def test_phone_verification_flow(client, db_session, monkeypatch):
    user = create_user(db_session)
    headers = auth_headers(user)
    monkeypatch.setattr(security, "generate_phone_code", lambda: "123456")

    assert client.post("/api/auth/send-phone-verification", headers=headers).status_code == 400
    assert client.put("/api/auth/phone", json={"phone": "12345"}, headers=headers).status_code == 400

    updated = client.put("/api/auth/phone", json={"phone": "0812-3456-7890"}, headers=headers)
    assert updated.json()["phone"] == "081234567890"

    assert client.post("/api/auth/send-phone-verification", headers=headers).status_code == 200
    assert client.post("/api/auth/verify-phone", json={"code": "000000"}, headers=headers).status_code == 400
    assert client.post("/api/auth/verify-phone", json={"code": "123456"}, headers=headers).status_code == 200

    status = client.get("/api/auth/verification-status", headers=headers).json()
    assert status["phone_verified"] is True
    assert client.post("/api/auth/send-phone-verification", headers=headers).status_code == 400
