from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

# Ensure `backend/` is on sys.path so `import travel_api.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

# Settings are read once at import; pin a test environment before that.
os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-please-change"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_AUTO_CREATE"] = "false"
os.environ["PASSWORD_HASH_METHOD"] = "pbkdf2:sha256:1000"
os.environ.pop("EMAIL_FROM", None)
os.environ.pop("OTEL_ENABLED", None)


class FakeEmailService:
    def __init__(self):
        self.sent: list[dict] = []

    def send_otp_email(self, *, to_email: str, code: str, ttl_seconds: int):
        self.sent.append({"to": to_email, "code": code, "ttl": ttl_seconds})
        return {"ok": True, "messageId": f"fake-{len(self.sent)}"}

    def last_code_for(self, email: str) -> str:
        for item in reversed(self.sent):
            if item["to"] == email:
                return item["code"]
        raise AssertionError(f"no OTP sent to {email}")


@pytest.fixture
def engine():
    from travel_api.db.session import build_engine, init_db

    eng = build_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def fake_email():
    return FakeEmailService()


@pytest.fixture
def app(engine, fake_email):
    from travel_api.db.session import get_db_engine
    from travel_api.main import create_app
    from travel_api.services.email_service import get_email_service

    application = create_app()
    application.dependency_overrides[get_db_engine] = lambda: engine
    application.dependency_overrides[get_email_service] = lambda: fake_email
    return application


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


def register(client, email: str, password: str = "secret123", full_name: str = "Test User") -> dict:
    r = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "fullName": full_name},
    )
    assert r.status_code == 201, r.text
    return r.json()


def login(client, email: str, password: str = "secret123") -> dict:
    r = client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def promote_to_admin(engine, email: str) -> None:
    from sqlalchemy.orm import Session

    from travel_api.models import Role, User

    with Session(engine) as session:
        user = session.query(User).filter(User.email == email).one()
        user.role = int(Role.ADMIN)
        session.commit()


@pytest.fixture
def customer(client):
    body = register(client, "customer@example.com")
    return {"id": body["user"]["id"], "token": body["access_token"], "email": "customer@example.com"}


@pytest.fixture
def admin(client, engine):
    register(client, "admin@example.com", full_name="Admin")
    promote_to_admin(engine, "admin@example.com")
    body = login(client, "admin@example.com")
    return {"id": body["user"]["id"], "token": body["access_token"], "email": "admin@example.com"}


@pytest.fixture
def service(client, admin):
    r = client.post(
        "/api/services",
        headers=bearer(admin["token"]),
        json={
            "name": "Ha Long Bay Cruise",
            "description": "Two days on the bay",
            "category": "Tour",
            "location": "Quang Ninh",
            "price": 1500000,
            "durationDays": 2,
            "capacity": 10,
        },
    )
    assert r.status_code == 201, r.text
    return r.json()
