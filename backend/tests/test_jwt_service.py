from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from travel_api.models import Role, User
from travel_api.services.jwt_service import JwtAuthError, JwtNotConfigured, JwtService
from travel_api.settings import Settings


def _settings(**overrides) -> Settings:
    base = {
        "JWT_SECRET": "unit-secret",
        "JWT_VALID_ISSUER": "issuer-a",
        "JWT_VALID_AUDIENCE": "aud-a",
        "JWT_ACCESS_TOKEN_MINUTES": 15,
    }
    base.update(overrides)
    return Settings(**base)


def _user(role: Role = Role.CUSTOMER) -> User:
    return User(id="u-1", email="jwt@example.com", full_name=None, role=int(role))


def test_generate_and_decode_roundtrip():
    svc = JwtService(_settings())
    issued = svc.generate_jwt_token(_user(Role.ADMIN))
    assert issued.expires_in == 15 * 60

    claims = svc.decode(issued.token)
    assert claims["sub"] == "u-1"
    assert claims["role"] == "Admin"
    # Name falls back to the email when the user has no full name.
    assert claims["name"] == "jwt@example.com"


def test_wrong_audience_is_rejected():
    token = JwtService(_settings()).generate_jwt_token(_user()).token
    other = JwtService(_settings(JWT_VALID_AUDIENCE="aud-b"))
    with pytest.raises(JwtAuthError):
        other.decode(token)


def test_wrong_issuer_is_rejected():
    token = JwtService(_settings()).generate_jwt_token(_user()).token
    other = JwtService(_settings(JWT_VALID_ISSUER="issuer-b"))
    with pytest.raises(JwtAuthError):
        other.decode(token)


def test_wrong_secret_is_rejected():
    token = JwtService(_settings()).generate_jwt_token(_user()).token
    with pytest.raises(JwtAuthError) as ei:
        JwtService(_settings(JWT_SECRET="other")).decode(token)
    assert str(ei.value) == "invalid token"


def test_expired_token_is_rejected():
    svc = JwtService(_settings())
    issued = svc.generate_jwt_token(
        _user(), now=datetime.now(timezone.utc) - timedelta(hours=2)
    )
    with pytest.raises(JwtAuthError) as ei:
        svc.decode(issued.token)
    assert str(ei.value) == "token expired"


def test_token_without_sub_is_rejected():
    s = _settings()
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {
            "iss": s.jwt_valid_issuer,
            "aud": s.jwt_valid_audience,
            "exp": int((now + timedelta(minutes=5)).timestamp()),
        },
        "unit-secret",
        algorithm="HS256",
    )
    with pytest.raises(JwtAuthError):
        JwtService(s).decode(token)


def test_missing_secret_is_a_configuration_error():
    svc = JwtService(_settings(JWT_SECRET=""))
    with pytest.raises(JwtNotConfigured):
        svc.generate_jwt_token(_user())


def test_state_roundtrip_and_purpose_check():
    svc = JwtService(_settings())
    state = svc.sign_state({"returnTo": "/bookings"})
    assert svc.verify_state(state)["returnTo"] == "/bookings"

    # An access token is not a valid OAuth state.
    access = svc.generate_jwt_token(_user()).token
    with pytest.raises(JwtAuthError):
        svc.verify_state(access)
