from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from ..models import User
from ..settings import Settings, get_settings

ALGORITHM = "HS256"


class JwtAuthError(Exception):
    status_code = 401


class JwtNotConfigured(JwtAuthError):
    status_code = 500


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime
    expires_in: int


class JwtService:
    """
    Issues and validates HS256 access tokens signed with JWT_SECRET.

    Refresh tokens are opaque random strings; see AuthService for storage.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _secret(self) -> str:
        secret = str(self.settings.jwt_secret or "").strip()
        if not secret:
            raise JwtNotConfigured("JWT is not configured")
        return secret

    def generate_jwt_token(self, user: User, *, now: datetime | None = None) -> IssuedToken:
        issued_at = now or datetime.now(timezone.utc)
        ttl = timedelta(minutes=max(1, int(self.settings.jwt_access_token_minutes)))
        expires_at = issued_at + ttl
        claims: dict[str, Any] = {
            "sub": str(user.id),
            "email": user.email,
            "name": user.full_name or user.email,
            "role": user.role_enum.name.title(),
            "jti": str(uuid.uuid4()),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self.settings.jwt_valid_issuer,
            "aud": self.settings.jwt_valid_audience,
        }
        token = jwt.encode(claims, self._secret(), algorithm=ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at, expires_in=int(ttl.total_seconds()))

    def decode(self, token: str) -> dict[str, Any]:
        """
        Validate signature, issuer, audience and expiry; return the claims.
        """
        raw = str(token or "").strip()
        if not raw:
            raise JwtAuthError("missing token")
        try:
            claims = jwt.decode(
                raw,
                self._secret(),
                algorithms=[ALGORITHM],
                audience=self.settings.jwt_valid_audience,
                issuer=self.settings.jwt_valid_issuer,
            )
        except ExpiredSignatureError:
            raise JwtAuthError("token expired") from None
        except JWTError:
            raise JwtAuthError("invalid token") from None

        if not str(claims.get("sub") or ""):
            raise JwtAuthError("missing sub")
        return claims

    # ---- signed state for the Google OAuth round-trip ----

    def sign_state(self, payload: dict[str, Any], *, ttl_seconds: int = 600) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            **payload,
            "purpose": "google_oauth_state",
            "nonce": secrets.token_urlsafe(16),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        return jwt.encode(claims, self._secret(), algorithm=ALGORITHM)

    def verify_state(self, state: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(str(state or ""), self._secret(), algorithms=[ALGORITHM])
        except JWTError:
            raise JwtAuthError("invalid state") from None
        if claims.get("purpose") != "google_oauth_state":
            raise JwtAuthError("invalid state")
        return claims


def get_jwt_service() -> JwtService:
    return JwtService()
