from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from ..db.base import as_utc, utcnow
from ..db.unit_of_work import UnitOfWork
from ..models import Role, User
from ..observability.logging import get_logger
from ..repositories.token_hashing import secret_matches
from ..repositories.users_repo import normalize_email
from ..settings import Settings, get_settings
from .email_service import EmailService
from .google_oauth import GoogleProfile
from .jwt_service import IssuedToken, JwtService

log = get_logger("auth_service")


def _utcnow() -> datetime:
    return utcnow()


class AuthServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentials(AuthServiceError):
    status_code = 401


class InvalidRefreshToken(AuthServiceError):
    status_code = 401


class EmailAlreadyRegistered(AuthServiceError):
    status_code = 409


class OtpInvalid(AuthServiceError):
    status_code = 400


class OtpExpired(AuthServiceError):
    status_code = 400


@dataclass
class AuthResult:
    user: User
    access: IssuedToken
    refresh_token: str | None = None

    def to_api(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "access_token": self.access.token,
            "token_type": "bearer",
            "expires_in": self.access.expires_in,
        }
        if self.refresh_token:
            out["refresh_token"] = self.refresh_token
        return out


def _email_domain(email: str) -> str | None:
    return email.split("@", 1)[1] if "@" in email else None


class AuthService:
    """
    Credential checks, token issuance and the OTP password-reset flow.

    Every method works inside the caller's UnitOfWork and commits it.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        *,
        jwt_service: JwtService | None = None,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
    ):
        self.uow = uow
        self.settings = settings or get_settings()
        self.jwt = jwt_service or JwtService(self.settings)
        self.email = email_service or EmailService(self.settings)

    # ---- passwords ----

    def hash_password(self, password: str) -> str:
        return generate_password_hash(password, method=self.settings.password_hash_method)

    @staticmethod
    def verify_password(user: User, password: str) -> bool:
        if not user.password_hash:
            return False
        return check_password_hash(user.password_hash, str(password or ""))

    # ---- tokens ----

    def _issue(self, user: User, *, with_refresh: bool = True) -> AuthResult:
        now = _utcnow()
        access = self.jwt.generate_jwt_token(user, now=now)
        refresh: str | None = None
        if with_refresh:
            refresh = secrets.token_urlsafe(48)
            self.uow.refresh_tokens.create_for_user(
                user_id=user.id,
                raw_token=refresh,
                now=now,
                ttl_days=self.settings.jwt_refresh_token_days,
            )
        return AuthResult(user=user, access=access, refresh_token=refresh)

    # ---- account ----

    def register(
        self,
        *,
        email: str,
        password: str,
        full_name: str | None = None,
        phone_number: str | None = None,
    ) -> AuthResult:
        em = normalize_email(email)
        if self.uow.users.get_by_email(em) is not None:
            raise EmailAlreadyRegistered("Email is already registered")

        user = self.uow.users.add(
            User(
                email=em,
                full_name=str(full_name or "").strip() or None,
                phone_number=str(phone_number or "").strip() or None,
                role=int(Role.CUSTOMER),
                password_hash=self.hash_password(password),
                is_active=True,
            )
        )
        result = self._issue(user)
        self.uow.commit()
        log.info("user_registered", user_id=user.id, email_domain=_email_domain(em))
        return result

    def login(self, *, email: str, password: str) -> AuthResult:
        em = normalize_email(email)
        user = self.uow.users.get_by_email(em)
        if user is None or not user.is_active or not self.verify_password(user, password):
            log.info("login_failed", email_domain=_email_domain(em))
            raise InvalidCredentials("Invalid email or password")

        result = self._issue(user)
        self.uow.commit()
        log.info("login_succeeded", user_id=user.id)
        return result

    def refresh(self, *, refresh_token: str) -> AuthResult:
        now = _utcnow()
        rt = self.uow.refresh_tokens.get_by_raw_token(refresh_token)
        if rt is None:
            raise InvalidRefreshToken("Invalid refresh token")

        if rt.revoked_at is not None:
            # A rotated token came back: treat the whole family as compromised.
            revoked = self.uow.refresh_tokens.revoke_all_for_user(user_id=rt.user_id, now=now)
            self.uow.commit()
            log.warning("refresh_token_reuse_detected", user_id=rt.user_id, revoked=revoked)
            raise InvalidRefreshToken("Invalid refresh token")

        if as_utc(rt.expires_at) <= now:
            raise InvalidRefreshToken("Refresh token has expired")

        user = self.uow.users.get(rt.user_id)
        if user is None or not user.is_active:
            raise InvalidRefreshToken("Invalid refresh token")

        result = self._issue(user)
        replacement = self.uow.refresh_tokens.get_by_raw_token(str(result.refresh_token))
        rt.revoked_at = now
        rt.replaced_by_id = replacement.id if replacement is not None else None
        self.uow.commit()
        return result

    def logout(self, *, refresh_token: str) -> None:
        rt = self.uow.refresh_tokens.get_by_raw_token(refresh_token)
        if rt is None or rt.revoked_at is not None:
            return
        rt.revoked_at = _utcnow()
        self.uow.commit()

    # ---- password reset (OTP) ----

    def _generate_otp(self) -> str:
        n = max(4, min(10, int(self.settings.otp_length)))
        return f"{secrets.randbelow(10 ** n):0{n}d}"

    def forgot_password(self, *, email: str) -> None:
        """
        Issue and email an OTP. Silent for unknown or inactive accounts.
        """
        em = normalize_email(email)
        user = self.uow.users.get_by_email(em)
        if user is None or not user.is_active:
            log.info("otp_not_issued", email_domain=_email_domain(em))
            return

        code = self._generate_otp()
        self.uow.password_reset_otps.create_otp(
            user_id=user.id,
            email=em,
            code=code,
            now=_utcnow(),
            ttl_seconds=self.settings.otp_ttl_seconds,
        )
        self.uow.commit()
        log.info("otp_issued", user_id=user.id)

        self.email.send_otp_email(
            to_email=em, code=code, ttl_seconds=self.settings.otp_ttl_seconds
        )

    def _check_otp(self, *, email: str, otp: str):
        em = normalize_email(email)
        record = self.uow.password_reset_otps.latest_live_for_email(em)
        now = _utcnow()
        if record is None:
            raise OtpExpired("OTP has expired or is invalid")
        if as_utc(record.expires_at) <= now:
            raise OtpExpired("OTP has expired or is invalid")
        if int(record.attempts or 0) >= int(self.settings.otp_max_attempts):
            raise OtpExpired("OTP has expired or is invalid")

        if not secret_matches(str(otp or "").strip(), record.code_hash):
            record.attempts = int(record.attempts or 0) + 1
            self.uow.commit()
            log.info("otp_mismatch", user_id=record.user_id, attempts=record.attempts)
            raise OtpInvalid("Invalid OTP")
        return record

    def verify_otp(self, *, email: str, otp: str) -> None:
        self._check_otp(email=email, otp=otp)

    def reset_password(self, *, email: str, otp: str, new_password: str) -> None:
        record = self._check_otp(email=email, otp=otp)
        user = self.uow.users.get(record.user_id)
        if user is None:
            raise OtpExpired("OTP has expired or is invalid")

        now = _utcnow()
        record.consumed_at = now
        user.password_hash = self.hash_password(new_password)
        self.uow.refresh_tokens.revoke_all_for_user(user_id=user.id, now=now)
        self.uow.commit()
        log.info("password_reset", user_id=user.id)

    # ---- Google ----

    def login_with_google(self, profile: GoogleProfile) -> AuthResult:
        """Find the user by email or create one, then issue the usual JWT."""
        em = normalize_email(profile.email)
        user = self.uow.users.get_by_email(em)
        created = False
        if user is None:
            user = self.uow.users.add(
                User(
                    email=em,
                    full_name=profile.name,
                    phone_number=profile.phone_number,
                    role=int(Role.CUSTOMER),
                    password_hash=None,
                    is_active=True,
                )
            )
            created = True
        elif not user.is_active:
            raise InvalidCredentials("Account is disabled")

        result = self._issue(user, with_refresh=False)
        self.uow.commit()
        log.info("google_login", user_id=user.id, created=created)
        return result
