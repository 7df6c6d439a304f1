from __future__ import annotations

from datetime import datetime, timedelta

from ..models import PasswordResetOtp
from .base_repository import Repository
from .token_hashing import hash_secret


class PasswordResetOtpRepository(Repository[PasswordResetOtp]):
    model = PasswordResetOtp

    def create_otp(
        self,
        *,
        user_id: str,
        email: str,
        code: str,
        now: datetime,
        ttl_seconds: int,
    ) -> PasswordResetOtp:
        """Invalidate earlier live codes for the user and store the new one."""
        for old in self.list(
            PasswordResetOtp.user_id == user_id,
            PasswordResetOtp.consumed_at.is_(None),
        ):
            old.consumed_at = now

        otp = PasswordResetOtp(
            user_id=user_id,
            email=email,
            code_hash=hash_secret(code),
            expires_at=now + timedelta(seconds=int(ttl_seconds)),
            attempts=0,
            created_at=now,
        )
        return self.add(otp)

    def latest_live_for_email(self, email: str) -> PasswordResetOtp | None:
        """Newest unconsumed code for the email, expired or not."""
        items = self.list(
            PasswordResetOtp.email == email,
            PasswordResetOtp.consumed_at.is_(None),
            order_by=[PasswordResetOtp.created_at.desc()],
            limit=1,
        )
        return items[0] if items else None
