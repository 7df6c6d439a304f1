from __future__ import annotations

from datetime import datetime, timedelta

from ..models import RefreshToken
from .base_repository import Repository
from .token_hashing import hash_secret


class RefreshTokenRepository(Repository[RefreshToken]):
    model = RefreshToken

    def create_for_user(
        self, *, user_id: str, raw_token: str, now: datetime, ttl_days: int
    ) -> RefreshToken:
        rt = RefreshToken(
            user_id=user_id,
            token_hash=hash_secret(raw_token),
            expires_at=now + timedelta(days=int(ttl_days)),
            created_at=now,
        )
        return self.add(rt)

    def get_by_raw_token(self, raw_token: str) -> RefreshToken | None:
        raw = str(raw_token or "").strip()
        if not raw:
            return None
        return self.get_by(RefreshToken.token_hash == hash_secret(raw))

    def revoke_all_for_user(self, *, user_id: str, now: datetime) -> int:
        n = 0
        for rt in self.list(RefreshToken.user_id == user_id, RefreshToken.revoked_at.is_(None)):
            rt.revoked_at = now
            n += 1
        return n
