from __future__ import annotations

from ..models import User
from .base_repository import Repository


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


class UserRepository(Repository[User]):
    model = User

    def get_by_email(self, email: str) -> User | None:
        em = normalize_email(email)
        if not em:
            return None
        return self.get_by(User.email == em)
