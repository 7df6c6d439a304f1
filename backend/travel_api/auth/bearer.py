from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..models import Role
from ..services.jwt_service import JwtService


@dataclass
class VerifiedUser:
    sub: str
    email: str | None
    role: Role
    claims: dict[str, Any]

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def verify_bearer_token(token: str) -> VerifiedUser:
    claims = JwtService().decode(token)

    email = claims.get("email")
    if email is not None:
        email = str(email)

    try:
        role = Role.parse(claims.get("role") or Role.CUSTOMER.name)
    except ValueError:
        role = Role.CUSTOMER

    return VerifiedUser(sub=str(claims["sub"]), email=email, role=role, claims=claims)
