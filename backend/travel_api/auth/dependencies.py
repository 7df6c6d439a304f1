from __future__ import annotations

from fastapi import HTTPException, Request

from .bearer import VerifiedUser


def current_user(request: Request) -> VerifiedUser:
    # Set by AuthMiddleware for protected routes.
    user = getattr(request.state, "user", None)
    if not isinstance(user, VerifiedUser):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def optional_user(request: Request) -> VerifiedUser | None:
    user = getattr(request.state, "user", None)
    return user if isinstance(user, VerifiedUser) else None


def require_admin(request: Request) -> VerifiedUser:
    user = current_user(request)
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
