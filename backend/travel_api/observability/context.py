from __future__ import annotations

from contextvars import ContextVar, Token

# Set per request by RequestContextMiddleware and AuthMiddleware.
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_sub_var: ContextVar[str | None] = ContextVar("user_sub", default=None)


def get_request_id() -> str | None:
    return request_id_var.get()


def get_user_sub() -> str | None:
    return user_sub_var.get()


def bind_user(sub: str | None) -> Token:
    """Attach the authenticated user's id to log lines until the token is reset."""
    return user_sub_var.set(str(sub) if sub else None)
