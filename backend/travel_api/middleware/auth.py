from __future__ import annotations

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.bearer import verify_bearer_token
from ..observability.context import bind_user, user_sub_var
from ..observability.logging import get_logger
from ..problem_details import problem_response
from ..services.jwt_service import JwtAuthError

PUBLIC_AUTH_PATHS = frozenset(
    {
        "/api/auth/register",
        "/api/auth/login",
        "/api/auth/refresh-token",
        "/api/auth/logout",
        "/api/auth/forgot-password",
        "/api/auth/verify-otp",
        "/api/auth/reset-password",
        "/api/auth/google/login",
    }
)


def is_public_path(path: str, method: str = "GET") -> bool:
    if path in PUBLIC_AUTH_PATHS:
        return True

    # Health + database diagnostics are anonymous.
    if path == "/api/health" or path.startswith("/api/health/"):
        return True
    if path == "/api/databasetest" or path.startswith("/api/databasetest/"):
        return True

    # The service catalogue is browsable without an account.
    if method.upper() == "GET" and (path == "/api/services" or path.startswith("/api/services/")):
        return True

    return False


def _bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = str(auth).split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


async def require_auth(request: Request):
    path = request.url.path
    method = request.method.upper()

    # Let CORS preflight through without auth.
    if method == "OPTIONS":
        return

    # Only enforce auth for API routes.
    if not path.startswith("/api/"):
        return

    token = _bearer_token(request)

    if is_public_path(path, method):
        # Attach the caller when a valid token is present (e.g. admins browsing
        # inactive services), but never reject on a public path.
        if token:
            try:
                request.state.user = verify_bearer_token(token)
            except JwtAuthError:
                pass
        return

    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        user = verify_bearer_token(token)
    except JwtAuthError as e:
        raise HTTPException(status_code=int(getattr(e, "status_code", 401)), detail=str(e))

    request.state.user = user


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Auth enforcement as ASGI middleware.

    Added before CORSMiddleware so CORS wraps all responses (including auth
    failures) and preflight works.
    """

    async def dispatch(self, request: Request, call_next):
        log = get_logger("auth_middleware")
        try:
            await require_auth(request)
        except HTTPException as exc:
            status_code = int(exc.status_code or 500)
            if status_code >= 500:
                log.error("auth_middleware_error", status_code=status_code, path=request.url.path)
            else:
                log.info("auth_middleware_denied", status_code=status_code, path=request.url.path)
            return problem_response(
                request=request,
                status_code=status_code,
                title="Unauthorized" if status_code == 401 else None,
                detail=str(exc.detail) if isinstance(exc.detail, str) else None,
            )

        user = getattr(request.state, "user", None)
        token = bind_user(getattr(user, "sub", None))
        try:
            return await call_next(request)
        finally:
            user_sub_var.reset(token)
