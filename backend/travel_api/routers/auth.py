from __future__ import annotations

from typing import NoReturn
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field

from ..auth.dependencies import current_user
from ..auth.bearer import VerifiedUser
from ..db.unit_of_work import UnitOfWork, get_unit_of_work
from ..observability.logging import get_logger
from ..repositories.serializers import user_to_api
from ..services import google_oauth
from ..services.auth_service import AuthService, AuthServiceError
from ..services.email_service import EmailService, get_email_service
from ..services.jwt_service import JwtAuthError, JwtService, get_jwt_service
from ..settings import settings

router = APIRouter(tags=["auth"])
google_callback_router = APIRouter(tags=["auth"])
log = get_logger("auth")


def get_auth_service(
    uow: UnitOfWork = Depends(get_unit_of_work),
    jwt_service: JwtService = Depends(get_jwt_service),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(uow, jwt_service=jwt_service, email_service=email_service)


def _raise_http(e: AuthServiceError) -> NoReturn:
    raise HTTPException(status_code=e.status_code, detail=e.message)


def _sanitize_return_to(raw: str | None) -> str:
    """
    Keep returnTo as a safe in-app path.
    - Must be a relative path starting with "/"
    - Reject absolute / protocol-relative URLs
    """
    val = str(raw or "/").strip() or "/"
    # single-line only (avoid header injection / log junk)
    val = val.splitlines()[0].strip() or "/"

    low = val.lower()
    if "://" in low or low.startswith("//"):
        return "/"
    if not val.startswith("/"):
        return "/"
    if len(val) > 2048:
        return "/"
    return val


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    fullName: str | None = Field(default=None, max_length=200)
    phoneNumber: str | None = Field(default=None, max_length=30)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refreshToken: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10, pattern=r"^\d+$")


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10, pattern=r"^\d+$")
    newPassword: str = Field(..., min_length=6, max_length=128)


@router.post("/register", status_code=201)
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.register(
            email=str(body.email),
            password=body.password,
            full_name=body.fullName,
            phone_number=body.phoneNumber,
        )
    except AuthServiceError as e:
        _raise_http(e)
    return {"user": user_to_api(result.user), **result.to_api()}


@router.post("/login")
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.login(email=str(body.email), password=body.password)
    except AuthServiceError as e:
        _raise_http(e)
    return {"user": user_to_api(result.user), **result.to_api()}


@router.post("/refresh-token")
def refresh_token(body: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        result = auth.refresh(refresh_token=body.refreshToken)
    except AuthServiceError as e:
        _raise_http(e)
    return result.to_api()


@router.post("/logout")
def logout(body: RefreshTokenRequest, auth: AuthService = Depends(get_auth_service)):
    auth.logout(refresh_token=body.refreshToken)
    return {"ok": True}


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    # Same answer whether or not the account exists.
    auth.forgot_password(email=str(body.email))
    return {"ok": True, "message": "If the email is registered, a code has been sent."}


@router.post("/verify-otp")
def verify_otp(body: VerifyOtpRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        auth.verify_otp(email=str(body.email), otp=body.otp)
    except AuthServiceError as e:
        _raise_http(e)
    return {"ok": True}


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        auth.reset_password(email=str(body.email), otp=body.otp, new_password=body.newPassword)
    except AuthServiceError as e:
        _raise_http(e)
    return {"ok": True}


@router.get("/me")
def me(
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    u = uow.users.get(user.sub)
    if u is None or not u.is_active:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_to_api(u)


@router.get("/google/login")
def google_login(
    returnTo: str | None = None,
    jwt_service: JwtService = Depends(get_jwt_service),
):
    try:
        state = jwt_service.sign_state({"returnTo": _sanitize_return_to(returnTo)})
        url = google_oauth.build_authorization_url(state=state)
    except JwtAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except google_oauth.GoogleOAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except httpx.HTTPError:
        raise HTTPException(status_code=502, detail="Google is unavailable")
    return RedirectResponse(url=url, status_code=302)


@google_callback_router.get("/signin-google")
def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    auth: AuthService = Depends(get_auth_service),
    jwt_service: JwtService = Depends(get_jwt_service),
):
    if error:
        log.info("google_login_denied", error=str(error)[:100])
        raise HTTPException(status_code=400, detail="Google sign-in was cancelled")
    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing code or state")

    try:
        claims = jwt_service.verify_state(state)
    except JwtAuthError:
        raise HTTPException(status_code=400, detail="Invalid or expired sign-in state")

    try:
        profile = google_oauth.exchange_code_for_profile(code=code)
    except google_oauth.GoogleOAuthError as e:
        log.warning("google_exchange_failed", error=str(e))
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except httpx.HTTPError as e:
        log.warning("google_unavailable", error_type=type(e).__name__)
        raise HTTPException(status_code=502, detail="Google is unavailable")

    if not profile.email_verified:
        raise HTTPException(status_code=400, detail="Google email is not verified")

    try:
        result = auth.login_with_google(profile)
    except AuthServiceError as e:
        _raise_http(e)

    query = {"token": result.access.token}
    return_to = _sanitize_return_to(claims.get("returnTo"))
    if return_to != "/":
        query["returnTo"] = return_to
    base = str(settings.frontend_base_url or "").rstrip("/")
    target = f"{base}{settings.google_post_login_path}?{urlencode(query)}"
    return RedirectResponse(url=target, status_code=302)
