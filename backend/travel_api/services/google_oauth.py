from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx
from cachetools import TTLCache

from ..settings import Settings, get_settings

DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"
SCOPES = "openid email profile"


class GoogleOAuthError(Exception):
    status_code = 400


class GoogleOAuthNotConfigured(GoogleOAuthError):
    status_code = 500


@dataclass
class GoogleProfile:
    email: str
    name: str | None
    phone_number: str | None
    email_verified: bool
    subject: str | None


_DISCOVERY_CACHE: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=2, ttl=60 * 60)


def _get_discovery() -> dict[str, Any]:
    cached = _DISCOVERY_CACHE.get(DISCOVERY_URL)
    if cached:
        return cached

    with httpx.Client(timeout=10.0) as client:
        resp = client.get(DISCOVERY_URL)
        resp.raise_for_status()
        doc = resp.json()

    _DISCOVERY_CACHE[DISCOVERY_URL] = doc
    return doc


def _require_configured(settings: Settings) -> None:
    if not settings.google_configured:
        raise GoogleOAuthNotConfigured("Google authentication is not configured")


def build_authorization_url(*, state: str, settings: Settings | None = None) -> str:
    s = settings or get_settings()
    _require_configured(s)
    endpoint = str(_get_discovery().get("authorization_endpoint") or "")
    if not endpoint:
        raise GoogleOAuthError("Google discovery document has no authorization endpoint")
    params = {
        "client_id": s.google_client_id,
        "redirect_uri": s.google_redirect_uri,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{endpoint}?{urlencode(params)}"


def exchange_code_for_profile(*, code: str, settings: Settings | None = None) -> GoogleProfile:
    """
    Exchange an authorization code for tokens, then read the OpenID userinfo.
    """
    s = settings or get_settings()
    _require_configured(s)
    c = str(code or "").strip()
    if not c:
        raise GoogleOAuthError("Missing authorization code")

    discovery = _get_discovery()
    token_endpoint = str(discovery.get("token_endpoint") or "")
    userinfo_endpoint = str(discovery.get("userinfo_endpoint") or "")
    if not token_endpoint or not userinfo_endpoint:
        raise GoogleOAuthError("Google discovery document is incomplete")

    with httpx.Client(timeout=10.0) as client:
        token_resp = client.post(
            token_endpoint,
            data={
                "code": c,
                "client_id": s.google_client_id,
                "client_secret": s.google_client_secret,
                "redirect_uri": s.google_redirect_uri,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        if token_resp.status_code != 200:
            raise GoogleOAuthError("Google rejected the authorization code")
        access_token = str((token_resp.json() or {}).get("access_token") or "")
        if not access_token:
            raise GoogleOAuthError("Google returned no access token")

        info_resp = client.get(
            userinfo_endpoint, headers={"Authorization": f"Bearer {access_token}"}
        )
        if info_resp.status_code != 200:
            raise GoogleOAuthError("Could not read the Google profile")
        info = info_resp.json() or {}

    email = str(info.get("email") or "").strip().lower()
    if not email:
        raise GoogleOAuthError("Google profile has no email")

    return GoogleProfile(
        email=email,
        name=str(info.get("name") or "").strip() or None,
        phone_number=str(info.get("phone_number") or "").strip() or None,
        email_verified=bool(info.get("email_verified")),
        subject=str(info.get("sub") or "") or None,
    )
