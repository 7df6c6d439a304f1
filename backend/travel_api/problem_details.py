from __future__ import annotations

from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import ORJSONResponse

from .settings import get_settings

PROBLEM_JSON = "application/problem+json"

# Seconds a client should wait before retrying while the database is unreachable.
RETRY_AFTER_SECONDS = 5


def _default_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Internal Server Error" if status_code >= 500 else "Error"


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    return str(rid) if rid else None


def _status_headers(status_code: int, headers: dict[str, str] | None) -> dict[str, str] | None:
    out = dict(headers or {})
    if status_code == 401:
        out.setdefault("WWW-Authenticate", "Bearer")
    elif status_code == 503:
        out.setdefault("Retry-After", str(RETRY_AFTER_SECONDS))
    return out or None


def problem_payload(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    RFC7807 body used by every error path of the API.

    `instance` is the request path and `requestId` matches the X-Request-Id
    header, so a traveller's bug report can be matched to the log lines.
    """
    payload: dict[str, Any] = {
        "type": type or "about:blank",
        "title": title or _default_title(status_code),
        "status": status_code,
        "instance": request.url.path,
    }
    if detail:
        payload["detail"] = str(detail)
    rid = _request_id(request)
    if rid:
        payload["requestId"] = rid
    if errors:
        payload["errors"] = errors
    if extensions:
        payload["extensions"] = extensions
    return payload


def problem_response(
    *,
    request: Request,
    status_code: int,
    title: str | None = None,
    detail: str | None = None,
    type: str = "about:blank",
    errors: list[dict[str, Any]] | None = None,
    extensions: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    status_code = int(status_code)

    # 5xx detail can carry driver messages; production only sends the title.
    if status_code >= 500 and get_settings().is_production:
        detail = None

    return ORJSONResponse(
        status_code=status_code,
        content=problem_payload(
            request=request,
            status_code=status_code,
            title=title,
            detail=detail,
            type=type,
            errors=errors,
            extensions=extensions,
        ),
        media_type=PROBLEM_JSON,
        headers=_status_headers(status_code, headers),
    )
