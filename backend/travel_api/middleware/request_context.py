from __future__ import annotations

import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import request_id_var

# Ids the frontend and Azure front door send; anything else is replaced.
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def accept_request_id(inbound: str | None) -> str:
    """Return the caller's X-Request-Id when it is a safe token, else a fresh UUIDv4."""
    candidate = str(inbound or "").strip()
    if _REQUEST_ID_RE.match(candidate):
        return candidate
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Correlates a request across the browser, the API and its log lines.

    The id lands on request.state.request_id, in the logging contextvar and in
    the X-Request-Id response header (exposed to the SPA through CORS).
    """

    header_name = "X-Request-Id"

    async def dispatch(self, request: Request, call_next):
        request_id = accept_request_id(request.headers.get("x-request-id"))

        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = request_id
            return response
        finally:
            request_id_var.reset(token)
