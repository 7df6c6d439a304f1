from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from ..settings import settings

router = APIRouter(tags=["health"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs")


@router.get("/api/health")
def health():
    return {
        "status": "Healthy",
        "timestamp": _now_iso(),
        "environment": settings.normalized_environment,
        "version": settings.api_version,
        "message": "VNS Travel API is running successfully!",
    }


@router.get("/api/health/ping")
def ping():
    return {"message": "pong", "timestamp": _now_iso()}
