from __future__ import annotations

import logging
import sys

import structlog

from .context import get_request_id, get_user_sub

_CONFIGURED = False


def _add_request_context(_: logging.Logger, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict.setdefault("request_id", rid)
    sub = get_user_sub()
    if sub:
        event_dict.setdefault("user_sub", sub)
    return event_dict


def _static_fields(**fields: str):
    """Processor stamping deployment identity (service, environment) on every line."""
    fields = {k: v for k, v in fields.items() if v}

    def _add(_: logging.Logger, __: str, event_dict: dict) -> dict:
        for k, v in fields.items():
            event_dict.setdefault(k, v)
        return event_dict

    return _add


def configure_logging(
    *,
    level: str | int = "INFO",
    service: str = "vns-travel-api",
    environment: str | None = None,
    db_echo: bool = False,
) -> None:
    """
    Route stdlib logging and structlog through one JSON renderer on stdout.

    Every line carries the service name and environment, plus the request id
    and authenticated user id while a request is in flight. SQL statement
    logging follows DB_ECHO.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    shared = [
        _static_fields(service=service, environment=environment or ""),
        _add_request_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
    # uvicorn's own access line duplicates AccessLogMiddleware.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if db_echo else logging.WARNING)

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str | None = None):
    return structlog.get_logger(name)
