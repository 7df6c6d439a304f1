from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .db.errors import (
    DbConflict,
    DbError,
    DbNotFound,
    DbUnavailable,
    DbValidation,
)
from .db.session import get_engine, init_db
from .middleware.access_log import AccessLogMiddleware
from .middleware.auth import AuthMiddleware
from .middleware.cors import build_allowed_origin_regex, build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import configure_logging, get_logger
from .observability.otel import configure_otel, instrument_app, instrument_engine
from .problem_details import problem_response
from .routers.auth import google_callback_router
from .routers.auth import router as auth_router
from .routers.bookings import router as bookings_router
from .routers.chat import router as chat_router
from .routers.database_test import router as database_test_router
from .routers.health import router as health_router
from .routers.services import router as services_router
from .settings import settings


@asynccontextmanager
async def lifespan(_app: FastAPI):
    log = get_logger("startup")
    if settings.db_auto_create:
        engine = get_engine()
        instrument_engine(engine, settings)
        init_db(engine)
    log.info("app_started", environment=settings.normalized_environment)
    yield


def create_app() -> FastAPI:
    # Logging must be configured before the app starts handling requests.
    configure_logging(
        level="INFO",
        service=settings.otel_service_name or "vns-travel-api",
        environment=settings.normalized_environment,
        db_echo=settings.db_echo,
    )
    log = get_logger("startup")

    # Optional tracing (no-op unless OTEL_ENABLED=true)
    configure_otel(settings)

    app = FastAPI(
        title="VNS Travel API",
        version=settings.api_version,
        default_response_class=ORJSONResponse,
        # No 307 hops between /path and /path/ behind the frontend proxy.
        redirect_slashes=False,
        lifespan=lifespan,
    )

    allowed_origins = build_allowed_origins(
        frontend_base_url=settings.frontend_base_url,
        frontend_urls=settings.frontend_urls,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    # Auth runs inside CORS so auth failures still get CORS headers.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_origin_regex=build_allowed_origin_regex(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
        max_age=3000,
    )
    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DbError, _db_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(google_callback_router)
    app.include_router(services_router, prefix="/api/services")
    app.include_router(bookings_router, prefix="/api/bookings")
    app.include_router(chat_router, prefix="/api/chat")
    app.include_router(database_test_router, prefix="/api/databasetest")

    # Instrument after routers/middleware are attached.
    instrument_app(app, settings)

    return app


def _db_error_handler(request: Request, exc: DbError) -> Response:
    # Map storage-layer errors to stable HTTP semantics.
    status_code = 500
    title = "Storage Error"

    if isinstance(exc, DbValidation):
        status_code = 400
        title = "Bad Request"
    elif isinstance(exc, DbNotFound):
        status_code = 404
        title = "Not Found"
    elif isinstance(exc, DbConflict):
        status_code = 409
        title = "Conflict"
    elif isinstance(exc, DbUnavailable):
        status_code = 503
        title = "Service Unavailable"

    extensions = {
        "operation": exc.operation,
        "table": exc.table_name,
        "entityId": exc.entity_id,
        "retryable": bool(exc.retryable),
    }
    extensions = {k: v for k, v in extensions.items() if v is not None}

    get_logger("db_error").warning(
        "db_error",
        status_code=status_code,
        operation=exc.operation,
        table=exc.table_name,
        cause_type=type(exc.cause).__name__ if exc.cause else None,
    )

    # In production, problem_response already suppresses 5xx detail.
    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=exc.message,
        extensions=extensions,
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    title: str | None = None
    extensions: dict | None = None
    safe_detail: str | None = None

    if isinstance(detail, dict):
        extensions = detail
        if isinstance(detail.get("error"), str):
            title = detail.get("error")
        msg = detail.get("message")
        if isinstance(msg, str) and msg.strip():
            safe_detail = msg.strip()
    elif detail is not None:
        safe_detail = str(detail)

    if status_code == 404:
        title = title or "Not Found"
        safe_detail = safe_detail or "Route not found"

    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=safe_detail,
        extensions=extensions,
        headers=getattr(exc, "headers", None),
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        loc_path = ".".join([str(x) for x in loc if x != "body"])
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": loc_path,
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    # Full traceback goes to the logs; the response stays generic in production.
    try:
        log = get_logger("unhandled")
        rid = getattr(getattr(request, "state", None), "request_id", None)
        user = getattr(getattr(request, "state", None), "user", None)
        user_sub = getattr(user, "sub", None) if user else None
        log.exception(
            "unhandled_exception",
            request_id=str(rid) if rid else None,
            http_method=str(getattr(request, "method", "") or "").upper() or None,
            path=str(getattr(getattr(request, "url", None), "path", "") or ""),
            user_sub=str(user_sub) if user_sub else None,
        )
    except Exception:
        # Never let logging crash the exception handler.
        pass

    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if exc else None,
    )


app = create_app()
