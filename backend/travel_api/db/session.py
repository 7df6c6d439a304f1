from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..observability.logging import get_logger
from ..settings import get_settings
from .base import Base

log = get_logger("db")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record):  # pragma: no cover - driver callback
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """
    Create an engine for `url`.

    SQLite needs `check_same_thread=False` because sync endpoints run in the
    threadpool; in-memory databases also need a single shared connection.
    """
    raw = str(url or "").strip()
    if not raw:
        raise RuntimeError("DATABASE_URL is not set")

    if raw.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in raw or raw in ("sqlite://", "sqlite+pysqlite://"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(raw, echo=echo, **kwargs)
        _enable_sqlite_foreign_keys(engine)
        return engine

    return create_engine(raw, echo=echo, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    s = get_settings()
    # DB_ECHO is applied through the sqlalchemy.engine logger level (see configure_logging).
    engine = build_engine(str(s.database_url or ""))
    log.info("db_engine_created", dialect=engine.dialect.name, url=s.masked_database_url())
    return engine


def get_db_engine() -> Engine:
    """FastAPI dependency; tests override it with an in-memory engine."""
    return get_engine()


@lru_cache(maxsize=8)
def session_factory_for(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    # Register every model on the metadata before creating tables.
    from .. import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    log.info("db_tables_ensured", dialect=engine.dialect.name)
