from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)


@dataclass(slots=True)
class DbError(Exception):
    """Base error for database operations.

    These are intended to be caught by a FastAPI exception handler and rendered
    into RFC7807 problem-details responses.
    """

    message: str
    operation: str | None = None
    table_name: str | None = None
    entity_id: str | None = None
    retryable: bool = False
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class DbNotFound(DbError):
    pass


@dataclass(slots=True)
class DbConflict(DbError):
    pass


@dataclass(slots=True)
class DbValidation(DbError):
    pass


@dataclass(slots=True)
class DbUnavailable(DbError):
    pass


@dataclass(slots=True)
class DbInternal(DbError):
    pass


def translate_db_error(
    exc: SQLAlchemyError,
    *,
    operation: str,
    table_name: str | None = None,
    entity_id: str | None = None,
) -> DbError:
    """
    Map a SQLAlchemy exception onto the storage error taxonomy.

    The driver message is kept out of `message` because it can echo column
    values; it stays reachable through `cause`.
    """
    kwargs = {
        "operation": operation,
        "table_name": table_name,
        "entity_id": entity_id,
        "cause": exc,
    }
    if isinstance(exc, IntegrityError):
        return DbConflict("Conflicting or referenced record", **kwargs)
    if isinstance(exc, DataError):
        return DbValidation("Invalid value for column", **kwargs)
    if isinstance(exc, (OperationalError, InterfaceError)):
        return DbUnavailable("Database is unavailable", retryable=True, **kwargs)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return DbUnavailable("Database connection was lost", retryable=True, **kwargs)
    return DbInternal("Database error", **kwargs)
