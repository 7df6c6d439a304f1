"""
Base repository over a SQLAlchemy session.

All repositories share the session owned by the request's UnitOfWork, so
nothing here commits; `UnitOfWork.commit()` is the transaction boundary.
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.errors import DbNotFound, translate_db_error

ModelT = TypeVar("ModelT")


class Repository(Generic[ModelT]):
    """Generic repository for one mapped entity."""

    model: type[ModelT]

    def __init__(self, session: Session):
        self.session = session

    @property
    def table_name(self) -> str:
        return str(getattr(self.model, "__tablename__", self.model.__name__))

    def get(self, id: str) -> ModelT | None:
        """Get an entity by ID."""
        eid = str(id or "").strip()
        if not eid:
            return None
        try:
            return self.session.get(self.model, eid)
        except SQLAlchemyError as e:
            raise translate_db_error(
                e, operation="get", table_name=self.table_name, entity_id=eid
            ) from e

    def require(self, id: str) -> ModelT:
        """Get an entity by ID or raise DbNotFound."""
        obj = self.get(id)
        if obj is None:
            raise DbNotFound(
                f"{self.model.__name__} not found",
                operation="get",
                table_name=self.table_name,
                entity_id=str(id or ""),
            )
        return obj

    def get_by(self, *criteria: Any) -> ModelT | None:
        """First entity matching all criteria."""
        stmt = select(self.model).where(*criteria).limit(1)
        try:
            return self.session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise translate_db_error(e, operation="get_by", table_name=self.table_name) from e

    def list(
        self,
        *criteria: Any,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ModelT]:
        """List entities matching criteria."""
        stmt = select(self.model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(max(0, int(offset)))
        if limit is not None:
            stmt = stmt.limit(max(0, int(limit)))
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise translate_db_error(e, operation="list", table_name=self.table_name) from e

    def count(self, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        try:
            return int(self.session.scalar(stmt) or 0)
        except SQLAlchemyError as e:
            raise translate_db_error(e, operation="count", table_name=self.table_name) from e

    def add(self, entity: ModelT) -> ModelT:
        """Stage a new entity and flush so defaults and constraints apply now."""
        self.session.add(entity)
        self._flush("add", entity)
        return entity

    def update(self, entity: ModelT, updates: dict[str, Any]) -> ModelT:
        """Apply only the given fields to an existing entity."""
        for key, value in (updates or {}).items():
            if not hasattr(entity, key):
                raise AttributeError(f"{self.model.__name__} has no field {key!r}")
            setattr(entity, key, value)
        self._flush("update", entity)
        return entity

    def remove(self, entity: ModelT) -> None:
        self.session.delete(entity)
        self._flush("remove", entity)

    def _flush(self, operation: str, entity: ModelT) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise translate_db_error(
                e,
                operation=operation,
                table_name=self.table_name,
                entity_id=str(getattr(entity, "id", "") or "") or None,
            ) from e
