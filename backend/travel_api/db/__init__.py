from __future__ import annotations

from .base import Base
from .errors import DbConflict, DbError, DbInternal, DbNotFound, DbUnavailable, DbValidation

__all__ = [
    "Base",
    "DbConflict",
    "DbError",
    "DbInternal",
    "DbNotFound",
    "DbUnavailable",
    "DbValidation",
]
