from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from fastapi import Query


@dataclass
class LimitOffset:
    """Limit/offset paging for list endpoints."""

    limit: int
    offset: int

    default_limit = 20
    max_limit = 100

    def page(self, items: Iterable[Any], total: int, to_api: Callable[[Any], Any]) -> dict[str, Any]:
        return {
            "data": [to_api(it) for it in items],
            "total": int(total),
            "limit": self.limit,
            "offset": self.offset,
        }


def limit_offset(
    limit: int = Query(default=LimitOffset.default_limit, ge=1, le=LimitOffset.max_limit),
    offset: int = Query(default=0, ge=0),
) -> LimitOffset:
    return LimitOffset(limit=limit, offset=offset)
