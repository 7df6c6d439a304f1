from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_

from ..models import Service
from .base_repository import Repository


class ServiceRepository(Repository[Service]):
    model = Service

    @staticmethod
    def catalogue_criteria(
        *,
        category: str | None = None,
        location: str | None = None,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> list[Any]:
        criteria: list[Any] = []
        if not include_inactive:
            criteria.append(Service.is_active.is_(True))
        cat = str(category or "").strip().lower()
        if cat:
            criteria.append(func.lower(Service.category) == cat)
        loc = str(location or "").strip().lower()
        if loc:
            criteria.append(func.lower(Service.location).contains(loc, autoescape=True))
        q = str(search or "").strip().lower()
        if q:
            criteria.append(
                or_(
                    func.lower(Service.name).contains(q, autoescape=True),
                    func.lower(Service.description).contains(q, autoescape=True),
                )
            )
        return criteria

    def search(
        self,
        *,
        category: str | None = None,
        location: str | None = None,
        search: str | None = None,
        include_inactive: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Service], int]:
        criteria = self.catalogue_criteria(
            category=category,
            location=location,
            search=search,
            include_inactive=include_inactive,
        )
        items = self.list(
            *criteria,
            order_by=[Service.name.asc(), Service.id.asc()],
            limit=limit,
            offset=offset,
        )
        return items, self.count(*criteria)
