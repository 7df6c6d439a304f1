from __future__ import annotations

from typing import Any

from ..models import Booking
from .base_repository import Repository


class BookingRepository(Repository[Booking]):
    model = Booking

    def list_filtered(
        self,
        *,
        user_id: str | None = None,
        status: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Booking], int]:
        criteria: list[Any] = []
        if user_id:
            criteria.append(Booking.user_id == user_id)
        if status:
            criteria.append(Booking.status == status)
        items = self.list(
            *criteria,
            order_by=[Booking.travel_date.desc(), Booking.created_at.desc(), Booking.id.asc()],
            limit=limit,
            offset=offset,
        )
        return items, self.count(*criteria)

    def count_for_service(self, service_id: str) -> int:
        return self.count(Booking.service_id == service_id)
