from __future__ import annotations

from enum import Enum, IntEnum


class Role(IntEnum):
    ADMIN = 0
    CUSTOMER = 1
    STAFF = 2

    @classmethod
    def parse(cls, value: object) -> "Role":
        """Accept an int, a numeric string or a role name (any case)."""
        if isinstance(value, Role):
            return value
        if isinstance(value, int):
            return cls(value)
        raw = str(value or "").strip()
        if raw.isdigit():
            return cls(int(raw))
        try:
            return cls[raw.upper()]
        except KeyError:
            raise ValueError(f"Unknown role: {value!r}") from None


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"

    @property
    def is_final(self) -> bool:
        return self in (BookingStatus.CANCELLED, BookingStatus.COMPLETED)
