from __future__ import annotations

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..db.base import Base, created_at_column, id_column, updated_at_column
from .enums import BookingStatus


class Booking(Base):
    __tablename__ = "bookings"

    id = id_column()
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id = Column(
        String(36), ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    travel_date = Column(Date, nullable=False)
    number_of_people = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    user = relationship("User", back_populates="bookings")
    service = relationship("Service", back_populates="bookings")

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)
