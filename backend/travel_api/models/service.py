from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..db.base import Base, created_at_column, id_column, updated_at_column


class Service(Base):
    """A bookable travel offering (tour, hotel stay, flight, transfer...)."""

    __tablename__ = "services"

    id = id_column()
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True, index=True)
    location = Column(String(200), nullable=True, index=True)
    price = Column(Numeric(12, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="VND")
    duration_days = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=True)
    image_url = Column(String(1024), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    bookings = relationship("Booking", back_populates="service")
