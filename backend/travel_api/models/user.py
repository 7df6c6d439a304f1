from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from ..db.base import Base, created_at_column, id_column, updated_at_column
from .enums import Role


class User(Base):
    __tablename__ = "users"

    id = id_column()
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    phone_number = Column(String(30), nullable=True)
    role = Column(Integer, nullable=False, default=int(Role.CUSTOMER))
    # Null for accounts created through Google sign-in.
    password_hash = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    bookings = relationship("Booking", back_populates="user", passive_deletes=True)

    @property
    def role_enum(self) -> Role:
        return Role(int(self.role if self.role is not None else Role.CUSTOMER))

    @property
    def is_admin(self) -> bool:
        return self.role_enum == Role.ADMIN
