from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from ..db.base import Base, created_at_column, id_column


class PasswordResetOtp(Base):
    """One-time numeric code issued by forgot-password. Only the hash is kept."""

    __tablename__ = "password_reset_otps"

    id = id_column()
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = created_at_column()


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = id_column()
    user_id = Column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by_id = Column(String(36), nullable=True)
    created_at = created_at_column()
