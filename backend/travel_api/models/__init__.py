from __future__ import annotations

from .auth_tokens import PasswordResetOtp, RefreshToken
from .booking import Booking
from .chat_message import ChatMessage
from .enums import BookingStatus, Role
from .service import Service
from .user import User

__all__ = [
    "Booking",
    "BookingStatus",
    "ChatMessage",
    "PasswordResetOtp",
    "RefreshToken",
    "Role",
    "Service",
    "User",
]
