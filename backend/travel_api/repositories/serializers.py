from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from ..db.base import as_utc
from ..models import Booking, ChatMessage, Service, User


def _iso(value: datetime | date | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = as_utc(value)
        return dt.isoformat().replace("+00:00", "Z") if dt else None
    return value.isoformat()


def _money(value: Decimal | float | int | None) -> float | None:
    if value is None:
        return None
    return float(Decimal(value).quantize(Decimal("0.01")))


def user_to_api(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "phoneNumber": user.phone_number,
        "role": user.role_enum.name.title(),
        "hasPassword": bool(user.password_hash),
        "isActive": bool(user.is_active),
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def service_to_api(service: Service | None) -> dict[str, Any] | None:
    if service is None:
        return None
    return {
        "id": service.id,
        "name": service.name,
        "description": service.description,
        "category": service.category,
        "location": service.location,
        "price": _money(service.price),
        "currency": service.currency,
        "durationDays": service.duration_days,
        "capacity": service.capacity,
        "imageUrl": service.image_url,
        "isActive": bool(service.is_active),
        "createdAt": _iso(service.created_at),
        "updatedAt": _iso(service.updated_at),
    }


def booking_to_api(booking: Booking | None) -> dict[str, Any] | None:
    if booking is None:
        return None
    svc = booking.service
    return {
        "id": booking.id,
        "userId": booking.user_id,
        "serviceId": booking.service_id,
        "serviceName": svc.name if svc is not None else None,
        "travelDate": _iso(booking.travel_date),
        "numberOfPeople": booking.number_of_people,
        "totalPrice": _money(booking.total_price),
        "currency": svc.currency if svc is not None else None,
        "status": booking.status,
        "notes": booking.notes,
        "createdAt": _iso(booking.created_at),
        "updatedAt": _iso(booking.updated_at),
    }


def chat_message_to_api(message: ChatMessage | None) -> dict[str, Any] | None:
    if message is None:
        return None
    return {
        "id": message.id,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "bookingId": message.booking_id,
        "content": message.content,
        "isRead": bool(message.is_read),
        "sentAt": _iso(message.sent_at),
    }
