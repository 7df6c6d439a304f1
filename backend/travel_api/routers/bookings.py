from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from ..auth.bearer import VerifiedUser
from ..auth.dependencies import current_user
from ..db.unit_of_work import UnitOfWork, get_unit_of_work
from ..models import Booking, BookingStatus, Service
from ..observability.logging import get_logger
from ..repositories.serializers import booking_to_api
from .pagination import LimitOffset, limit_offset

router = APIRouter(tags=["bookings"])
log = get_logger("bookings")


class BookingCreateRequest(BaseModel):
    serviceId: str = Field(..., min_length=1, max_length=36)
    travelDate: date
    numberOfPeople: int = Field(default=1, ge=1, le=100)
    notes: str | None = Field(default=None, max_length=2000)


class BookingUpdateRequest(BaseModel):
    travelDate: date | None = None
    numberOfPeople: int | None = Field(default=None, ge=1, le=100)
    notes: str | None = Field(default=None, max_length=2000)
    status: BookingStatus | None = None


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _total_price(service: Service, people: int) -> Decimal:
    return (Decimal(service.price or 0) * int(people)).quantize(Decimal("0.01"))


def _check_capacity(service: Service, people: int) -> None:
    if service.capacity is not None and int(people) > int(service.capacity):
        raise HTTPException(
            status_code=400,
            detail=f"numberOfPeople exceeds service capacity ({service.capacity})",
        )


def _get_owned_booking(uow: UnitOfWork, booking_id: str, user: VerifiedUser) -> Booking:
    booking = uow.bookings.get(booking_id)
    # Someone else's booking is reported as missing.
    if booking is None or (booking.user_id != user.sub and not user.is_admin):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@router.get("")
def list_bookings(
    status: BookingStatus | None = None,
    userId: str | None = None,
    page: LimitOffset = Depends(limit_offset),
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    owner = (userId or None) if user.is_admin else user.sub
    items, total = uow.bookings.list_filtered(
        user_id=owner,
        status=status.value if status else None,
        limit=page.limit,
        offset=page.offset,
    )
    return page.page(items, total, booking_to_api)


@router.get("/{bookingId}")
def get_booking(
    bookingId: str,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return booking_to_api(_get_owned_booking(uow, bookingId, user))


@router.post("", status_code=201)
def create_booking(
    body: BookingCreateRequest,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    service = uow.services.get(body.serviceId)
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if not service.is_active:
        raise HTTPException(status_code=400, detail="Service is not available for booking")
    if body.travelDate < _today():
        raise HTTPException(status_code=400, detail="travelDate cannot be in the past")
    _check_capacity(service, body.numberOfPeople)

    if uow.users.get(user.sub) is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    booking = uow.bookings.add(
        Booking(
            user_id=user.sub,
            service_id=service.id,
            travel_date=body.travelDate,
            number_of_people=body.numberOfPeople,
            total_price=_total_price(service, body.numberOfPeople),
            status=BookingStatus.PENDING.value,
            notes=body.notes,
        )
    )
    uow.commit()
    log.info("booking_created", booking_id=booking.id, service_id=service.id, user_sub=user.sub)
    return booking_to_api(booking)


@router.put("/{bookingId}")
def update_booking(
    bookingId: str,
    body: BookingUpdateRequest,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    booking = _get_owned_booking(uow, bookingId, user)
    fields = body.model_dump(exclude_unset=True)

    if not user.is_admin:
        if booking.status_enum.is_final:
            raise HTTPException(status_code=400, detail=f"Booking is {booking.status}")
        new_status = fields.get("status")
        if new_status is not None and new_status != BookingStatus.CANCELLED:
            raise HTTPException(status_code=403, detail="Customers can only cancel bookings")

    updates: dict = {}
    if fields.get("travelDate") is not None:
        if fields["travelDate"] < _today() and not user.is_admin:
            raise HTTPException(status_code=400, detail="travelDate cannot be in the past")
        updates["travel_date"] = fields["travelDate"]
    if fields.get("numberOfPeople") is not None:
        _check_capacity(booking.service, fields["numberOfPeople"])
        updates["number_of_people"] = fields["numberOfPeople"]
        updates["total_price"] = _total_price(booking.service, fields["numberOfPeople"])
    if "notes" in fields:
        updates["notes"] = fields["notes"]
    if fields.get("status") is not None:
        updates["status"] = BookingStatus(fields["status"]).value

    if updates:
        uow.bookings.update(booking, updates)
        uow.commit()
        log.info("booking_updated", booking_id=booking.id, fields=sorted(updates), user_sub=user.sub)
    return booking_to_api(booking)


@router.delete("/{bookingId}", status_code=204)
def delete_booking(
    bookingId: str,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    booking = _get_owned_booking(uow, bookingId, user)
    uow.bookings.remove(booking)
    uow.commit()
    log.info("booking_deleted", booking_id=bookingId, user_sub=user.sub)
    return Response(status_code=204)
