from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from ..auth.bearer import VerifiedUser
from ..auth.dependencies import optional_user, require_admin
from ..db.unit_of_work import UnitOfWork, get_unit_of_work
from ..models import Service
from ..observability.logging import get_logger
from ..repositories.serializers import service_to_api
from .pagination import LimitOffset, limit_offset

router = APIRouter(tags=["services"])
log = get_logger("services")

# API field name -> model column.
_FIELD_MAP = {
    "name": "name",
    "description": "description",
    "category": "category",
    "location": "location",
    "price": "price",
    "currency": "currency",
    "durationDays": "duration_days",
    "capacity": "capacity",
    "imageUrl": "image_url",
    "isActive": "is_active",
}


class ServiceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(default=None, max_length=50)
    location: str | None = Field(default=None, max_length=200)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field(default="VND", min_length=3, max_length=3)
    durationDays: int | None = Field(default=None, ge=1)
    capacity: int | None = Field(default=None, ge=1)
    imageUrl: str | None = Field(default=None, max_length=1024)
    isActive: bool = True


class ServiceUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = Field(default=None, max_length=50)
    location: str | None = Field(default=None, max_length=200)
    price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    durationDays: int | None = Field(default=None, ge=1)
    capacity: int | None = Field(default=None, ge=1)
    imageUrl: str | None = Field(default=None, max_length=1024)
    isActive: bool | None = None


def _to_columns(data: dict) -> dict:
    out = {_FIELD_MAP[k]: v for k, v in data.items() if k in _FIELD_MAP}
    if out.get("currency"):
        out["currency"] = str(out["currency"]).upper()
    return out


def _get_visible_service(uow: UnitOfWork, service_id: str, user: VerifiedUser | None) -> Service:
    svc = uow.services.get(service_id)
    if svc is None or (not svc.is_active and not (user and user.is_admin)):
        raise HTTPException(status_code=404, detail="Service not found")
    return svc


@router.get("")
def list_services(
    category: str | None = None,
    location: str | None = None,
    search: str | None = None,
    includeInactive: bool = False,
    page: LimitOffset = Depends(limit_offset),
    user: VerifiedUser | None = Depends(optional_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    items, total = uow.services.search(
        category=category,
        location=location,
        search=search,
        include_inactive=bool(includeInactive and user and user.is_admin),
        limit=page.limit,
        offset=page.offset,
    )
    return page.page(items, total, service_to_api)


@router.get("/{serviceId}")
def get_service(
    serviceId: str,
    user: VerifiedUser | None = Depends(optional_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return service_to_api(_get_visible_service(uow, serviceId, user))


@router.post("", status_code=201)
def create_service(
    body: ServiceCreateRequest,
    admin: VerifiedUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    svc = uow.services.add(Service(**_to_columns(body.model_dump())))
    uow.commit()
    log.info("service_created", service_id=svc.id, actor=admin.sub)
    return service_to_api(svc)


@router.put("/{serviceId}")
def update_service(
    serviceId: str,
    body: ServiceUpdateRequest,
    admin: VerifiedUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    svc = uow.services.get(serviceId)
    if svc is None:
        raise HTTPException(status_code=404, detail="Service not found")

    updates = _to_columns(body.model_dump(exclude_unset=True))
    if "name" in updates and updates["name"] is None:
        raise HTTPException(status_code=400, detail="name cannot be null")
    if "price" in updates and updates["price"] is None:
        raise HTTPException(status_code=400, detail="price cannot be null")
    for col in ("currency", "is_active"):
        if col in updates and updates[col] is None:
            updates.pop(col)

    uow.services.update(svc, updates)
    uow.commit()
    log.info("service_updated", service_id=svc.id, fields=sorted(updates), actor=admin.sub)
    return service_to_api(svc)


@router.delete("/{serviceId}", status_code=204)
def delete_service(
    serviceId: str,
    admin: VerifiedUser = Depends(require_admin),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    svc = uow.services.get(serviceId)
    if svc is None:
        raise HTTPException(status_code=404, detail="Service not found")
    if uow.bookings.count_for_service(svc.id):
        raise HTTPException(
            status_code=409,
            detail="Service has bookings; deactivate it instead of deleting",
        )
    uow.services.remove(svc)
    uow.commit()
    log.info("service_deleted", service_id=serviceId, actor=admin.sub)
    return Response(status_code=204)
