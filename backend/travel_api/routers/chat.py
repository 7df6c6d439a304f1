from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from ..auth.bearer import VerifiedUser
from ..auth.dependencies import current_user
from ..db.unit_of_work import UnitOfWork, get_unit_of_work
from ..models import ChatMessage
from ..observability.logging import get_logger
from ..repositories.serializers import chat_message_to_api, user_to_api
from .pagination import LimitOffset, limit_offset

router = APIRouter(tags=["chat"])
log = get_logger("chat")


class SendMessageRequest(BaseModel):
    receiverId: str = Field(..., min_length=1, max_length=36)
    content: str = Field(..., min_length=1, max_length=4000)
    bookingId: str | None = Field(default=None, max_length=36)


def _get_visible_message(uow: UnitOfWork, message_id: str, user: VerifiedUser) -> ChatMessage:
    msg = uow.chat_messages.get(message_id)
    if msg is None:
        raise HTTPException(status_code=404, detail="Message not found")
    if user.sub not in (msg.sender_id, msg.receiver_id) and not user.is_admin:
        raise HTTPException(status_code=404, detail="Message not found")
    return msg


@router.post("/messages", status_code=201)
def send_message(
    body: SendMessageRequest,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    content = body.content.strip()
    if not content:
        raise HTTPException(status_code=400, detail="content is required")
    if body.receiverId == user.sub:
        raise HTTPException(status_code=400, detail="Cannot send a message to yourself")

    receiver = uow.users.get(body.receiverId)
    if receiver is None or not receiver.is_active:
        raise HTTPException(status_code=404, detail="Receiver not found")

    if body.bookingId:
        booking = uow.bookings.get(body.bookingId)
        if booking is None or booking.user_id not in (user.sub, receiver.id):
            raise HTTPException(status_code=400, detail="Booking does not belong to this conversation")

    msg = uow.chat_messages.add(
        ChatMessage(
            sender_id=user.sub,
            receiver_id=receiver.id,
            booking_id=body.bookingId or None,
            content=content,
            is_read=False,
        )
    )
    uow.commit()
    log.info("chat_message_sent", message_id=msg.id, sender=user.sub, receiver=receiver.id)
    return chat_message_to_api(msg)


@router.get("/messages")
def list_messages(
    withUserId: str | None = None,
    page: LimitOffset = Depends(limit_offset),
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    items, total = uow.chat_messages.list_for_user(
        user_id=user.sub,
        with_user_id=withUserId or None,
        limit=page.limit,
        offset=page.offset,
    )
    return page.page(items, total, chat_message_to_api)


@router.get("/conversations")
def list_conversations(
    limit: int = Query(default=50, ge=1, le=100),
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    convos = uow.chat_messages.conversations_for_user(user_id=user.sub, limit=limit)
    out = []
    for c in convos:
        other = uow.users.get(c["userId"])
        profile = user_to_api(other)
        out.append(
            {
                "userId": c["userId"],
                "fullName": profile.get("fullName") if profile else None,
                "email": profile.get("email") if profile else None,
                "lastMessage": chat_message_to_api(c["lastMessage"]),
                "unreadCount": c["unreadCount"],
            }
        )
    return {"data": out}


@router.get("/messages/{messageId}")
def get_message(
    messageId: str,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return chat_message_to_api(_get_visible_message(uow, messageId, user))


@router.put("/messages/{messageId}/read")
def mark_read(
    messageId: str,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    msg = _get_visible_message(uow, messageId, user)
    if msg.receiver_id != user.sub:
        raise HTTPException(status_code=403, detail="Only the receiver can mark a message as read")
    if not msg.is_read:
        uow.chat_messages.update(msg, {"is_read": True})
        uow.commit()
    return chat_message_to_api(msg)


@router.delete("/messages/{messageId}", status_code=204)
def delete_message(
    messageId: str,
    user: VerifiedUser = Depends(current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    msg = _get_visible_message(uow, messageId, user)
    if msg.sender_id != user.sub and not user.is_admin:
        raise HTTPException(status_code=403, detail="Only the sender can delete a message")
    uow.chat_messages.remove(msg)
    uow.commit()
    log.info("chat_message_deleted", message_id=messageId, user_sub=user.sub)
    return Response(status_code=204)
