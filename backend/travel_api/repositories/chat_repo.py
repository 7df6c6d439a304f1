from __future__ import annotations

from typing import Any

from sqlalchemy import and_, or_

from ..models import ChatMessage
from .base_repository import Repository


class ChatMessageRepository(Repository[ChatMessage]):
    model = ChatMessage

    @staticmethod
    def _participant_criteria(user_id: str, with_user_id: str | None) -> list[Any]:
        if with_user_id:
            return [
                or_(
                    and_(ChatMessage.sender_id == user_id, ChatMessage.receiver_id == with_user_id),
                    and_(ChatMessage.sender_id == with_user_id, ChatMessage.receiver_id == user_id),
                )
            ]
        return [or_(ChatMessage.sender_id == user_id, ChatMessage.receiver_id == user_id)]

    def list_for_user(
        self,
        *,
        user_id: str,
        with_user_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ChatMessage], int]:
        criteria = self._participant_criteria(user_id, with_user_id)
        items = self.list(
            *criteria,
            order_by=[ChatMessage.sent_at.desc(), ChatMessage.id.desc()],
            limit=limit,
            offset=offset,
        )
        return items, self.count(*criteria)

    def conversations_for_user(self, *, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """
        One entry per counterpart: newest message first, with unread count.

        Conversations are assembled in Python from the user's messages; chat
        volume per user is small enough that a window query is not worth the
        dialect differences.
        """
        messages = self.list(
            *self._participant_criteria(user_id, None),
            order_by=[ChatMessage.sent_at.desc(), ChatMessage.id.desc()],
        )
        out: dict[str, dict[str, Any]] = {}
        for m in messages:
            other = m.receiver_id if m.sender_id == user_id else m.sender_id
            entry = out.get(other)
            if entry is None:
                entry = {"userId": other, "lastMessage": m, "unreadCount": 0}
                out[other] = entry
            if m.receiver_id == user_id and not m.is_read:
                entry["unreadCount"] += 1
        return list(out.values())[: max(1, int(limit))]
