"""
Notification inbox: the recipient's view of their notifications.
"""

from typing import Optional

import structlog
from pydantic import BaseModel, Field

from investbridge.errors import NotFound
from investbridge.identity.provider import Caller
from investbridge.roles.guard import AccessGuard
from investbridge.store.base import Collections, DocumentStore, Filter, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class NotificationPage(BaseModel):
    notifications: list[dict] = Field(default_factory=list)
    has_more: bool = False


class InboxService:
    def __init__(self, store: DocumentStore, guard: AccessGuard):
        self.store = store
        self.guard = guard

    async def list_notifications(
        self,
        caller: Optional[Caller],
        limit: int = DEFAULT_PAGE_SIZE,
        unread_only: bool = False,
    ) -> NotificationPage:
        caller = self.guard.require_authenticated(caller)
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        filters = [Filter("userId", "==", caller.id)]
        if unread_only:
            filters.append(Filter("read", "==", False))
        docs = await self.store.query(
            Collections.NOTIFICATIONS,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return NotificationPage(notifications=[d.to_dict() for d in docs], has_more=len(docs) == limit)

    async def mark_read(self, caller: Optional[Caller], notification_id: str) -> dict:
        caller = self.guard.require_authenticated(caller)
        doc = await self.store.get(Collections.NOTIFICATIONS, notification_id)
        if doc is None:
            raise NotFound("Notification", notification_id)
        await self.guard.require_self(caller, doc.get("userId"), operation="mark_notification_read")

        await self.store.update(Collections.NOTIFICATIONS, notification_id, {
            "read": True,
            "readAt": utcnow().isoformat(),
        })
        logger.debug("notification_marked_read", notification_id=notification_id, user_id=caller.id)
        return {"success": True, "notification_id": notification_id}
