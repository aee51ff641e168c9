"""
Notification Inbox Endpoints.

GET  /api/v1/notifications
POST /api/v1/notifications/{notification_id}/read
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from investbridge.api.deps import Platform, get_caller, get_platform
from investbridge.identity.provider import Caller
from investbridge.services.inbox import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, NotificationPage

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=NotificationPage)
async def list_notifications(
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    unread_only: bool = Query(default=False),
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    return await platform.inbox.list_notifications(caller, limit=limit, unread_only=unread_only)


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    return await platform.inbox.mark_read(caller, notification_id)
