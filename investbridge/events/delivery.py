"""
Best-effort push delivery for a fan-out.

Each recipient with a device token gets an independent attempt; a failure
for one recipient is logged and never affects the others or the stored
notifications.
"""

import asyncio
from typing import Optional, Sequence

import structlog

from investbridge.errors import DeliveryFailure
from investbridge.push.transport import PushMessage, PushTransport

logger = structlog.get_logger(__name__)


class PushDelivery:
    """Fan a single message out to many device tokens."""

    def __init__(self, transport: PushTransport):
        self.transport = transport

    async def deliver(
        self,
        recipients: Sequence[tuple[str, Optional[str]]],
        message: PushMessage,
    ) -> tuple[int, int]:
        """
        Push ``message`` to every ``(user_id, device_token)`` with a token.

        Returns (attempted, failed). A disabled transport attempts nothing.
        """
        if not self.transport.enabled:
            return 0, 0
        targets = [(uid, token) for uid, token in recipients if token]
        if not targets:
            return 0, 0
        results = await asyncio.gather(*(self._send_one(uid, token, message) for uid, token in targets))
        failed = sum(1 for ok in results if not ok)
        return len(targets), failed

    async def _send_one(self, user_id: str, device_token: str, message: PushMessage) -> bool:
        try:
            return bool(await self.transport.send(device_token, message))
        except DeliveryFailure as e:
            logger.warning("push_delivery_failed", user_id=user_id, detail=e.detail, status=e.status)
            return False
        except Exception as e:
            logger.error("push_transport_error", user_id=user_id, error=str(e))
            return False
