"""
Push transports.

Push is strictly best-effort: a transport raises DeliveryFailure when a
message cannot be handed to the gateway, and callers log and move on.

- HttpPushTransport: POST JSON to the configured push gateway
- DisabledPushTransport: used when no gateway is configured
"""

from typing import Optional, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from investbridge.config import settings
from investbridge.errors import DeliveryFailure

logger = structlog.get_logger(__name__)


class PushMessage(BaseModel):
    title: str
    body: str
    data: dict[str, str] = Field(default_factory=dict)


class PushTransport(Protocol):
    """Protocol for device push transports."""

    enabled: bool

    async def send(self, device_token: str, message: PushMessage) -> bool:
        """
        Deliver one message to one device.

        Returns True when the gateway accepted it. Raises DeliveryFailure
        when it did not.
        """
        ...


class HttpPushTransport:
    """Deliver push messages through an HTTP push gateway."""

    enabled = True

    def __init__(
        self,
        gateway_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.gateway_url = gateway_url or settings.push_gateway_url
        self.token = token if token is not None else settings.push_gateway_token
        self.timeout = timeout or settings.push_timeout_seconds
        self._client = client

    def _payload(self, device_token: str, message: PushMessage) -> dict:
        return {
            "to": device_token,
            "notification": {"title": message.title, "body": message.body},
            "data": message.data,
        }

    async def send(self, device_token: str, message: PushMessage) -> bool:
        if not self.gateway_url:
            raise DeliveryFailure("No push gateway configured")

        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        payload = self._payload(device_token, message)

        try:
            if self._client is not None:
                response = await self._client.post(self.gateway_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.gateway_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"Push gateway unreachable: {e}") from e

        if response.status_code >= 400:
            raise DeliveryFailure(f"HTTP {response.status_code}", status=response.status_code)

        logger.debug("push_sent", status=response.status_code, title=message.title)
        return True


class DisabledPushTransport:
    """No-op transport for environments without a push gateway."""

    enabled = False

    async def send(self, device_token: str, message: PushMessage) -> bool:
        logger.debug("push_skipped", reason="transport disabled", title=message.title)
        return False


def build_push_transport() -> PushTransport:
    """Pick the transport from settings."""
    if settings.push_gateway_url:
        return HttpPushTransport()
    return DisabledPushTransport()
