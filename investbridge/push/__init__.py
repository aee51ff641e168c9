"""Best-effort device push."""

from investbridge.push.transport import (
    DisabledPushTransport,
    HttpPushTransport,
    PushMessage,
    PushTransport,
    build_push_transport,
)

__all__ = [
    "DisabledPushTransport",
    "HttpPushTransport",
    "PushMessage",
    "PushTransport",
    "build_push_transport",
]
