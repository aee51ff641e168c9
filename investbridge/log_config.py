"""
Structured logging setup.

Configures structlog once per process (API and scheduler entry points).
Log events are snake_case names with keyword context, e.g.
``logger.info("role_changed", user_id=..., new_role=...)``.
"""

import logging
import sys

import structlog

from investbridge.config import settings

_SENSITIVE_KEYS = frozenset({
    "token", "access_token", "device_token", "jwt", "secret", "api_key", "password",
})
_REDACTED = "[REDACTED]"


def redact_secrets(logger, method_name, event_dict):
    """Drop credential values before rendering."""
    for key in list(event_dict):
        if key.lower() in _SENSITIVE_KEYS:
            event_dict[key] = _REDACTED
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Configure stdlib logging + structlog processors."""
    level_name = (level or settings.log_level).upper()
    renderer_name = fmt or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if renderer_name == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
