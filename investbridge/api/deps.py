"""
FastAPI dependencies.

- get_platform: the wired services (store, identity, push, engine components)
- get_caller: verified caller from ``Authorization: Bearer <JWT>``, or None
- require_trigger_key: shared-secret check for store trigger endpoints

Tests swap the platform with ``app.dependency_overrides[get_platform]``.
"""

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from investbridge.config import settings
from investbridge.db.engine import get_session_factory
from investbridge.errors import Unauthenticated
from investbridge.events.pipeline import FanoutPipeline
from investbridge.identity.provider import Caller, JwtIdentityProvider
from investbridge.push.transport import PushTransport, build_push_transport
from investbridge.roles.authority import RoleTransitionAuthority
from investbridge.roles.guard import AccessGuard
from investbridge.services.analytics import AnalyticsService
from investbridge.services.assessments import RiskAssessmentService
from investbridge.services.audit_log import AuditLog
from investbridge.services.inbox import InboxService
from investbridge.services.portfolios import PortfolioService
from investbridge.services.retention import RetentionSweeper
from investbridge.store.base import DocumentStore
from investbridge.store.sql import SqlDocumentStore


@dataclass
class Platform:
    """Every engine component, wired against one store and identity provider."""

    store: DocumentStore
    identity: JwtIdentityProvider
    push: PushTransport
    audit: AuditLog
    guard: AccessGuard
    roles: RoleTransitionAuthority
    pipeline: FanoutPipeline
    assessments: RiskAssessmentService
    portfolios: PortfolioService
    analytics: AnalyticsService
    inbox: InboxService
    sweeper: RetentionSweeper


def build_platform(
    session_factory: async_sessionmaker[AsyncSession],
    push: Optional[PushTransport] = None,
    max_batch_size: Optional[int] = None,
) -> Platform:
    store = SqlDocumentStore(session_factory, max_batch_size=max_batch_size)
    identity = JwtIdentityProvider(session_factory)
    push = push or build_push_transport()
    audit = AuditLog(store)
    guard = AccessGuard(store, identity, audit)
    return Platform(
        store=store,
        identity=identity,
        push=push,
        audit=audit,
        guard=guard,
        roles=RoleTransitionAuthority(store, identity, audit, guard),
        pipeline=FanoutPipeline(store, push, audit),
        assessments=RiskAssessmentService(store, guard, audit),
        portfolios=PortfolioService(store, guard, audit),
        analytics=AnalyticsService(store, guard),
        inbox=InboxService(store, guard),
        sweeper=RetentionSweeper(store, audit),
    )


_platform: Optional[Platform] = None


def get_platform() -> Platform:
    """Lazily build the process-wide platform."""
    global _platform
    if _platform is None:
        _platform = build_platform(get_session_factory())
    return _platform


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_caller(
    authorization: Optional[str] = Header(default=None),
    platform: Platform = Depends(get_platform),
) -> Optional[Caller]:
    """
    Verify the bearer token when one is sent.

    No header yields None; each operation decides whether that is allowed.
    A header with an invalid token is rejected outright.
    """
    token = _bearer(authorization)
    if authorization and token is None:
        raise Unauthenticated("Malformed Authorization header.")
    if token is None:
        return None
    return platform.identity.verify_caller(token)


def require_trigger_key(x_trigger_key: Optional[str] = Header(default=None)) -> None:
    if not x_trigger_key or not hmac.compare_digest(x_trigger_key, settings.trigger_api_key):
        raise Unauthenticated("Invalid trigger key.")
