"""
Platform Analytics Service.

Read-only aggregate report for administrators: users by role, ideas by
category and status, proposal funding, and recent audit activity.
"""

from collections import Counter
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from investbridge.config import settings
from investbridge.identity.provider import Caller
from investbridge.roles.guard import AccessGuard
from investbridge.roles.registry import Role
from investbridge.store.base import Collections, DocumentStore

logger = structlog.get_logger(__name__)

UNKNOWN = "unknown"


# ── Report schema ─────────────────────────────────────────────────────


class UserStats(BaseModel):
    total: int = 0
    by_role: dict[str, int] = Field(default_factory=dict)


class IdeaStats(BaseModel):
    total: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)


class InvestmentStats(BaseModel):
    total_proposals: int = 0
    proposals_by_status: dict[str, int] = Field(default_factory=dict)
    total_funded: float = 0.0
    average_amount: float = 0.0


class ActivityStats(BaseModel):
    recent_actions: dict[str, int] = Field(default_factory=dict)
    total_logs: int = 0


class PlatformAnalytics(BaseModel):
    users: UserStats
    business_ideas: IdeaStats
    investments: InvestmentStats
    activity: ActivityStats


# ── Service ───────────────────────────────────────────────────────────


class AnalyticsService:
    def __init__(self, store: DocumentStore, guard: AccessGuard, recent_log_limit: Optional[int] = None):
        self.store = store
        self.guard = guard
        self.recent_log_limit = recent_log_limit or settings.analytics_recent_log_limit

    async def platform_analytics(self, caller: Optional[Caller]) -> PlatformAnalytics:
        await self.guard.require_role(caller, Role.ADMIN, operation="get_platform_analytics")

        users = await self.store.query(Collections.USERS)
        ideas = await self.store.query(Collections.BUSINESS_IDEAS)
        proposals = await self.store.query(Collections.INVESTMENT_PROPOSALS)
        logs = await self.store.query(
            Collections.LOGS,
            order_by="created_at",
            descending=True,
            limit=self.recent_log_limit,
        )

        by_status = Counter(p.get("status") or UNKNOWN for p in proposals)
        accepted = [p for p in proposals if p.get("status") == "accepted"]
        total_funded = float(sum(p.get("amount") or 0 for p in accepted))

        report = PlatformAnalytics(
            users=UserStats(
                total=len(users),
                by_role=dict(Counter(u.get("role") or UNKNOWN for u in users)),
            ),
            business_ideas=IdeaStats(
                total=len(ideas),
                by_category=dict(Counter(i.get("category") or UNKNOWN for i in ideas)),
                by_status=dict(Counter(i.get("status") or UNKNOWN for i in ideas)),
            ),
            investments=InvestmentStats(
                total_proposals=len(proposals),
                proposals_by_status=dict(by_status),
                total_funded=total_funded,
                average_amount=total_funded / len(accepted) if accepted else 0.0,
            ),
            activity=ActivityStats(
                recent_actions=dict(Counter(entry.get("action") or UNKNOWN for entry in logs)),
                total_logs=len(logs),
            ),
        )
        logger.info("platform_analytics_generated", users=len(users), proposals=len(proposals))
        return report
