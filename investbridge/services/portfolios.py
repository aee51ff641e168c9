"""
Portfolio Service.

Recomputes the stored aggregate on ``portfolios/{investorId}``:
- update_metrics: on demand, by the investor for their own portfolio
- refresh_all: daily, for every portfolio (scheduler)
"""

from typing import Optional

import structlog

from investbridge.errors import NotFound
from investbridge.identity.provider import Caller
from investbridge.roles.guard import AccessGuard
from investbridge.roles.registry import Role
from investbridge.scoring.portfolio import aggregate
from investbridge.scoring.schemas import PortfolioMetrics
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import Collections, Document, DocumentStore, utcnow

logger = structlog.get_logger(__name__)


class PortfolioService:
    def __init__(self, store: DocumentStore, guard: AccessGuard, audit: AuditLog):
        self.store = store
        self.guard = guard
        self.audit = audit

    async def update_metrics(self, caller: Optional[Caller], investor_id: str) -> PortfolioMetrics:
        await self.guard.require_role(caller, Role.INVESTOR, operation="update_portfolio_metrics")
        await self.guard.require_self(caller, investor_id, operation="update_portfolio_metrics")

        portfolio = await self.store.get(Collections.PORTFOLIOS, investor_id)
        if portfolio is None:
            raise NotFound("Portfolio", investor_id)

        metrics = await self._recompute(portfolio)
        await self.audit.append(AuditAction.PORTFOLIO_METRICS_UPDATED, actor_id=caller.id, data={
            "investorId": investor_id,
            "oldROI": portfolio.get("roi") or 0,
            "newROI": metrics.roi,
            "totalValue": metrics.total_value,
        })
        logger.info("portfolio_metrics_updated", investor_id=investor_id, roi=metrics.roi)
        return metrics

    async def refresh_all(self) -> int:
        """Recompute every portfolio. One failure does not stop the others."""
        logger.info("portfolio_refresh_started")
        portfolios = await self.store.query(Collections.PORTFOLIOS)
        updated = failed = 0
        for portfolio in portfolios:
            try:
                await self._recompute(portfolio)
                updated += 1
            except Exception as e:
                failed += 1
                logger.error("portfolio_refresh_failed", investor_id=portfolio.id, error=str(e))

        await self.audit.append(AuditAction.DAILY_PORTFOLIO_UPDATE, data={
            "portfoliosUpdated": updated,
            "portfoliosFailed": failed,
        })
        logger.info("portfolio_refresh_completed", updated=updated, failed=failed)
        return updated

    async def _recompute(self, portfolio: Document) -> PortfolioMetrics:
        metrics = aggregate(portfolio.get("investments") or [])
        await self.store.update(Collections.PORTFOLIOS, portfolio.id, {
            **metrics.to_record(),
            "metricsUpdatedAt": utcnow().isoformat(),
        })
        return metrics
