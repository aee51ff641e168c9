"""
Retention Sweeper.

Deletes notifications older than the retention window. Each pass queries
at most ``batch_size`` expired notifications and deletes them in a single
batch write; passes repeat until a short page or ``max_batches``.
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from pydantic import BaseModel

from investbridge.config import settings
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import Collections, DocumentStore, Filter, WriteOp, utcnow

logger = structlog.get_logger(__name__)


class SweepResult(BaseModel):
    cutoff: datetime
    deleted: int = 0
    batches: int = 0
    exhausted: bool = True


class RetentionSweeper:
    def __init__(
        self,
        store: DocumentStore,
        audit: AuditLog,
        retention_days: Optional[int] = None,
        batch_size: Optional[int] = None,
        max_batches: Optional[int] = None,
    ):
        self.store = store
        self.audit = audit
        self.retention_days = retention_days or settings.notification_retention_days
        # Never exceed what the store accepts in one batch
        self.batch_size = min(batch_size or settings.retention_batch_size, store.max_batch_size)
        self.max_batches = max_batches or settings.retention_max_batches

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        now = now or utcnow()
        cutoff = now - timedelta(days=self.retention_days)
        result = SweepResult(cutoff=cutoff)

        while result.batches < self.max_batches:
            expired = await self.store.query(
                Collections.NOTIFICATIONS,
                [Filter("created_at", "<", cutoff)],
                order_by="created_at",
                limit=self.batch_size,
            )
            if not expired:
                break

            await self.store.batch_write([WriteOp.delete(Collections.NOTIFICATIONS, doc.id) for doc in expired])
            result.batches += 1
            result.deleted += len(expired)
            logger.debug("retention_batch_deleted", batch=result.batches, deleted=len(expired))

            if len(expired) < self.batch_size:
                break
        else:
            result.exhausted = False

        await self.audit.append(AuditAction.NOTIFICATIONS_CLEANUP, data={
            "deletedCount": result.deleted,
            "batches": result.batches,
            "cutoffDate": cutoff.isoformat(),
        })
        logger.info(
            "notifications_cleanup_completed",
            deleted=result.deleted,
            batches=result.batches,
            cutoff=cutoff.isoformat(),
            exhausted=result.exhausted,
        )
        return result
