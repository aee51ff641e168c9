"""
Audit Log Service.

Append-only record of every decision the engine takes, written to the
``logs`` collection. The engine never reads entries back except for the
activity counts in the admin analytics report.
"""

from enum import StrEnum
from typing import Optional

import structlog

from investbridge.store.base import Collections, DocumentStore, utcnow

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system"


class AuditAction(StrEnum):
    ROLE_CHANGED = "ROLE_CHANGED"
    ROLE_CHANGE_FAILED = "ROLE_CHANGE_FAILED"
    ROLE_CHANGE_APPROVED = "ROLE_CHANGE_APPROVED"
    ROLE_CHANGE_REJECTED = "ROLE_CHANGE_REJECTED"
    ROLE_CLAIM_RECONCILED = "ROLE_CLAIM_RECONCILED"
    ACCESS_DENIED = "ACCESS_DENIED"
    BUSINESS_IDEA_PUBLISHED = "BUSINESS_IDEA_PUBLISHED"
    INVESTMENT_PROPOSAL_CREATED = "INVESTMENT_PROPOSAL_CREATED"
    INVESTMENT_PROPOSAL_STATUS_UPDATED = "INVESTMENT_PROPOSAL_STATUS_UPDATED"
    QUERY_CREATED = "QUERY_CREATED"
    RESPONSE_CREATED = "RESPONSE_CREATED"
    ADVISOR_SUGGESTION_CREATED = "ADVISOR_SUGGESTION_CREATED"
    LOAN_SCHEME_CREATED = "LOAN_SCHEME_CREATED"
    RISK_ASSESSMENT_GENERATED = "RISK_ASSESSMENT_GENERATED"
    PORTFOLIO_METRICS_UPDATED = "PORTFOLIO_METRICS_UPDATED"
    DAILY_PORTFOLIO_UPDATE = "DAILY_PORTFOLIO_UPDATE"
    NOTIFICATIONS_CLEANUP = "NOTIFICATIONS_CLEANUP"


class AuditLog:
    """Append-only audit trail on the document store."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def append(
        self,
        action: AuditAction,
        actor_id: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> str:
        entry = {
            "userId": actor_id or SYSTEM_ACTOR,
            "action": str(action),
            "data": data or {},
            "timestamp": utcnow().isoformat(),
        }
        entry_id = await self.store.create(Collections.LOGS, entry)
        logger.debug("audit_appended", action=str(action), actor_id=entry["userId"], entry_id=entry_id)
        return entry_id
