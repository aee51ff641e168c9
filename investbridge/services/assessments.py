"""
Risk Assessment Service.

Bankers score a business proposal; the score is persisted as a write-once
RiskAssessment. Re-running creates another record, and the one with the
newest ``created_at`` is authoritative.
"""

from typing import Optional

import structlog

from investbridge.errors import NotFound
from investbridge.identity.provider import Caller
from investbridge.roles.guard import AccessGuard
from investbridge.roles.registry import Role
from investbridge.scoring.risk import score
from investbridge.scoring.schemas import RiskAssessmentRecord
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import Collections, DocumentStore, Filter

logger = structlog.get_logger(__name__)


class RiskAssessmentService:
    def __init__(self, store: DocumentStore, guard: AccessGuard, audit: AuditLog):
        self.store = store
        self.guard = guard
        self.audit = audit

    async def generate(self, caller: Optional[Caller], proposal_id: str) -> RiskAssessmentRecord:
        await self.guard.require_role(caller, Role.BANKER, operation="generate_risk_assessment")

        idea = await self.store.get(Collections.BUSINESS_IDEAS, proposal_id)
        if idea is None:
            raise NotFound("Business idea", proposal_id)

        owner_id = idea.get("userId")
        owner = await self.store.get(Collections.USERS, owner_id) if owner_id else None
        result = score(idea.data, owner.data if owner is not None else {})

        record = {
            "businessIdeaId": proposal_id,
            "targetUserId": owner_id,
            "assessorId": caller.id,
            "riskScore": result.score,
            "riskLevel": str(result.level),
            "factors": {name: factor.model_dump() for name, factor in result.factors.items()},
            "recommendations": result.recommendations,
        }
        assessment_id = await self.store.create(Collections.RISK_ASSESSMENTS, record)

        await self.audit.append(AuditAction.RISK_ASSESSMENT_GENERATED, actor_id=caller.id, data={
            "assessmentId": assessment_id,
            "businessIdeaId": proposal_id,
            "riskScore": result.score,
            "riskLevel": str(result.level),
        })
        logger.info(
            "risk_assessment_generated",
            assessment_id=assessment_id,
            business_idea_id=proposal_id,
            risk_score=result.score,
            risk_level=str(result.level),
        )

        stored = await self.store.get(Collections.RISK_ASSESSMENTS, assessment_id)
        return RiskAssessmentRecord.from_document(stored)

    async def latest(self, caller: Optional[Caller], proposal_id: str) -> RiskAssessmentRecord:
        await self.guard.require_role(caller, Role.BANKER, operation="latest_risk_assessment")
        docs = await self.store.query(
            Collections.RISK_ASSESSMENTS,
            [Filter("businessIdeaId", "==", proposal_id)],
            order_by="created_at",
            descending=True,
            limit=1,
        )
        if not docs:
            raise NotFound("Risk assessment for business idea", proposal_id)
        return RiskAssessmentRecord.from_document(docs[0])
