"""
Event Fan-out Pipeline.

One handler per DomainEvent variant. Every handler:
1. resolves referenced records (missing record: log and stop, nothing audited)
2. computes the audience
3. writes one unread Notification per recipient in batches bounded by the
   store's batch limit (a failed batch is logged, not retried)
4. attempts push per recipient (failures swallowed)
5. appends one audit entry summarizing the fan-out

Delivery is at-least-once with no dedup: a redelivered trigger writes the
notifications again.
"""

from typing import Optional, Sequence

import structlog

from investbridge.events.audience import audience_roles, compute_audience
from investbridge.events.delivery import PushDelivery
from investbridge.events.notifications import (
    NotificationDraft,
    advisor_tip,
    business_idea_published,
    investment_proposal_received,
    loan_scheme_launched,
    proposal_status_updated,
    query_answered,
    query_posted,
)
from investbridge.events.parsing import parse_created, parse_proposal_update
from investbridge.events.schemas import (
    AdvisorSuggestionCreated,
    BusinessIdeaCreated,
    FanoutReport,
    InvestmentProposalCreated,
    LoanSchemeCreated,
    ProposalStatus,
    ProposalStatusChanged,
    QueryCreated,
    ResponseCreated,
)
from investbridge.push.transport import PushTransport
from investbridge.roles.registry import Role
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import (
    ArrayUnion,
    Collections,
    Document,
    DocumentStore,
    Filter,
    Increment,
    WriteOp,
    chunked,
    utcnow,
)

logger = structlog.get_logger(__name__)


class FanoutPipeline:
    """Reacts to domain events by notifying the interested audience."""

    def __init__(self, store: DocumentStore, push: PushTransport, audit: AuditLog):
        self.store = store
        self.delivery = PushDelivery(push)
        self.audit = audit

    # ── Entry points ──────────────────────────────────────────────────

    async def handle_created(self, collection: str, doc_id: str, data: dict) -> FanoutReport:
        return await self.handle(parse_created(collection, doc_id, data))

    async def handle_updated(self, collection: str, doc_id: str, before: dict, after: dict) -> FanoutReport:
        if collection != Collections.INVESTMENT_PROPOSALS:
            return FanoutReport(event_kind="unsupported_update", event_id=doc_id, skipped_reason="no_update_trigger")
        event = parse_proposal_update(doc_id, before, after)
        if event is None:
            return FanoutReport(event_kind="proposal_status_changed", event_id=doc_id, skipped_reason="status_unchanged")
        return await self.handle(event)

    async def handle(self, event) -> FanoutReport:
        if isinstance(event, BusinessIdeaCreated):
            report = await self._on_business_idea(event)
        elif isinstance(event, InvestmentProposalCreated):
            report = await self._on_proposal_created(event)
        elif isinstance(event, ProposalStatusChanged):
            report = await self._on_proposal_status(event)
        elif isinstance(event, QueryCreated):
            report = await self._on_query(event)
        elif isinstance(event, ResponseCreated):
            report = await self._on_response(event)
        elif isinstance(event, AdvisorSuggestionCreated):
            report = await self._on_suggestion(event)
        elif isinstance(event, LoanSchemeCreated):
            report = await self._on_loan_scheme(event)
        else:
            raise TypeError(f"Unsupported event: {type(event).__name__}")

        logger.info(
            "fanout_completed",
            event_kind=report.event_kind,
            event_id=report.event_id,
            audience_size=report.audience_size,
            notifications_written=report.notifications_written,
            failed_batches=report.failed_batches,
            skipped_reason=report.skipped_reason,
        )
        return report

    # ── Handlers ──────────────────────────────────────────────────────

    async def _on_business_idea(self, event: BusinessIdeaCreated) -> FanoutReport:
        candidates = await self._candidates(audience_roles(event))
        recipients = compute_audience(event, candidates)
        report = await self._deliver(event, recipients, business_idea_published(event), candidates)
        await self.audit.append(AuditAction.BUSINESS_IDEA_PUBLISHED, actor_id=event.user_id, data={
            "ideaId": event.id,
            "title": event.title,
            "category": event.category,
            **_summary(report),
        })
        return report

    async def _on_proposal_created(self, event: InvestmentProposalCreated) -> FanoutReport:
        idea = await self.store.get(Collections.BUSINESS_IDEAS, event.business_idea_id)
        if idea is None:
            return self._missing(event, "BusinessIdea", event.business_idea_id)

        owner_id = idea.get("userId")
        recipients = compute_audience(event, owner_id=owner_id)
        draft = investment_proposal_received(event, idea.get("title", ""))
        report = await self._deliver(event, recipients, draft)

        await self.store.update(Collections.BUSINESS_IDEAS, event.business_idea_id, {"interested": Increment(1)})

        await self.audit.append(AuditAction.INVESTMENT_PROPOSAL_CREATED, actor_id=event.investor_id, data={
            "proposalId": event.id,
            "businessIdeaId": event.business_idea_id,
            "amount": event.amount,
            "targetUserId": owner_id,
            **_summary(report),
        })
        return report

    async def _on_proposal_status(self, event: ProposalStatusChanged) -> FanoutReport:
        idea = await self.store.get(Collections.BUSINESS_IDEAS, event.business_idea_id)
        if idea is None:
            return self._missing(event, "BusinessIdea", event.business_idea_id)

        recipients = compute_audience(event)
        draft = proposal_status_updated(event, idea.get("title", ""))
        report = await self._deliver(event, recipients, draft)

        if event.status == ProposalStatus.ACCEPTED:
            await self._record_investment(event, idea)

        await self.audit.append(AuditAction.INVESTMENT_PROPOSAL_STATUS_UPDATED, actor_id=event.investor_id, data={
            "proposalId": event.id,
            "businessIdeaId": event.business_idea_id,
            "oldStatus": event.previous_status,
            "newStatus": event.status,
            "amount": event.amount,
            **_summary(report),
        })
        return report

    async def _on_query(self, event: QueryCreated) -> FanoutReport:
        candidates = await self._candidates(audience_roles(event))
        recipients = compute_audience(event, candidates)
        report = await self._deliver(event, recipients, query_posted(event), candidates)
        await self.audit.append(AuditAction.QUERY_CREATED, actor_id=event.user_id, data={
            "queryId": event.id,
            "title": event.title,
            "category": event.category,
            **_summary(report),
        })
        return report

    async def _on_response(self, event: ResponseCreated) -> FanoutReport:
        query = await self.store.get(Collections.QUERIES, event.query_id)
        if query is None:
            return self._missing(event, "Query", event.query_id)

        owner_id = query.get("userId")
        await self.store.update(Collections.QUERIES, event.query_id, {
            "status": "answered",
            "responseCount": Increment(1),
        })

        recipients = compute_audience(event, owner_id=owner_id)
        draft = query_answered(event, query.get("title", ""))
        report = await self._deliver(event, recipients, draft)

        await self.audit.append(AuditAction.RESPONSE_CREATED, actor_id=event.advisor_id, data={
            "responseId": event.id,
            "queryId": event.query_id,
            "queryTitle": query.get("title", ""),
            "targetUserId": owner_id,
            **_summary(report),
        })
        return report

    async def _on_suggestion(self, event: AdvisorSuggestionCreated) -> FanoutReport:
        candidates = await self._candidates(audience_roles(event))
        recipients = compute_audience(event, candidates)
        report = await self._deliver(event, recipients, advisor_tip(event), candidates)
        await self.audit.append(AuditAction.ADVISOR_SUGGESTION_CREATED, actor_id=event.advisor_id, data={
            "suggestionId": event.id,
            "title": event.title,
            "category": event.category,
            "targetUserId": event.target_user_id or "general",
            **_summary(report),
        })
        return report

    async def _on_loan_scheme(self, event: LoanSchemeCreated) -> FanoutReport:
        candidates = await self._candidates(audience_roles(event))
        recipients = compute_audience(event, candidates)
        report = await self._deliver(event, recipients, loan_scheme_launched(event), candidates)
        await self.audit.append(AuditAction.LOAN_SCHEME_CREATED, actor_id=event.banker_id, data={
            "schemeId": event.id,
            "schemeName": event.scheme_name,
            "bankName": event.bank_name,
            **_summary(report),
        })
        return report

    # ── Side effects ──────────────────────────────────────────────────

    async def _record_investment(self, event: ProposalStatusChanged, idea: Document) -> None:
        """Append the accepted proposal to the investor's portfolio."""
        investment = {
            "proposalId": event.id,
            "investorId": event.investor_id,
            "businessIdeaId": event.business_idea_id,
            "category": idea.get("category", ""),
            "amount": event.amount,
            "currentValue": event.amount,
            "equity": event.equity or 0,
            "status": "active",
            "dateInvested": utcnow().isoformat(),
        }
        portfolio = await self.store.get(Collections.PORTFOLIOS, event.investor_id)
        if portfolio is None:
            await self.store.set(Collections.PORTFOLIOS, event.investor_id, {
                "investorId": event.investor_id,
                "investments": [investment],
                "totalInvested": event.amount,
                "totalValue": event.amount,
                "roi": 0,
            })
        else:
            await self.store.update(Collections.PORTFOLIOS, event.investor_id, {
                "investments": ArrayUnion(investment),
                "totalInvested": Increment(event.amount),
                "totalValue": Increment(event.amount),
            })
        logger.info("investment_recorded", investor_id=event.investor_id, proposal_id=event.id, amount=event.amount)

    # ── Delivery ──────────────────────────────────────────────────────

    async def _candidates(self, roles: Sequence[Role]) -> list[Document]:
        if not roles:
            return []
        values = [str(r) for r in roles]
        flt = Filter("role", "==", values[0]) if len(values) == 1 else Filter("role", "in", values)
        return await self.store.query(Collections.USERS, [flt])

    async def _deliver(
        self,
        event,
        recipients: list[str],
        draft: NotificationDraft,
        known_users: Sequence[Document] = (),
    ) -> FanoutReport:
        report = FanoutReport(event_kind=event.kind, event_id=event.id, audience_size=len(recipients))
        if not recipients:
            return report

        written, batches, failed = await self._write_notifications(event, recipients, draft)
        report.notifications_written = written
        report.batches = batches
        report.failed_batches = failed

        tokens = await self._device_tokens(recipients, known_users)
        attempted, push_failed = await self.delivery.deliver(tokens, draft.to_push())
        report.pushes_attempted = attempted
        report.pushes_failed = push_failed
        return report

    async def _write_notifications(self, event, recipients: list[str], draft: NotificationDraft) -> tuple[int, int, int]:
        ops = [WriteOp.create(Collections.NOTIFICATIONS, draft.to_record(uid)) for uid in recipients]
        written = batches = failed = 0
        for batch in chunked(ops, self.store.max_batch_size):
            batches += 1
            try:
                await self.store.batch_write(batch)
            except Exception as e:
                failed += 1
                logger.error(
                    "fanout_batch_failed",
                    event_kind=event.kind,
                    event_id=event.id,
                    batch=batches,
                    size=len(batch),
                    error=str(e),
                )
                continue
            written += len(batch)

        if failed:
            logger.warning(
                "fanout_partial",
                event_kind=event.kind,
                event_id=event.id,
                batches=batches,
                failed_batches=failed,
                notifications_written=written,
                notifications_lost=len(ops) - written,
            )
        return written, batches, failed

    async def _device_tokens(
        self,
        recipients: list[str],
        known_users: Sequence[Document],
    ) -> list[tuple[str, Optional[str]]]:
        by_id = {u.id: u for u in known_users}
        tokens = []
        for uid in recipients:
            user = by_id.get(uid)
            if user is None:
                user = await self.store.get(Collections.USERS, uid)
            tokens.append((uid, user.get("fcmToken") if user is not None else None))
        return tokens

    def _missing(self, event, resource: str, resource_id: str) -> FanoutReport:
        logger.error("fanout_reference_missing", event_kind=event.kind, event_id=event.id,
                     resource=resource, resource_id=resource_id)
        return FanoutReport(event_kind=event.kind, event_id=event.id, skipped_reason=f"{resource} not found")


def _summary(report: FanoutReport) -> dict:
    return {
        "audienceSize": report.audience_size,
        "notificationsSent": report.notifications_written,
        "failedBatches": report.failed_batches,
    }
