"""
Event Fan-out Pipeline Tests.

Covers:
- per-recipient unread notifications for each event kind
- batch chunking at the store's batch limit and partial fan-out
- best-effort push delivery
- referenced-record side effects (interest counter, query status, portfolio)
- missing references and at-least-once redelivery
"""

import pytest

from investbridge.api.deps import build_platform
from investbridge.errors import BatchLimitExceeded
from investbridge.events.pipeline import FanoutPipeline
from investbridge.push.transport import DisabledPushTransport
from investbridge.services.audit_log import AuditLog
from investbridge.store.base import Collections, Filter


async def _notifications(store, type_: str) -> list:
    return await store.query(Collections.NOTIFICATIONS, [Filter("type", "==", type_)])


async def _seed_idea(store, owner_id: str, idea_id: str = "idea-1", **fields) -> str:
    data = {"userId": owner_id, "title": "Solar kiosks", "category": "Technology", **fields}
    await store.set(Collections.BUSINESS_IDEAS, idea_id, data)
    return idea_id


def _idea_doc(owner_id: str) -> dict:
    return {
        "userId": owner_id,
        "title": "Solar kiosks",
        "category": "Technology",
        "budget": "₹25,00,000",
        "description": "Pay-as-you-go solar charging",
    }


class FlakyBatchStore:
    """Delegates to a real store; the listed batch_write calls raise."""

    def __init__(self, inner, fail_on: set[int]):
        self._inner = inner
        self._fail_on = fail_on
        self.calls = 0

    def __getattr__(self, name):
        return getattr(self._inner, name)

    @property
    def max_batch_size(self) -> int:
        return self._inner.max_batch_size

    async def batch_write(self, ops):
        self.calls += 1
        if self.calls in self._fail_on:
            raise BatchLimitExceeded("simulated store rejection")
        await self._inner.batch_write(ops)


# ── Business ideas ──────────────────────────────────────────────────────


class TestBusinessIdeaFanout:
    @pytest.mark.asyncio
    async def test_m_of_n_investors_notified(self, platform, make_user, audit_entries):
        owner = await make_user("business_person")
        for _ in range(3):
            await make_user("investor", profile={"preferredSectors": ["Technology"]})
        for _ in range(2):
            await make_user("investor", profile={"preferredSectors": ["Agriculture"]})
        await make_user("business_advisor")

        report = await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.audience_size == 3
        assert report.notifications_written == 3
        notes = await _notifications(platform.store, "NEW_BUSINESS_PROPOSAL")
        assert len(notes) == 3
        assert all(n.get("read") is False for n in notes)
        assert all(n.get("data")["ideaId"] == "idea-1" for n in notes)

        published = await audit_entries("BUSINESS_IDEA_PUBLISHED")
        assert len(published) == 1
        assert published[0].get("userId") == owner
        assert published[0].get("data")["notificationsSent"] == 3

    @pytest.mark.asyncio
    async def test_no_preferences_notifies_every_investor(self, platform, make_user):
        owner = await make_user("business_person")
        for _ in range(4):
            await make_user("investor")

        report = await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))
        assert report.notifications_written == 4

    @pytest.mark.asyncio
    async def test_empty_audience_still_audited(self, platform, make_user, audit_entries):
        owner = await make_user("business_person")
        report = await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))
        assert report.audience_size == 0
        assert report.batches == 0
        assert len(await audit_entries("BUSINESS_IDEA_PUBLISHED")) == 1

    @pytest.mark.asyncio
    async def test_redelivery_duplicates_notifications(self, platform, make_user):
        owner = await make_user("business_person")
        await make_user("investor")
        await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))
        await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))
        assert len(await _notifications(platform.store, "NEW_BUSINESS_PROPOSAL")) == 2


# ── Batching ────────────────────────────────────────────────────────────


class TestBatching:
    @pytest.mark.asyncio
    async def test_audience_chunked_at_batch_limit(self, session_factory, push, make_user):
        small = build_platform(session_factory, push=push, max_batch_size=3)
        owner = await make_user("business_person")
        for _ in range(7):
            await make_user("investor")

        report = await small.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.batches == 3
        assert report.failed_batches == 0
        assert report.notifications_written == 7
        assert len(await _notifications(small.store, "NEW_BUSINESS_PROPOSAL")) == 7

    @pytest.mark.asyncio
    async def test_failed_batch_is_partial_not_fatal(self, session_factory, push, make_user, audit_entries):
        small = build_platform(session_factory, push=push, max_batch_size=2)
        flaky = FlakyBatchStore(small.store, fail_on={2})
        pipeline = FanoutPipeline(flaky, push, AuditLog(small.store))

        owner = await make_user("business_person")
        for _ in range(5):
            await make_user("investor")

        report = await pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.batches == 3
        assert report.failed_batches == 1
        assert report.partial
        assert report.notifications_written == 3
        assert len(await _notifications(small.store, "NEW_BUSINESS_PROPOSAL")) == 3

        published = await audit_entries("BUSINESS_IDEA_PUBLISHED")
        assert published[0].get("data")["failedBatches"] == 1


# ── Push ────────────────────────────────────────────────────────────────


class TestPushDelivery:
    @pytest.mark.asyncio
    async def test_push_sent_to_recipients_with_tokens(self, platform, push, make_user):
        owner = await make_user("business_person")
        await make_user("investor", fcmToken="tok-1")
        await make_user("investor", fcmToken="tok-2")
        await make_user("investor")

        report = await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.pushes_attempted == 2
        assert report.pushes_failed == 0
        assert sorted(token for token, _ in push.sent) == ["tok-1", "tok-2"]
        message = push.sent[0][1]
        assert message.data["type"] == "NEW_BUSINESS_PROPOSAL"
        assert message.data["ideaId"] == "idea-1"

    @pytest.mark.asyncio
    async def test_push_failure_swallowed(self, platform, push, make_user):
        owner = await make_user("business_person")
        await make_user("investor", fcmToken="tok-ok")
        await make_user("investor", fcmToken="tok-bad")
        push.failing.add("tok-bad")

        report = await platform.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.pushes_attempted == 2
        assert report.pushes_failed == 1
        assert report.notifications_written == 2
        assert [token for token, _ in push.sent] == ["tok-ok"]

    @pytest.mark.asyncio
    async def test_disabled_transport_skips_push(self, session_factory, make_user):
        disabled = build_platform(session_factory, push=DisabledPushTransport())
        owner = await make_user("business_person")
        await make_user("investor", fcmToken="tok-1")

        report = await disabled.pipeline.handle_created("businessIdeas", "idea-1", _idea_doc(owner))

        assert report.notifications_written == 1
        assert report.pushes_attempted == 0
        assert report.pushes_failed == 0


# ── Investment proposals ────────────────────────────────────────────────


class TestProposalFanout:
    @pytest.mark.asyncio
    async def test_new_proposal_notifies_owner_and_counts_interest(self, platform, make_user, audit_entries):
        owner = await make_user("business_person")
        investor = await make_user("investor")
        await _seed_idea(platform.store, owner)

        report = await platform.pipeline.handle_created("investmentProposals", "p1", {
            "businessIdeaId": "idea-1",
            "investorId": investor,
            "amount": 250000,
            "equity": 10,
            "status": "pending",
        })

        assert report.audience_size == 1
        notes = await _notifications(platform.store, "NEW_INVESTMENT_PROPOSAL")
        assert [n.get("userId") for n in notes] == [owner]
        assert "250,000" in notes[0].get("body")

        idea = await platform.store.get(Collections.BUSINESS_IDEAS, "idea-1")
        assert idea.get("interested") == 1

        created = await audit_entries("INVESTMENT_PROPOSAL_CREATED")
        assert created[0].get("userId") == investor
        assert created[0].get("data")["targetUserId"] == owner

    @pytest.mark.asyncio
    async def test_missing_idea_skips_without_audit(self, platform, make_user, audit_entries):
        investor = await make_user("investor")
        report = await platform.pipeline.handle_created("investmentProposals", "p1", {
            "businessIdeaId": "gone",
            "investorId": investor,
            "amount": 1000,
        })
        assert report.skipped_reason == "BusinessIdea not found"
        assert await _notifications(platform.store, "NEW_INVESTMENT_PROPOSAL") == []
        assert await audit_entries() == []

    @pytest.mark.asyncio
    async def test_accepted_proposal_builds_portfolio(self, platform, make_user, audit_entries):
        owner = await make_user("business_person")
        investor = await make_user("investor")
        await _seed_idea(platform.store, owner)
        before = {"businessIdeaId": "idea-1", "investorId": investor, "amount": 100000, "status": "pending"}

        report = await platform.pipeline.handle_updated(
            "investmentProposals", "p1", before, {**before, "status": "accepted"}
        )

        assert report.audience_size == 1
        notes = await _notifications(platform.store, "PROPOSAL_STATUS_UPDATE")
        assert notes[0].get("userId") == investor
        assert notes[0].get("data")["status"] == "accepted"

        portfolio = await platform.store.get(Collections.PORTFOLIOS, investor)
        assert portfolio.get("totalInvested") == 100000
        assert portfolio.get("investments")[0]["category"] == "Technology"

        updated = await audit_entries("INVESTMENT_PROPOSAL_STATUS_UPDATED")
        assert updated[0].get("data")["oldStatus"] == "pending"
        assert updated[0].get("data")["newStatus"] == "accepted"

    @pytest.mark.asyncio
    async def test_second_acceptance_extends_portfolio(self, platform, make_user):
        owner = await make_user("business_person")
        investor = await make_user("investor")
        await _seed_idea(platform.store, owner, "idea-1")
        await _seed_idea(platform.store, owner, "idea-2", category="Retail")

        for proposal_id, idea_id, amount in (("p1", "idea-1", 100000), ("p2", "idea-2", 50000)):
            before = {"businessIdeaId": idea_id, "investorId": investor, "amount": amount, "status": "pending"}
            await platform.pipeline.handle_updated(
                "investmentProposals", proposal_id, before, {**before, "status": "accepted"}
            )

        portfolio = await platform.store.get(Collections.PORTFOLIOS, investor)
        assert len(portfolio.get("investments")) == 2
        assert portfolio.get("totalInvested") == 150000
        assert portfolio.get("totalValue") == 150000

    @pytest.mark.asyncio
    async def test_rejected_proposal_leaves_portfolio_alone(self, platform, make_user):
        owner = await make_user("business_person")
        investor = await make_user("investor")
        await _seed_idea(platform.store, owner)
        before = {"businessIdeaId": "idea-1", "investorId": investor, "amount": 100000, "status": "pending"}

        await platform.pipeline.handle_updated("investmentProposals", "p1", before, {**before, "status": "rejected"})

        assert await platform.store.get(Collections.PORTFOLIOS, investor) is None
        assert len(await _notifications(platform.store, "PROPOSAL_STATUS_UPDATE")) == 1

    @pytest.mark.asyncio
    async def test_unchanged_status_is_skipped(self, platform, audit_entries):
        doc = {"businessIdeaId": "idea-1", "investorId": "i1", "amount": 100, "status": "pending"}
        report = await platform.pipeline.handle_updated("investmentProposals", "p1", doc, {**doc, "amount": 200})
        assert report.skipped_reason == "status_unchanged"
        assert await audit_entries() == []

    @pytest.mark.asyncio
    async def test_updates_on_other_collections_ignored(self, platform):
        report = await platform.pipeline.handle_updated("queries", "q1", {}, {"status": "answered"})
        assert report.skipped_reason == "no_update_trigger"


# ── Queries and responses ───────────────────────────────────────────────


class TestQueryFanout:
    @pytest.mark.asyncio
    async def test_query_reaches_advisors(self, platform, make_user):
        asker = await make_user("business_person")
        advisors = [await make_user("business_advisor") for _ in range(2)]
        await make_user("investor")

        await platform.pipeline.handle_created("queries", "q1", {
            "userId": asker,
            "title": "How to price a SaaS?",
            "category": "Technology",
        })

        notes = await _notifications(platform.store, "NEW_QUERY")
        assert sorted(n.get("userId") for n in notes) == sorted(advisors)

    @pytest.mark.asyncio
    async def test_response_answers_query(self, platform, make_user, audit_entries):
        asker = await make_user("business_person")
        advisor = await make_user("business_advisor")
        await platform.store.set(Collections.QUERIES, "q1", {
            "userId": asker,
            "title": "How to price a SaaS?",
            "status": "open",
        })

        await platform.pipeline.handle_created("responses", "r1", {"queryId": "q1", "advisorId": advisor})
        await platform.pipeline.handle_created("responses", "r2", {"queryId": "q1", "advisorId": advisor})

        query = await platform.store.get(Collections.QUERIES, "q1")
        assert query.get("status") == "answered"
        assert query.get("responseCount") == 2

        notes = await _notifications(platform.store, "NEW_RESPONSE")
        assert [n.get("userId") for n in notes] == [asker, asker]
        assert len(await audit_entries("RESPONSE_CREATED")) == 2

    @pytest.mark.asyncio
    async def test_response_to_missing_query(self, platform, audit_entries):
        report = await platform.pipeline.handle_created("responses", "r1", {"queryId": "nope", "advisorId": "a1"})
        assert report.skipped_reason == "Query not found"
        assert await audit_entries() == []


# ── Suggestions and loan schemes ────────────────────────────────────────


class TestBroadcastFanout:
    @pytest.mark.asyncio
    async def test_targeted_tip(self, platform, make_user, audit_entries):
        target = await make_user("business_person")
        await make_user("business_person")

        await platform.pipeline.handle_created("advisorSuggestions", "s1", {
            "advisorId": "a1",
            "title": "Track your burn rate",
            "targetUserId": target,
        })

        notes = await _notifications(platform.store, "NEW_ADVISOR_TIP")
        assert [n.get("userId") for n in notes] == [target]
        assert (await audit_entries("ADVISOR_SUGGESTION_CREATED"))[0].get("data")["targetUserId"] == target

    @pytest.mark.asyncio
    async def test_general_tip(self, platform, make_user, audit_entries):
        for _ in range(3):
            await make_user("business_person")
        await make_user("investor")

        report = await platform.pipeline.handle_created("advisorSuggestions", "s1", {
            "advisorId": "a1",
            "title": "Track your burn rate",
        })

        assert report.notifications_written == 3
        assert (await audit_entries("ADVISOR_SUGGESTION_CREATED"))[0].get("data")["targetUserId"] == "general"

    @pytest.mark.asyncio
    async def test_loan_scheme(self, platform, make_user):
        await make_user("business_person")
        await make_user("investor")
        await make_user("banker")
        await make_user("user")

        report = await platform.pipeline.handle_created("loanSchemes", "l1", {
            "bankerId": "b1",
            "schemeName": "MSME Boost",
            "bankName": "SBI",
            "minAmount": 100000,
            "maxAmount": 5000000,
        })

        assert report.notifications_written == 2
        notes = await _notifications(platform.store, "NEW_LOAN_SCHEME")
        assert "100,000 to 5,000,000" in notes[0].get("body")
