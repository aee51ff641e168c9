"""
Event Parsing Tests.

Raw camelCase documents -> closed DomainEvent variants.
"""

import pytest
from pydantic import TypeAdapter

from investbridge.errors import InvalidEvent
from investbridge.events.parsing import TRIGGER_COLLECTIONS, parse_created, parse_proposal_update
from investbridge.events.schemas import (
    BusinessIdeaCreated,
    DomainEvent,
    LoanSchemeCreated,
    ProposalStatusChanged,
    ResponseCreated,
)


class TestParseCreated:
    def test_business_idea(self):
        event = parse_created("businessIdeas", "idea-1", {
            "userId": "bp-1",
            "title": "Solar kiosks",
            "category": "Sustainability",
            "budget": 2500000,
            "teamSize": "3",
        })
        assert isinstance(event, BusinessIdeaCreated)
        assert event.id == "idea-1"
        assert event.user_id == "bp-1"
        assert event.budget == "2500000"
        assert event.team_size == 3

    def test_response(self):
        event = parse_created("responses", "r1", {"queryId": "q1", "advisorId": "a1", "text": "ignored"})
        assert isinstance(event, ResponseCreated)
        assert event.query_id == "q1"

    def test_loan_scheme_amounts(self):
        event = parse_created("loanSchemes", "l1", {
            "bankerId": "b1",
            "schemeName": "MSME Boost",
            "bankName": "SBI",
            "minAmount": 100000,
            "maxAmount": 5000000,
        })
        assert isinstance(event, LoanSchemeCreated)
        assert event.max_amount == 5000000

    def test_unknown_collection(self):
        with pytest.raises(InvalidEvent):
            parse_created("users", "u1", {"role": "user"})

    def test_missing_required_field(self):
        with pytest.raises(InvalidEvent) as exc_info:
            parse_created("investmentProposals", "p1", {"businessIdeaId": "idea-1"})
        assert "investor_id" in exc_info.value.details["errors"]

    def test_trigger_collections(self):
        assert TRIGGER_COLLECTIONS == {
            "businessIdeas",
            "investmentProposals",
            "queries",
            "responses",
            "advisorSuggestions",
            "loanSchemes",
        }


class TestParseProposalUpdate:
    def test_status_change(self):
        before = {"businessIdeaId": "idea-1", "investorId": "i1", "amount": 5000, "status": "pending"}
        after = {**before, "status": "accepted"}
        event = parse_proposal_update("p1", before, after)
        assert isinstance(event, ProposalStatusChanged)
        assert event.previous_status == "pending"
        assert event.status == "accepted"
        assert event.amount == 5000

    def test_unchanged_status(self):
        doc = {"businessIdeaId": "idea-1", "investorId": "i1", "status": "pending"}
        assert parse_proposal_update("p1", doc, {**doc, "amount": 9000}) is None


class TestDiscriminatedUnion:
    def test_round_trip_by_kind(self):
        adapter = TypeAdapter(DomainEvent)
        event = adapter.validate_python({"kind": "response_created", "id": "r1", "query_id": "q1", "advisor_id": "a1"})
        assert isinstance(event, ResponseCreated)
