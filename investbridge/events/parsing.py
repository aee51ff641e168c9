"""
Raw store document -> DomainEvent.

Stored documents use camelCase keys; each collection maps onto exactly one
created-event variant. The only update trigger is an investment proposal
whose status changed.
"""

from typing import Any, Optional

from pydantic import ValidationError

from investbridge.errors import InvalidEvent
from investbridge.events.schemas import (
    AdvisorSuggestionCreated,
    BusinessIdeaCreated,
    InvestmentProposalCreated,
    LoanSchemeCreated,
    ProposalStatusChanged,
    QueryCreated,
    ResponseCreated,
)
from investbridge.store.base import Collections

# collection -> (variant, {stored key: field name})
_CREATED: dict[str, tuple[type, dict[str, str]]] = {
    Collections.BUSINESS_IDEAS: (BusinessIdeaCreated, {
        "userId": "user_id",
        "title": "title",
        "category": "category",
        "budget": "budget",
        "description": "description",
        "teamSize": "team_size",
        "status": "status",
    }),
    Collections.INVESTMENT_PROPOSALS: (InvestmentProposalCreated, {
        "businessIdeaId": "business_idea_id",
        "investorId": "investor_id",
        "amount": "amount",
        "equity": "equity",
        "status": "status",
    }),
    Collections.QUERIES: (QueryCreated, {
        "userId": "user_id",
        "title": "title",
        "category": "category",
        "priority": "priority",
    }),
    Collections.RESPONSES: (ResponseCreated, {
        "queryId": "query_id",
        "advisorId": "advisor_id",
    }),
    Collections.ADVISOR_SUGGESTIONS: (AdvisorSuggestionCreated, {
        "advisorId": "advisor_id",
        "title": "title",
        "category": "category",
        "priority": "priority",
        "targetUserId": "target_user_id",
    }),
    Collections.LOAN_SCHEMES: (LoanSchemeCreated, {
        "bankerId": "banker_id",
        "schemeName": "scheme_name",
        "bankName": "bank_name",
        "schemeType": "scheme_type",
        "minAmount": "min_amount",
        "maxAmount": "max_amount",
    }),
}

TRIGGER_COLLECTIONS = frozenset(_CREATED)


def _normalize(field: str, value: Any) -> Any:
    if field == "budget":
        return str(value)
    if field == "team_size":
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    return value


def _project(doc_id: str, data: dict, fields: dict[str, str]) -> dict:
    values: dict[str, Any] = {"id": doc_id}
    for stored_key, field in fields.items():
        value = data.get(stored_key)
        if value is None or value == "":
            continue
        values[field] = _normalize(field, value)
    return values


def parse_created(collection: str, doc_id: str, data: dict):
    """Parse a newly created document into its created-event variant."""
    entry = _CREATED.get(collection)
    if entry is None:
        raise InvalidEvent(f"No created trigger for collection: {collection}", collection=collection)
    model, fields = entry
    try:
        return model.model_validate(_project(doc_id, data, fields))
    except ValidationError as e:
        raise InvalidEvent(
            f"Malformed {collection} document: {doc_id}",
            collection=collection,
            errors=[err["loc"][-1] if err["loc"] else "" for err in e.errors()],
        ) from e


def parse_proposal_update(doc_id: str, before: dict, after: dict) -> Optional[ProposalStatusChanged]:
    """Return a status-change event, or None when the status did not change."""
    if before.get("status") == after.get("status"):
        return None
    values = _project(doc_id, after, _CREATED[Collections.INVESTMENT_PROPOSALS][1])
    values["previous_status"] = before.get("status")
    try:
        return ProposalStatusChanged.model_validate(values)
    except ValidationError as e:
        raise InvalidEvent(
            f"Malformed investmentProposals document: {doc_id}",
            collection=Collections.INVESTMENT_PROPOSALS,
            errors=[err["loc"][-1] if err["loc"] else "" for err in e.errors()],
        ) from e
