"""
Domain Event Schemas.

Every store trigger is parsed into one variant of a closed, tagged union
(discriminated on ``kind``). Handlers dispatch on the variant, never on
raw payloads.
"""

from enum import StrEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────


class NotificationType(StrEnum):
    NEW_BUSINESS_PROPOSAL = "NEW_BUSINESS_PROPOSAL"
    NEW_INVESTMENT_PROPOSAL = "NEW_INVESTMENT_PROPOSAL"
    PROPOSAL_STATUS_UPDATE = "PROPOSAL_STATUS_UPDATE"
    NEW_QUERY = "NEW_QUERY"
    NEW_RESPONSE = "NEW_RESPONSE"
    NEW_ADVISOR_TIP = "NEW_ADVISOR_TIP"
    NEW_LOAN_SCHEME = "NEW_LOAN_SCHEME"
    ROLE_UPDATE = "ROLE_UPDATE"


class ProposalStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


# ── Event variants ─────────────────────────────────────────────────────


class _Event(BaseModel):
    id: str = Field(..., min_length=1)


class BusinessIdeaCreated(_Event):
    kind: Literal["business_idea_created"] = "business_idea_created"
    user_id: str
    title: str = ""
    category: str = ""
    budget: Optional[str] = None
    description: str = ""
    team_size: Optional[int] = None
    status: Optional[str] = None


class InvestmentProposalCreated(_Event):
    kind: Literal["investment_proposal_created"] = "investment_proposal_created"
    business_idea_id: str
    investor_id: str
    amount: float = 0.0
    equity: float = 0.0
    status: str = ProposalStatus.PENDING


class ProposalStatusChanged(_Event):
    kind: Literal["proposal_status_changed"] = "proposal_status_changed"
    business_idea_id: str
    investor_id: str
    amount: float = 0.0
    equity: float = 0.0
    previous_status: Optional[str] = None
    status: str


class QueryCreated(_Event):
    kind: Literal["query_created"] = "query_created"
    user_id: str
    title: str = ""
    category: str = ""
    priority: Optional[str] = None


class ResponseCreated(_Event):
    kind: Literal["response_created"] = "response_created"
    query_id: str
    advisor_id: str


class AdvisorSuggestionCreated(_Event):
    kind: Literal["advisor_suggestion_created"] = "advisor_suggestion_created"
    advisor_id: str
    title: str = ""
    category: str = ""
    priority: Optional[str] = None
    target_user_id: Optional[str] = None


class LoanSchemeCreated(_Event):
    kind: Literal["loan_scheme_created"] = "loan_scheme_created"
    banker_id: str
    scheme_name: str = ""
    bank_name: str = ""
    scheme_type: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None


DomainEvent = Annotated[
    Union[
        BusinessIdeaCreated,
        InvestmentProposalCreated,
        ProposalStatusChanged,
        QueryCreated,
        ResponseCreated,
        AdvisorSuggestionCreated,
        LoanSchemeCreated,
    ],
    Field(discriminator="kind"),
]


# ── Outcome ────────────────────────────────────────────────────────────


class FanoutReport(BaseModel):
    """What one fan-out did. Never returned to an end user."""

    event_kind: str
    event_id: str
    audience_size: int = 0
    notifications_written: int = 0
    batches: int = 0
    failed_batches: int = 0
    pushes_attempted: int = 0
    pushes_failed: int = 0
    skipped_reason: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.failed_batches > 0
