"""
Notification builders.

One builder per notification type; each returns the stored notification
fields without the recipient. ``to_record`` attaches the recipient and the
unread flag.
"""

from typing import Optional

from pydantic import BaseModel, Field

from investbridge.events.schemas import (
    AdvisorSuggestionCreated,
    BusinessIdeaCreated,
    InvestmentProposalCreated,
    LoanSchemeCreated,
    NotificationType,
    ProposalStatusChanged,
    QueryCreated,
    ResponseCreated,
)
from investbridge.push.transport import PushMessage


class NotificationDraft(BaseModel):
    title: str
    body: str
    type: NotificationType
    data: dict = Field(default_factory=dict)

    def to_record(self, user_id: str) -> dict:
        return {
            "userId": user_id,
            "title": self.title,
            "body": self.body,
            "type": str(self.type),
            "data": dict(self.data),
            "read": False,
        }

    def to_push(self) -> PushMessage:
        data = {k: str(v) for k, v in self.data.items() if v is not None}
        data["type"] = str(self.type)
        return PushMessage(title=self.title, body=self.body, data=data)


def format_amount(amount: Optional[float]) -> str:
    if amount is None:
        return "0"
    if float(amount).is_integer():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def business_idea_published(event: BusinessIdeaCreated) -> NotificationDraft:
    return NotificationDraft(
        title="New Business Proposal",
        body=f'Check out the new business idea: "{event.title}"',
        type=NotificationType.NEW_BUSINESS_PROPOSAL,
        data={
            "ideaId": event.id,
            "ideaTitle": event.title,
            "category": event.category,
            "budget": event.budget,
        },
    )


def investment_proposal_received(event: InvestmentProposalCreated, idea_title: str) -> NotificationDraft:
    return NotificationDraft(
        title="New Investment Proposal",
        body=f'You received an investment proposal of ₹{format_amount(event.amount)} for "{idea_title}"',
        type=NotificationType.NEW_INVESTMENT_PROPOSAL,
        data={
            "proposalId": event.id,
            "businessIdeaId": event.business_idea_id,
            "amount": event.amount,
            "investorId": event.investor_id,
            "businessTitle": idea_title,
        },
    )


def proposal_status_updated(event: ProposalStatusChanged, idea_title: str) -> NotificationDraft:
    return NotificationDraft(
        title="Proposal Status Update",
        body=f'Your proposal for "{idea_title}" has been {event.status}',
        type=NotificationType.PROPOSAL_STATUS_UPDATE,
        data={
            "proposalId": event.id,
            "businessIdeaId": event.business_idea_id,
            "businessTitle": idea_title,
            "status": event.status,
            "amount": event.amount,
        },
    )


def query_posted(event: QueryCreated) -> NotificationDraft:
    return NotificationDraft(
        title="New Business Query",
        body=f'A new question needs your expertise: "{event.title}"',
        type=NotificationType.NEW_QUERY,
        data={
            "queryId": event.id,
            "queryTitle": event.title,
            "category": event.category,
            "priority": event.priority,
        },
    )


def query_answered(event: ResponseCreated, query_title: str) -> NotificationDraft:
    return NotificationDraft(
        title="Query Answered",
        body=f'Your question "{query_title}" has received a new response',
        type=NotificationType.NEW_RESPONSE,
        data={
            "responseId": event.id,
            "queryId": event.query_id,
            "queryTitle": query_title,
            "advisorId": event.advisor_id,
        },
    )


def advisor_tip(event: AdvisorSuggestionCreated) -> NotificationDraft:
    return NotificationDraft(
        title="New Expert Advice",
        body=f'New expert tip available: "{event.title}"',
        type=NotificationType.NEW_ADVISOR_TIP,
        data={
            "suggestionId": event.id,
            "title": event.title,
            "category": event.category,
            "priority": event.priority,
            "advisorId": event.advisor_id,
        },
    )


def loan_scheme_launched(event: LoanSchemeCreated) -> NotificationDraft:
    return NotificationDraft(
        title="New Loan Scheme Available",
        body=(
            f'{event.bank_name} launched "{event.scheme_name}" - '
            f"{format_amount(event.min_amount)} to {format_amount(event.max_amount)}"
        ),
        type=NotificationType.NEW_LOAN_SCHEME,
        data={
            "schemeId": event.id,
            "schemeName": event.scheme_name,
            "bankName": event.bank_name,
            "schemeType": event.scheme_type,
        },
    )


def role_changed(previous_role: str, new_role: str) -> NotificationDraft:
    return NotificationDraft(
        title="Role Changed Successfully",
        body=(
            f"Your role has been changed from {previous_role.replace('_', ' ')} "
            f"to {new_role.replace('_', ' ')}."
        ),
        type=NotificationType.ROLE_UPDATE,
        data={"previousRole": previous_role, "newRole": new_role},
    )
