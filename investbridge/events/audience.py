"""
Audience rules.

Pure functions of (event, candidate users, referenced owner id). No I/O:
the pipeline loads candidates for ``audience_roles(event)`` and the owner of
any referenced record, then asks ``compute_audience`` who gets notified.
"""

from typing import Optional, Sequence

from investbridge.events.schemas import (
    AdvisorSuggestionCreated,
    BusinessIdeaCreated,
    InvestmentProposalCreated,
    LoanSchemeCreated,
    ProposalStatusChanged,
    QueryCreated,
    ResponseCreated,
)
from investbridge.roles.registry import Role
from investbridge.store.base import Document


def audience_roles(event) -> tuple[Role, ...]:
    """Roles whose holders are broadcast candidates for ``event``."""
    if isinstance(event, BusinessIdeaCreated):
        return (Role.INVESTOR,)
    if isinstance(event, QueryCreated):
        return (Role.BUSINESS_ADVISOR,)
    if isinstance(event, AdvisorSuggestionCreated) and not event.target_user_id:
        return (Role.BUSINESS_PERSON,)
    if isinstance(event, LoanSchemeCreated):
        return (Role.BUSINESS_PERSON, Role.INVESTOR)
    return ()


def preferred_sectors(user: Document) -> list[str]:
    profile = user.get("profile") or {}
    sectors = profile.get("preferredSectors") if isinstance(profile, dict) else None
    if sectors is None:
        sectors = user.get("preferredSectors")
    return [str(s) for s in sectors or [] if s]


def matches_preferences(user: Document, category: str) -> bool:
    """An investor with no stated preferences matches every category."""
    sectors = preferred_sectors(user)
    if not sectors:
        return True
    wanted = (category or "").strip().lower()
    return any(s.strip().lower() == wanted for s in sectors)


def _dedupe(ids: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered = []
    for uid in ids:
        if uid and uid not in seen:
            seen.add(uid)
            ordered.append(uid)
    return ordered


def _holding(candidates: Sequence[Document], roles: tuple[Role, ...]) -> list[Document]:
    wanted = {str(r) for r in roles}
    return [c for c in candidates if c.get("role") in wanted]


def compute_audience(
    event,
    candidates: Sequence[Document] = (),
    owner_id: Optional[str] = None,
) -> list[str]:
    """
    Recipient ids for ``event``, deduplicated, in candidate order.

    ``owner_id`` is the owner of the referenced record (the idea for a new
    proposal, the query for a new response).
    """
    if isinstance(event, BusinessIdeaCreated):
        investors = _holding(candidates, (Role.INVESTOR,))
        return _dedupe([u.id for u in investors if matches_preferences(u, event.category)])

    if isinstance(event, (InvestmentProposalCreated, ResponseCreated)):
        return [owner_id] if owner_id else []

    if isinstance(event, ProposalStatusChanged):
        return [event.investor_id]

    if isinstance(event, QueryCreated):
        return _dedupe([u.id for u in _holding(candidates, (Role.BUSINESS_ADVISOR,))])

    if isinstance(event, AdvisorSuggestionCreated):
        if event.target_user_id:
            return [event.target_user_id]
        return _dedupe([u.id for u in _holding(candidates, (Role.BUSINESS_PERSON,))])

    if isinstance(event, LoanSchemeCreated):
        return _dedupe([u.id for u in _holding(candidates, (Role.BUSINESS_PERSON, Role.INVESTOR))])

    return []
