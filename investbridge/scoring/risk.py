"""
Proposal risk scoring.

Five independent factor functions, each 0-100, combined by fixed weights.
Higher is safer. The weighted sum is rounded half-up to an integer and
banded into a RiskLevel with one fixed recommendation per band.

``score`` is pure: no I/O, no clock, no randomness.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Optional

from investbridge.scoring.schemas import RiskFactor, RiskLevel, RiskScore

# ── Configuration ─────────────────────────────────────────────────────────

WEIGHTS: Mapping[str, Decimal] = {
    "market": Decimal("0.20"),
    "team": Decimal("0.25"),
    "financial": Decimal("0.30"),
    "technology": Decimal("0.15"),
    "competition": Decimal("0.10"),
}

HIGH_GROWTH_CATEGORIES = frozenset({"technology", "healthcare", "fintech", "sustainability"})
HIGH_COMPETITION_CATEGORIES = frozenset({"e-commerce", "food delivery", "taxi"})
COMPLEX_TECH_KEYWORDS = ("ai", "blockchain", "iot", "machine learning", "ar", "vr")

_TECH_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k).replace(r"\ ", r"\s+") for k in COMPLEX_TECH_KEYWORDS) + r")\b",
    re.IGNORECASE,
)
_NUMBER = re.compile(r"\d+(?:\.\d+)?")

# (lower bound inclusive, level, recommendation)
LEVEL_BANDS: tuple[tuple[int, RiskLevel, str], ...] = (
    (80, RiskLevel.LOW, "Low risk profile. Standard funding terms may be appropriate."),
    (60, RiskLevel.MEDIUM, "Moderate risk. Request detailed financial projections before committing."),
    (40, RiskLevel.HIGH, "High risk. Consider staged funding tied to milestones."),
    (0, RiskLevel.VERY_HIGH, "Very high risk. Funding is not recommended without significant mitigation."),
)


# ── Helpers ───────────────────────────────────────────────────────────────


def parse_budget(budget: Any) -> int:
    """Amount requested: all digits of the budget text, e.g. '₹800,00,000' -> 80000000."""
    if budget is None:
        return 0
    if isinstance(budget, (int, float)) and not isinstance(budget, bool):
        return int(budget)
    digits = re.sub(r"\D", "", str(budget))
    return int(digits) if digits else 0


def parse_years(value: Any) -> float:
    """Declared experience in years; free text like '3 years' is accepted."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    return float(match.group()) if match else 0.0


def owner_experience(owner_profile: Mapping[str, Any]) -> float:
    profile = owner_profile.get("profile") or {}
    for source in (profile, owner_profile):
        for key in ("experienceYears", "experience"):
            if isinstance(source, Mapping) and source.get(key) is not None:
                return parse_years(source.get(key))
    return 0.0


def team_size(proposal: Mapping[str, Any]) -> int:
    try:
        return int(proposal.get("teamSize") or 1)
    except (TypeError, ValueError):
        return 1


def _clamp(score: int) -> int:
    return max(0, min(100, score))


# ── Factors ───────────────────────────────────────────────────────────────


def market_factor(proposal: Mapping[str, Any]) -> tuple[int, dict]:
    category = str(proposal.get("category") or "").strip().lower()
    high_growth = category in HIGH_GROWTH_CATEGORIES
    return (75 if high_growth else 50), {"category": category, "highGrowth": high_growth}


def team_factor(proposal: Mapping[str, Any], owner_profile: Mapping[str, Any]) -> tuple[int, dict]:
    experience = owner_experience(owner_profile)
    size = team_size(proposal)
    score = 50
    if experience > 5:
        score += 20
    elif experience > 2:
        score += 10
    if size >= 3:
        score += 15
    elif size >= 2:
        score += 10
    return _clamp(score), {"experienceYears": experience, "teamSize": size}


def financial_factor(proposal: Mapping[str, Any]) -> tuple[int, dict]:
    budget = parse_budget(proposal.get("budget"))
    if budget > 5_000_000:
        score = 40
    elif budget > 1_000_000:
        score = 60
    elif budget > 500_000:
        score = 75
    else:
        score = 85
    return score, {"budget": budget}


def technology_factor(proposal: Mapping[str, Any]) -> tuple[int, dict]:
    description = str(proposal.get("description") or "")
    found = sorted({m.group(1).lower() for m in _TECH_PATTERN.finditer(description)})
    return (60 if found else 75), {"complexTechnology": found}


def competition_factor(proposal: Mapping[str, Any]) -> tuple[int, dict]:
    category = str(proposal.get("category") or "").strip().lower()
    crowded = category in HIGH_COMPETITION_CATEGORIES
    return (45 if crowded else 70), {"highCompetition": crowded}


# ── Score ─────────────────────────────────────────────────────────────────


def level_for(score: int) -> tuple[RiskLevel, str]:
    for floor, level, recommendation in LEVEL_BANDS:
        if score >= floor:
            return level, recommendation
    return LEVEL_BANDS[-1][1], LEVEL_BANDS[-1][2]


def score(proposal: Mapping[str, Any], owner_profile: Optional[Mapping[str, Any]] = None) -> RiskScore:
    """
    Score a business proposal.

    Args:
        proposal: the stored business idea (category, budget, description, teamSize)
        owner_profile: the owner's stored user record
    """
    owner_profile = owner_profile or {}
    raw = {
        "market": market_factor(proposal),
        "team": team_factor(proposal, owner_profile),
        "financial": financial_factor(proposal),
        "technology": technology_factor(proposal),
        "competition": competition_factor(proposal),
    }

    weighted = sum(Decimal(raw[name][0]) * weight for name, weight in WEIGHTS.items())
    final = _clamp(int(weighted.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))
    level, recommendation = level_for(final)

    return RiskScore(
        score=final,
        level=level,
        factors={
            name: RiskFactor(score=value, weight=float(WEIGHTS[name]), details=details)
            for name, (value, details) in raw.items()
        },
        recommendations=[recommendation],
    )
