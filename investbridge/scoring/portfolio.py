"""
Portfolio aggregation.

Pure function over a list of investments. Per-category performance is the
unweighted mean of each investment's own ROI, so a small holding counts as
much as a large one in its category. Totals and diversification do not
depend on input order.
"""

import math
from collections import defaultdict
from typing import Iterable, Union

from investbridge.scoring.schemas import Investment, PortfolioMetrics

TARGET_CATEGORY_COUNT = 5

NOTE_EMPTY = "Start investing to build your portfolio"
NOTE_WELL_DIVERSIFIED = "Well diversified portfolio"
NOTE_GOOD = "Good diversification, consider adding more sectors"
NOTE_DIVERSIFY = "Consider diversifying across more sectors"


def investment_roi(inv: Investment) -> float:
    if inv.amount > 0:
        return (inv.value / inv.amount - 1) * 100
    return 0.0


def diversification_note(score: float) -> str:
    if score >= 80:
        return NOTE_WELL_DIVERSIFIED
    if score >= 60:
        return NOTE_GOOD
    return NOTE_DIVERSIFY


def aggregate(investments: Iterable[Union[Investment, dict]]) -> PortfolioMetrics:
    holdings = [inv if isinstance(inv, Investment) else Investment.from_record(inv) for inv in investments]
    if not holdings:
        return PortfolioMetrics(diversification_note=NOTE_EMPTY)

    total_invested = math.fsum(inv.amount for inv in holdings)
    total_value = math.fsum(inv.value for inv in holdings)
    roi = (total_value / total_invested - 1) * 100 if total_invested > 0 else 0.0

    # Averages percentages, not amount-weighted
    rois: dict[str, list[float]] = defaultdict(list)
    for inv in holdings:
        rois[inv.category].append(investment_roi(inv))
    by_category = {category: math.fsum(values) / len(values) for category, values in rois.items()}

    ordered = sorted(by_category)
    best = max(ordered, key=lambda c: by_category[c])
    worst = min(ordered, key=lambda c: by_category[c])

    distinct = len(by_category)
    diversification = min(distinct * 100 / TARGET_CATEGORY_COUNT, 100.0)

    return PortfolioMetrics(
        total_invested=total_invested,
        total_value=total_value,
        roi=roi,
        investment_count=len(holdings),
        performance_by_category=by_category,
        best_category=best,
        worst_category=worst,
        diversification_score=diversification,
        category_count=distinct,
        diversification_note=diversification_note(diversification),
    )
