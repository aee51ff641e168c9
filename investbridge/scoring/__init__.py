"""Pure risk scoring and portfolio aggregation."""

from investbridge.scoring.portfolio import aggregate
from investbridge.scoring.risk import score

__all__ = ["aggregate", "score"]
