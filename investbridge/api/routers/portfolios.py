"""
Portfolio API Endpoints.

POST /api/v1/portfolios/{investor_id}/metrics
"""

from typing import Optional

from fastapi import APIRouter, Depends

from investbridge.api.deps import Platform, get_caller, get_platform
from investbridge.identity.provider import Caller
from investbridge.scoring.schemas import PortfolioMetrics

router = APIRouter(prefix="/api/v1/portfolios", tags=["portfolios"])


@router.post("/{investor_id}/metrics", response_model=PortfolioMetrics)
async def update_portfolio_metrics(
    investor_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    return await platform.portfolios.update_metrics(caller, investor_id)
