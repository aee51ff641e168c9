"""
Analytics API Endpoints.

GET /api/v1/analytics/platform
"""

from typing import Optional

from fastapi import APIRouter, Depends

from investbridge.api.deps import Platform, get_caller, get_platform
from investbridge.identity.provider import Caller
from investbridge.services.analytics import PlatformAnalytics

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


@router.get("/platform", response_model=PlatformAnalytics)
async def platform_analytics(
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    """Admin-only platform report."""
    return await platform.analytics.platform_analytics(caller)
