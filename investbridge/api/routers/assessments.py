"""
Risk Assessment API Endpoints.

POST /api/v1/risk-assessments
GET  /api/v1/risk-assessments/{proposal_id}/latest
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from investbridge.api.deps import Platform, get_caller, get_platform
from investbridge.identity.provider import Caller
from investbridge.scoring.schemas import RiskAssessmentRecord

router = APIRouter(prefix="/api/v1/risk-assessments", tags=["risk-assessments"])


class GenerateAssessmentRequest(BaseModel):
    proposal_id: str = Field(..., min_length=1, description="Business idea to assess")


@router.post("", response_model=RiskAssessmentRecord, status_code=201)
async def generate_risk_assessment(
    body: GenerateAssessmentRequest,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    return await platform.assessments.generate(caller, body.proposal_id)


@router.get("/{proposal_id}/latest", response_model=RiskAssessmentRecord)
async def latest_risk_assessment(
    proposal_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    """Newest assessment for the proposal; older ones are history."""
    return await platform.assessments.latest(caller, proposal_id)
