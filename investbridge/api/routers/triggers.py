"""
Store Trigger Endpoints (service-to-service).

The document store's change feed calls these after a write commits:

POST /api/v1/triggers/{collection}/created
POST /api/v1/triggers/investmentProposals/updated

Authenticated with the shared ``X-Trigger-Key``. Delivery is at-least-once;
a redelivered trigger produces duplicate notifications.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from investbridge.api.deps import Platform, get_platform, require_trigger_key
from investbridge.events.schemas import FanoutReport
from investbridge.store.base import Collections

router = APIRouter(
    prefix="/api/v1/triggers",
    tags=["triggers"],
    dependencies=[Depends(require_trigger_key)],
)


class CreatedTrigger(BaseModel):
    id: str = Field(..., min_length=1)
    data: dict = Field(default_factory=dict)


class UpdatedTrigger(BaseModel):
    id: str = Field(..., min_length=1)
    before: dict = Field(default_factory=dict)
    after: dict = Field(default_factory=dict)


@router.post("/investmentProposals/updated", response_model=FanoutReport)
async def proposal_updated(body: UpdatedTrigger, platform: Platform = Depends(get_platform)):
    return await platform.pipeline.handle_updated(
        Collections.INVESTMENT_PROPOSALS, body.id, body.before, body.after
    )


@router.post("/{collection}/created", response_model=FanoutReport)
async def document_created(collection: str, body: CreatedTrigger, platform: Platform = Depends(get_platform)):
    return await platform.pipeline.handle_created(collection, body.id, body.data)
