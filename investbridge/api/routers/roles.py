"""
Role API Endpoints.

POST /api/v1/roles/change
GET  /api/v1/roles/available
POST /api/v1/roles/grant
"""

from typing import Optional

from fastapi import APIRouter, Depends

from investbridge.api.deps import Platform, get_caller, get_platform
from investbridge.identity.provider import Caller
from investbridge.roles.schemas import (
    AvailableRoles,
    ChangeRoleRequest,
    ChangeRoleResult,
    GrantRoleRequest,
    GrantRoleResult,
)

router = APIRouter(prefix="/api/v1/roles", tags=["roles"])


@router.post("/change", response_model=ChangeRoleResult)
async def change_role(
    body: ChangeRoleRequest,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    """Switch the caller to another self-service role."""
    return await platform.roles.change_role(caller, body.new_role)


@router.get("/available", response_model=AvailableRoles)
async def available_roles(
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    return await platform.roles.list_available_roles(caller)


@router.post("/grant", response_model=GrantRoleResult)
async def grant_role(
    body: GrantRoleRequest,
    caller: Optional[Caller] = Depends(get_caller),
    platform: Platform = Depends(get_platform),
):
    """Admin approval path; the only way into banker or admin."""
    return await platform.roles.grant_role(
        caller,
        body.target_user_id,
        body.role,
        approved=body.approved,
        reason=body.reason,
    )
