"""
Role transition request and result schemas.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ChangeRoleRequest(BaseModel):
    new_role: str = Field(..., min_length=1, description="Role the caller wants to switch to")


class ChangeRoleResult(BaseModel):
    success: bool = True
    message: str
    previous_role: str
    new_role: str


class AvailableRole(BaseModel):
    role: str
    description: str
    requires_approval: bool


class AvailableRoles(BaseModel):
    current_role: str
    current_role_description: str
    available_roles: list[AvailableRole] = Field(default_factory=list)


class GrantRoleRequest(BaseModel):
    target_user_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    approved: bool = True
    reason: Optional[str] = Field(default=None, max_length=500)


class GrantRoleResult(BaseModel):
    success: bool = True
    message: str
    target_user_id: str
    role: str
    approved: bool
    previous_role: Optional[str] = None
