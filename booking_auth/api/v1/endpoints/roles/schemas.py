"""Role management API schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from booking_auth.api.v1.schemas import ApiModel


class RoleResponse(ApiModel):
    """Role schema."""

    id: str
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class RoleCreateRequest(ApiModel):
    """Role creation request schema."""

    name: str = Field(..., min_length=2, max_length=50, examples=["moderator"])
    description: Optional[str] = Field(None, max_length=255)
    is_active: bool = True


class RoleUpdateRequest(ApiModel):
    """Role update request schema; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class RoleUsersResponse(ApiModel):
    """Users holding a role."""

    role_id: str
    user_ids: List[str]
