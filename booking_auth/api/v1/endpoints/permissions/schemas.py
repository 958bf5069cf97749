"""Permission management API schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from booking_auth.api.v1.schemas import ApiModel
from booking_auth.core.domain.enums import PermissionAction


class PermissionResponse(ApiModel):
    """Permission schema."""

    id: str
    name: str
    resource: str
    action: PermissionAction
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class PermissionCreateRequest(ApiModel):
    """
    Permission creation request schema.

    The name defaults to ``resource.action``.
    """

    resource: str = Field(..., min_length=2, max_length=50, examples=["reservations"])
    action: PermissionAction = Field(..., examples=["read"])
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=255)


class PermissionUpdateRequest(ApiModel):
    """Permission update request schema; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    resource: Optional[str] = Field(None, min_length=2, max_length=50)
    action: Optional[PermissionAction] = None
    description: Optional[str] = Field(None, max_length=255)
