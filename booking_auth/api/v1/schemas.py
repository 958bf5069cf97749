"""Response envelopes and schemas shared by all endpoints."""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base schema serialised with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(ApiModel, Generic[T]):
    """Success envelope."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class ErrorResponse(ApiModel):
    """Error envelope."""

    success: bool = False
    error: str = Field(..., description="Human readable error message")
    code: str = Field(..., description="Stable machine readable error code")


class PageMeta(ApiModel):
    """Pagination metadata."""

    total: int
    limit: int
    offset: int


class Page(ApiModel, Generic[T]):
    """A page of items."""

    items: List[T]
    meta: PageMeta


class UserProfileResponse(ApiModel):
    """Sanitized user returned to clients."""

    id: str
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_active: bool
    roles: List[str] = Field(default_factory=list)
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
