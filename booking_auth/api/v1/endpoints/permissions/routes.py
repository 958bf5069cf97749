"""Permission management API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from booking_auth.api.dependencies import (
    get_permission_service,
    require_permission,
    verify_csrf_token,
)
from booking_auth.api.v1.schemas import ApiResponse, ErrorResponse, Page, PageMeta
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.services.permission_service import PermissionService
from .schemas import PermissionCreateRequest, PermissionResponse, PermissionUpdateRequest

router = APIRouter(
    prefix="/permissions",
    tags=["Permissions"],
    dependencies=[Depends(verify_csrf_token)],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Missing permission or CSRF token"},
    },
)

can_read = require_permission("permissions", PermissionAction.READ)
can_create = require_permission("permissions", PermissionAction.CREATE)
can_update = require_permission("permissions", PermissionAction.UPDATE)
can_delete = require_permission("permissions", PermissionAction.DELETE)


@router.get(
    "",
    response_model=ApiResponse[Page[PermissionResponse]],
    dependencies=[Depends(can_read)],
)
async def list_permissions(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, max_length=50),
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[Page[PermissionResponse]]:
    permissions, total = await permission_service.list_permissions(
        limit=limit, offset=offset, search=search
    )
    return ApiResponse(
        data=Page(
            items=[PermissionResponse.model_validate(p) for p in permissions],
            meta=PageMeta(total=total, limit=limit, offset=offset),
        )
    )


@router.get(
    "/{permission_id}",
    response_model=ApiResponse[PermissionResponse],
    dependencies=[Depends(can_read)],
    responses={404: {"model": ErrorResponse, "description": "Permission not found"}},
)
async def get_permission(
    permission_id: str,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[PermissionResponse]:
    permission = await permission_service.get_permission(permission_id)
    return ApiResponse(data=PermissionResponse.model_validate(permission))


@router.post(
    "",
    response_model=ApiResponse[PermissionResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_create)],
    responses={409: {"model": ErrorResponse, "description": "Permission exists"}},
)
async def create_permission(
    permission_data: PermissionCreateRequest,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[PermissionResponse]:
    permission = await permission_service.create_permission(
        resource=permission_data.resource,
        action=permission_data.action,
        name=permission_data.name,
        description=permission_data.description,
    )
    return ApiResponse(data=PermissionResponse.model_validate(permission), message="Permission created")


@router.put(
    "/{permission_id}",
    response_model=ApiResponse[PermissionResponse],
    dependencies=[Depends(can_update)],
)
async def update_permission(
    permission_id: str,
    permission_data: PermissionUpdateRequest,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[PermissionResponse]:
    permission = await permission_service.update_permission(
        permission_id,
        name=permission_data.name,
        resource=permission_data.resource,
        action=permission_data.action,
        description=permission_data.description,
    )
    return ApiResponse(data=PermissionResponse.model_validate(permission), message="Permission updated")


@router.delete(
    "/{permission_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_delete)],
)
async def delete_permission(
    permission_id: str,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[None]:
    await permission_service.delete_permission(permission_id)
    return ApiResponse(message="Permission deleted")
