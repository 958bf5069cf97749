"""Role management API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from booking_auth.api.dependencies import (
    get_permission_service,
    get_role_service,
    require_permission,
    verify_csrf_token,
)
from booking_auth.api.v1.endpoints.permissions.schemas import PermissionResponse
from booking_auth.api.v1.schemas import ApiResponse, ErrorResponse, Page, PageMeta
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.services.permission_service import PermissionService
from booking_auth.core.services.role_service import RoleService
from .schemas import RoleCreateRequest, RoleResponse, RoleUpdateRequest, RoleUsersResponse

router = APIRouter(
    prefix="/roles",
    tags=["Roles"],
    dependencies=[Depends(verify_csrf_token)],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Missing permission or CSRF token"},
    },
)

can_read = require_permission("roles", PermissionAction.READ)
can_create = require_permission("roles", PermissionAction.CREATE)
can_update = require_permission("roles", PermissionAction.UPDATE)
can_delete = require_permission("roles", PermissionAction.DELETE)


@router.get("", response_model=ApiResponse[Page[RoleResponse]], dependencies=[Depends(can_read)])
async def list_roles(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, max_length=50),
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[Page[RoleResponse]]:
    roles, total = await role_service.list_roles(limit=limit, offset=offset, search=search)
    return ApiResponse(
        data=Page(
            items=[RoleResponse.model_validate(role) for role in roles],
            meta=PageMeta(total=total, limit=limit, offset=offset),
        )
    )


@router.get(
    "/{role_id}",
    response_model=ApiResponse[RoleResponse],
    dependencies=[Depends(can_read)],
    responses={404: {"model": ErrorResponse, "description": "Role not found"}},
)
async def get_role(
    role_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[RoleResponse]:
    role = await role_service.get_role(role_id)
    return ApiResponse(data=RoleResponse.model_validate(role))


@router.post(
    "",
    response_model=ApiResponse[RoleResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(can_create)],
    responses={409: {"model": ErrorResponse, "description": "Role name taken"}},
)
async def create_role(
    role_data: RoleCreateRequest,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[RoleResponse]:
    role = await role_service.create_role(
        name=role_data.name,
        description=role_data.description,
        is_active=role_data.is_active,
    )
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role created")


@router.put(
    "/{role_id}",
    response_model=ApiResponse[RoleResponse],
    dependencies=[Depends(can_update)],
)
async def update_role(
    role_id: str,
    role_data: RoleUpdateRequest,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[RoleResponse]:
    role = await role_service.update_role(
        role_id,
        name=role_data.name,
        description=role_data.description,
        is_active=role_data.is_active,
    )
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role updated")


@router.delete(
    "/{role_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_delete)],
)
async def delete_role(
    role_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[None]:
    await role_service.delete_role(role_id)
    return ApiResponse(message="Role deleted")


@router.get(
    "/{role_id}/permissions",
    response_model=ApiResponse[List[PermissionResponse]],
    dependencies=[Depends(can_read)],
)
async def get_role_permissions(
    role_id: str,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[List[PermissionResponse]]:
    permissions = await permission_service.get_role_permissions(role_id)
    return ApiResponse(data=[PermissionResponse.model_validate(p) for p in permissions])


@router.post(
    "/{role_id}/permissions/{permission_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_update)],
    responses={409: {"model": ErrorResponse, "description": "Already granted"}},
)
async def assign_permission(
    role_id: str,
    permission_id: str,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[None]:
    await permission_service.assign_permission_to_role(role_id, permission_id)
    return ApiResponse(message="Permission assigned to role")


@router.delete(
    "/{role_id}/permissions/{permission_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_update)],
)
async def remove_permission(
    role_id: str,
    permission_id: str,
    permission_service: PermissionService = Depends(get_permission_service),
) -> ApiResponse[None]:
    await permission_service.remove_permission_from_role(role_id, permission_id)
    return ApiResponse(message="Permission removed from role")


@router.get(
    "/{role_id}/users",
    response_model=ApiResponse[RoleUsersResponse],
    dependencies=[Depends(can_read)],
)
async def get_role_users(
    role_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[RoleUsersResponse]:
    user_ids = await role_service.get_role_user_ids(role_id)
    return ApiResponse(data=RoleUsersResponse(role_id=role_id, user_ids=user_ids))
