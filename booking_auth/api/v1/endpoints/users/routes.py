"""User administration API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from booking_auth.api.dependencies import (
    get_rbac_authorizer,
    get_role_service,
    get_user_admin_service,
    require_permission,
    require_role,
    verify_csrf_token,
)
from booking_auth.api.v1.endpoints.permissions.schemas import PermissionResponse
from booking_auth.api.v1.endpoints.roles.schemas import RoleResponse
from booking_auth.api.v1.schemas import (
    ApiResponse,
    ErrorResponse,
    Page,
    PageMeta,
    UserProfileResponse,
)
from booking_auth.core.auth.authorization import RBACAuthorizer
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.services.role_service import RoleService
from booking_auth.core.services.user_admin_service import UserAdminService
from .schemas import RevokeSessionsResponse

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(verify_csrf_token)],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Missing permission or CSRF token"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)

can_read = require_permission("users", PermissionAction.READ)
can_update = require_permission("users", PermissionAction.UPDATE)
can_delete = require_permission("users", PermissionAction.DELETE)
can_manage = require_permission("users", PermissionAction.MANAGE)
is_admin = require_role("admin")


@router.get(
    "",
    response_model=ApiResponse[Page[UserProfileResponse]],
    dependencies=[Depends(can_read)],
)
async def list_users(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, max_length=100),
    include_deleted: bool = Query(False),
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[Page[UserProfileResponse]]:
    users, total = await user_service.list_users(
        limit=limit, offset=offset, search=search, include_deleted=include_deleted
    )
    return ApiResponse(
        data=Page(
            items=[UserProfileResponse.model_validate(user) for user in users],
            meta=PageMeta(total=total, limit=limit, offset=offset),
        )
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserProfileResponse],
    dependencies=[Depends(can_read)],
)
async def get_user(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[UserProfileResponse]:
    user = await user_service.get_user(user_id)
    return ApiResponse(data=UserProfileResponse.model_validate(user))


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_delete)],
)
async def delete_user(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[None]:
    await user_service.delete_user(user_id)
    return ApiResponse(message="User deleted")


@router.post(
    "/{user_id}/restore",
    response_model=ApiResponse[UserProfileResponse],
    dependencies=[Depends(can_update)],
    responses={409: {"model": ErrorResponse, "description": "User is not deleted"}},
)
async def restore_user(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[UserProfileResponse]:
    user = await user_service.restore_user(user_id)
    return ApiResponse(data=UserProfileResponse.model_validate(user), message="User restored")


@router.post(
    "/{user_id}/deactivate",
    response_model=ApiResponse[UserProfileResponse],
    dependencies=[Depends(can_update)],
)
async def deactivate_user(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[UserProfileResponse]:
    user = await user_service.deactivate_user(user_id)
    return ApiResponse(data=UserProfileResponse.model_validate(user), message="User deactivated")


@router.post(
    "/{user_id}/reactivate",
    response_model=ApiResponse[UserProfileResponse],
    dependencies=[Depends(can_update)],
)
async def reactivate_user(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[UserProfileResponse]:
    user = await user_service.reactivate_user(user_id)
    return ApiResponse(data=UserProfileResponse.model_validate(user), message="User reactivated")


@router.post(
    "/{user_id}/revoke-sessions",
    response_model=ApiResponse[RevokeSessionsResponse],
    dependencies=[Depends(can_manage), Depends(is_admin)],
)
async def revoke_sessions(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
) -> ApiResponse[RevokeSessionsResponse]:
    revoked = await user_service.revoke_sessions(user_id)
    return ApiResponse(
        data=RevokeSessionsResponse(user_id=user_id, revoked_refresh_tokens=revoked),
        message="Sessions revoked",
    )


@router.get(
    "/{user_id}/roles",
    response_model=ApiResponse[List[RoleResponse]],
    dependencies=[Depends(can_read)],
)
async def get_user_roles(
    user_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[List[RoleResponse]]:
    roles = await role_service.get_user_roles(user_id)
    return ApiResponse(data=[RoleResponse.model_validate(role) for role in roles])


@router.post(
    "/{user_id}/roles/{role_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_manage)],
    responses={409: {"model": ErrorResponse, "description": "Role already assigned"}},
)
async def assign_role(
    user_id: str,
    role_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[None]:
    await role_service.assign_role_to_user(user_id, role_id)
    return ApiResponse(message="Role assigned to user")


@router.delete(
    "/{user_id}/roles/{role_id}",
    response_model=ApiResponse[None],
    dependencies=[Depends(can_manage)],
)
async def remove_role(
    user_id: str,
    role_id: str,
    role_service: RoleService = Depends(get_role_service),
) -> ApiResponse[None]:
    await role_service.remove_role_from_user(user_id, role_id)
    return ApiResponse(message="Role removed from user")


@router.get(
    "/{user_id}/permissions",
    response_model=ApiResponse[List[PermissionResponse]],
    dependencies=[Depends(can_read)],
)
async def get_user_permissions(
    user_id: str,
    user_service: UserAdminService = Depends(get_user_admin_service),
    authorizer: RBACAuthorizer = Depends(get_rbac_authorizer),
) -> ApiResponse[List[PermissionResponse]]:
    await user_service.get_user(user_id)
    permissions = await authorizer.get_user_permissions(user_id)
    return ApiResponse(data=[PermissionResponse.model_validate(p) for p in permissions])
