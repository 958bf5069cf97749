"""Authentication API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, status

from booking_auth.api.dependencies import (
    CurrentSession,
    extract_bearer_token,
    get_auth_service,
    get_client_info,
    get_current_active_user,
    get_current_session,
    get_optional_user,
    get_rbac_authorizer,
    verify_csrf_token,
)
from booking_auth.api.v1.schemas import ApiResponse, ErrorResponse, UserProfileResponse
from booking_auth.core.auth.authorization import RBACAuthorizer
from booking_auth.core.auth.entities import ClientInfo, User, UserRegistration
from booking_auth.core.auth.exceptions import TokenInvalidException
from booking_auth.core.auth.services import AuthenticationService
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.settings import Settings, get_settings
from .schemas import (
    AuthResponse,
    ChangePasswordRequest,
    CsrfTokenResponse,
    LogoutAllResponse,
    LogoutRequest,
    RefreshTokenRequest,
    TokenPairResponse,
    UserLoginRequest,
    UserRegistrationRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    dependencies=[Depends(verify_csrf_token)],
)


@router.get(
    "/csrf-token",
    response_model=ApiResponse[CsrfTokenResponse],
    summary="Get CSRF token",
    description="Return the token to send in the X-CSRF-Token header of mutating requests.",
)
async def get_csrf_token(
    settings: Settings = Depends(get_settings),
) -> ApiResponse[CsrfTokenResponse]:
    return ApiResponse(data=CsrfTokenResponse(csrf_token=settings.csrf_secret))


@router.post(
    "/register",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    description="Create a new account and sign it in.",
    responses={
        403: {"model": ErrorResponse, "description": "Missing or invalid CSRF token"},
        404: {"model": ErrorResponse, "description": "Requested role does not exist"},
        409: {"model": ErrorResponse, "description": "Email or username already taken"},
    },
)
async def register_user(
    user_data: UserRegistrationRequest,
    client_info: ClientInfo = Depends(get_client_info),
    caller: Optional[User] = Depends(get_optional_user),
    authorizer: RBACAuthorizer = Depends(get_rbac_authorizer),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    """
    Register a new user account.

    Explicit role ids are honoured only when the caller may manage users;
    everyone else gets the default role.
    """
    role_ids = tuple(user_data.role_ids or ())
    if role_ids:
        allowed = caller is not None and (
            await authorizer.check_permission(caller.id, "users", PermissionAction.MANAGE)
        ).allowed
        if not allowed:
            logger.info("Ignoring roleIds on registration from unprivileged caller")
            role_ids = ()

    result = await auth_service.register(
        UserRegistration(
            username=user_data.username,
            email=user_data.email,
            password=user_data.password,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            role_ids=role_ids,
        ),
        client_info,
    )

    return ApiResponse(
        data=AuthResponse(
            user=UserProfileResponse.model_validate(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_at=result.expires_at,
        ),
        message="User registered successfully",
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthResponse],
    summary="User login",
    description="Authenticate with email and password and return a token pair.",
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        423: {"model": ErrorResponse, "description": "Account locked"},
    },
)
async def login(
    credentials: UserLoginRequest,
    client_info: ClientInfo = Depends(get_client_info),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[AuthResponse]:
    result = await auth_service.login(credentials.email, credentials.password, client_info)

    return ApiResponse(
        data=AuthResponse(
            user=UserProfileResponse.model_validate(result.user),
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_at=result.expires_at,
        ),
        message="Login successful",
    )


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenPairResponse],
    summary="Refresh access token",
    description="Exchange a refresh token for a new token pair. The old refresh token is consumed.",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown refresh token"},
        401: {"model": ErrorResponse, "description": "Expired or revoked refresh token"},
        403: {"model": ErrorResponse, "description": "User inactive"},
    },
)
async def refresh_token(
    token_data: RefreshTokenRequest,
    client_info: ClientInfo = Depends(get_client_info),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[TokenPairResponse]:
    pair = await auth_service.refresh(token_data.refresh_token, client_info)

    return ApiResponse(
        data=TokenPairResponse(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_at=pair.expires_at,
        ),
        message="Token refreshed",
    )


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Logout",
    description="Revoke the presented access token and, if given, the refresh token.",
)
async def logout(
    body: Optional[LogoutRequest] = None,
    authorization: Optional[str] = Header(None),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[None]:
    """
    Logout always succeeds.

    A malformed header or an unknown refresh token leaves nothing to revoke.
    """
    try:
        access_token = extract_bearer_token(authorization)
    except TokenInvalidException:
        access_token = None

    await auth_service.logout(access_token, body.refresh_token if body else None)
    return ApiResponse(message="Logged out successfully")


@router.post(
    "/logout-all",
    response_model=ApiResponse[LogoutAllResponse],
    summary="Logout everywhere",
    description="Revoke every refresh token of the current user.",
)
async def logout_all(
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[LogoutAllResponse]:
    revoked = await auth_service.logout_all(current_user.id)
    return ApiResponse(
        data=LogoutAllResponse(revoked_sessions=revoked),
        message="Logged out from all sessions",
    )


@router.get(
    "/me",
    response_model=ApiResponse[UserProfileResponse],
    summary="Get current user",
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[UserProfileResponse]:
    profile = await auth_service.get_user_profile(current_user.id)
    return ApiResponse(data=UserProfileResponse.model_validate(profile))


@router.patch(
    "/change-password",
    response_model=ApiResponse[None],
    summary="Change password",
    description="Change the password; every existing session must log in again.",
    responses={401: {"model": ErrorResponse, "description": "Current password incorrect"}},
)
async def change_password(
    passwords: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    current_session: CurrentSession = Depends(get_current_session),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> ApiResponse[None]:
    await auth_service.change_password(
        current_user.id,
        passwords.current_password,
        passwords.new_password,
        current_claims=current_session.claims,
    )
    return ApiResponse(message="Password changed successfully. Please log in again")
