"""FastAPI dependency injection setup."""

import secrets
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.authorization import RBACAuthorizer
from booking_auth.core.auth.entities import AccessTokenClaims, ClientInfo, User
from booking_auth.core.auth.exceptions import (
    AuthenticationException,
    TokenInvalidException,
    TokenMissingException,
    UserInactiveException,
)
from booking_auth.core.auth.services import (
    AuthenticationService,
    LockoutPolicy,
    PasswordService,
    TokenService,
)
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.exceptions import CsrfInvalidException, CsrfMissingException
from booking_auth.core.services.permission_service import PermissionService
from booking_auth.core.services.role_service import RoleService
from booking_auth.core.services.user_admin_service import UserAdminService
from booking_auth.infrastructure.database.repositories.permission_repository import (
    SqlPermissionRepository,
)
from booking_auth.infrastructure.database.repositories.refresh_token_repository import (
    SqlRefreshTokenRepository,
)
from booking_auth.infrastructure.database.repositories.revoked_token_repository import (
    SqlRevokedTokenRepository,
)
from booking_auth.infrastructure.database.repositories.role_repository import SqlRoleRepository
from booking_auth.infrastructure.database.repositories.user_repository import SqlUserRepository
from booking_auth.infrastructure.database.session import get_session
from booking_auth.settings import Settings, get_settings

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@dataclass(frozen=True)
class CurrentSession:
    """Authenticated caller and the claims of the token it presented."""

    user: User
    claims: AccessTokenClaims


async def get_database_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide database session for dependency injection.

    Yields:
        AsyncSession: Database session
    """
    async for session in get_session():
        yield session


def get_client_info(request: Request) -> ClientInfo:
    """Collect the caller address and user agent recorded on refresh tokens."""
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_auth_service(
        session: AsyncSession = Depends(get_database_session),
        settings: Settings = Depends(get_settings),
) -> AuthenticationService:
    """
    Provide authentication service bound to the request's session.

    Args:
        session: Database session
        settings: Application settings

    Returns:
        AuthenticationService: Authentication service instance
    """
    config = settings.auth_config()
    user_repo = SqlUserRepository(session)

    return AuthenticationService(
        user_repository=user_repo,
        refresh_token_repository=SqlRefreshTokenRepository(session),
        revoked_token_repository=SqlRevokedTokenRepository(session),
        role_repository=SqlRoleRepository(session),
        password_service=PasswordService(settings.bcrypt_rounds),
        token_service=TokenService(config),
        lockout_policy=LockoutPolicy(user_repo, config),
        config=config,
    )


async def get_rbac_authorizer(
        session: AsyncSession = Depends(get_database_session),
) -> RBACAuthorizer:
    return RBACAuthorizer(SqlRoleRepository(session), SqlPermissionRepository(session))


async def get_role_service(
        session: AsyncSession = Depends(get_database_session),
) -> RoleService:
    return RoleService(SqlRoleRepository(session), SqlUserRepository(session))


async def get_permission_service(
        session: AsyncSession = Depends(get_database_session),
) -> PermissionService:
    return PermissionService(SqlPermissionRepository(session), SqlRoleRepository(session))


async def get_user_admin_service(
        session: AsyncSession = Depends(get_database_session),
        auth_service: AuthenticationService = Depends(get_auth_service),
) -> UserAdminService:
    return UserAdminService(
        SqlUserRepository(session),
        SqlRefreshTokenRepository(session),
        SqlRoleRepository(session),
        auth_service,
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Parse an Authorization header value.

    Returns:
        The token, or None when no header was sent

    Raises:
        TokenInvalidException: If the header is not ``Bearer <token>``
    """
    if authorization is None or not authorization.strip():
        return None

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise TokenInvalidException("Malformed authorization header")
    return token.strip()


async def verify_csrf_token(
        request: Request,
        x_csrf_token: Optional[str] = Header(None, alias="X-CSRF-Token"),
        settings: Settings = Depends(get_settings),
) -> None:
    """
    Require the CSRF header on mutating requests.

    Raises:
        CsrfMissingException: If the header is absent
        CsrfInvalidException: If the header does not match the secret
    """
    if request.method in SAFE_METHODS:
        return
    if not x_csrf_token:
        raise CsrfMissingException()
    if not secrets.compare_digest(x_csrf_token.encode(), settings.csrf_secret.encode()):
        raise CsrfInvalidException()


async def get_current_session(
        authorization: Optional[str] = Header(None),
        auth_service: AuthenticationService = Depends(get_auth_service),
) -> CurrentSession:
    """
    Authenticate the caller from the bearer token.

    Raises:
        TokenMissingException: If no token was sent
        TokenInvalidException: If the token is malformed, forged or stale
        TokenExpiredException: If the token has expired
        TokenBlacklistedException: If the token was revoked
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise TokenMissingException()

    user, claims = await auth_service.resolve_token(token)
    return CurrentSession(user=user, claims=claims)


async def get_current_user(
        current_session: CurrentSession = Depends(get_current_session),
) -> User:
    """
    Get current authenticated user from JWT token.

    Returns:
        User: Current authenticated user
    """
    return current_session.user


async def get_current_active_user(
        current_user: User = Depends(get_current_user),
) -> User:
    """
    Get current active user (user must be active).

    Raises:
        UserInactiveException: If user is deactivated
    """
    if not current_user.is_active:
        raise UserInactiveException(current_user.id)
    return current_user


async def get_optional_user(
        authorization: Optional[str] = Header(None),
        auth_service: AuthenticationService = Depends(get_auth_service),
) -> Optional[User]:
    """
    Get current user if a valid token is provided, None otherwise.

    Returns:
        User or None: Current active user if authenticated
    """
    try:
        token = extract_bearer_token(authorization)
        if token is None:
            return None
        user = await auth_service.get_user_from_token(token)
    except AuthenticationException:
        return None
    return user if user.is_active else None


def require_permission(resource: str, action: PermissionAction) -> Callable:
    """
    Build a dependency that admits callers holding ``resource.action``.

    Args:
        resource: Resource name
        action: Required action; ``manage`` on the resource also admits

    Returns:
        Dependency resolving to the current user
    """

    async def dependency(
            current_user: User = Depends(get_current_active_user),
            authorizer: RBACAuthorizer = Depends(get_rbac_authorizer),
    ) -> User:
        await authorizer.authorize(current_user.id, resource, action)
        return current_user

    return dependency


def require_role(*role_names: str) -> Callable:
    """Build a dependency that admits callers holding any of the roles."""

    async def dependency(
            current_user: User = Depends(get_current_active_user),
            authorizer: RBACAuthorizer = Depends(get_rbac_authorizer),
    ) -> User:
        await authorizer.authorize_any_role(current_user.id, role_names)
        return current_user

    return dependency
