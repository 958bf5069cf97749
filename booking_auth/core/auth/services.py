"""Authentication service implementations."""

import logging
import secrets
from typing import List, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from booking_auth.core.domain.enums import RevocationReason
from booking_auth.core.exceptions import NotFoundException
from booking_auth.utils.async_helpers import run_blocking
from booking_auth.utils.time import Clock, from_timestamp, to_timestamp, utcnow
from .config import AuthConfig
from .entities import (
    AccessTokenClaims,
    AuthResult,
    ClientInfo,
    IssuedAccessToken,
    RefreshToken,
    RevokedToken,
    Role,
    TokenPair,
    User,
    UserProfile,
    UserRegistration,
)
from .exceptions import (
    AccountLockedException,
    InvalidCredentialsException,
    TokenBlacklistedException,
    TokenExpiredException,
    TokenInvalidException,
    TokenMissingException,
    UnauthorizedException,
    UserInactiveException,
)
from .interfaces import (
    PasswordServiceInterface,
    RefreshTokenRepositoryInterface,
    RevokedTokenRepositoryInterface,
    RoleRepositoryInterface,
    TokenServiceInterface,
    UserRepositoryInterface,
)

logger = logging.getLogger(__name__)


class PasswordService(PasswordServiceInterface):
    """
    BCrypt-based password hashing service.

    Hashing runs in the default executor so request handlers await it
    without blocking the event loop.
    """

    def __init__(self, rounds: int = 12) -> None:
        """
        Initialize password context with bcrypt.

        Args:
            rounds: bcrypt cost factor
        """
        self._pwd_context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    async def hash_password(self, password: str) -> str:
        """
        Hash a password securely using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        return await run_blocking(self._pwd_context.hash, password)

    async def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify password against bcrypt hash.

        Args:
            password: Plain text password
            hashed_password: Stored password hash

        Returns:
            True if password matches, False otherwise
        """
        try:
            return await run_blocking(self._pwd_context.verify, password, hashed_password)
        except ValueError:
            logger.warning("Stored password hash is not a recognised bcrypt hash")
            return False


class TokenService(TokenServiceInterface):
    """
    JWT access token codec.

    Access tokens are HS256-signed claim sets carrying a random jti. The
    codec is stateless: revocation is the caller's concern.
    """

    def __init__(self, config: AuthConfig, clock: Clock = utcnow) -> None:
        """
        Initialize token service.

        Args:
            config: Auth policy holding the signing secret and lifetimes
            clock: Source of the current time
        """
        self._secret_key = config.jwt_secret_key
        self._algorithm = config.jwt_algorithm
        self._access_token_ttl = config.access_token_ttl
        self._clock = clock

    def generate_jti(self) -> str:
        return secrets.token_hex(16)

    def generate_refresh_secret(self) -> str:
        return secrets.token_hex(64)

    def issue_access_token(self, user: User) -> IssuedAccessToken:
        """
        Create JWT access token for user.

        Args:
            user: User entity

        Returns:
            Token, jti and expiry taken from the signed ``exp`` claim
        """
        now = self._clock()
        jti = self.generate_jti()

        payload = {
            "sub": user.id,
            "email": user.email,
            "username": user.username,
            "jti": jti,
            "iat": to_timestamp(now),
            "exp": int(to_timestamp(now + self._access_token_ttl)),
            "token_type": "access",
        }

        token = jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
        signed_claims = jwt.get_unverified_claims(token)

        return IssuedAccessToken(
            token=token,
            jti=jti,
            expires_at=from_timestamp(signed_claims["exp"]),
        )

    def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Decode and validate JWT access token.

        Args:
            token: JWT token string

        Returns:
            Verified claims

        Raises:
            TokenMissingException: If token is empty
            TokenExpiredException: If token has expired
            TokenInvalidException: If token is invalid or malformed
        """
        if not token:
            raise TokenMissingException()

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError as e:
            raise TokenInvalidException(f"Token decode error: {e}")

        return self._to_claims(payload)

    def decode_access_token(self, token: Optional[str]) -> Optional[AccessTokenClaims]:
        """
        Decode an access token whose signature is valid, expired or not.

        Args:
            token: JWT token string, possibly empty

        Returns:
            Claims, or None if the token is missing, forged or malformed
        """
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
            return self._to_claims(payload)
        except (JWTError, TokenInvalidException) as e:
            logger.debug(f"Ignoring undecodable access token: {e}")
            return None

    def _to_claims(self, payload: dict) -> AccessTokenClaims:
        """Convert a decoded payload to claims."""
        if payload.get("token_type", "access") != "access":
            raise TokenInvalidException("Unexpected token type")

        try:
            return AccessTokenClaims(
                sub=str(payload["sub"]),
                jti=payload["jti"],
                email=payload.get("email", ""),
                username=payload.get("username", ""),
                iat=float(payload["iat"]),
                exp=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidException(f"Incomplete token claims: {e}")


class LockoutPolicy:
    """
    Failed login counter with a temporary lock window.

    Unlocking is lazy: an expired ``locked_until`` is ignored rather than
    cleared, and only a successful login resets the counter.
    """

    def __init__(
        self,
        user_repository: UserRepositoryInterface,
        config: AuthConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._user_repository = user_repository
        self._max_attempts = config.max_login_attempts
        self._lockout_duration = config.lockout_duration
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def lockout_minutes(self) -> int:
        return int(self._lockout_duration.total_seconds() // 60)

    def check_lockout(self, user: User) -> None:
        """
        Reject users inside their lockout window.

        Raises:
            AccountLockedException: If ``locked_until`` is in the future
        """
        now = self._clock()
        if user.is_locked(now):
            raise AccountLockedException(user.remaining_lock_minutes(now))

    async def record_failure(self, user: User) -> int:
        """
        Count a failed login, locking the account at the threshold.

        Returns:
            The new failed attempt count
        """
        lock_until = self._clock() + self._lockout_duration
        attempts = await self._user_repository.increment_failed_login_attempts(
            user.id, self._max_attempts, lock_until
        )
        if attempts >= self._max_attempts:
            logger.warning(
                f"Account {user.id} locked after {attempts} failed login attempts"
            )
        else:
            logger.info(f"Failed login attempt {attempts} for user {user.id}")
        return attempts

    async def record_success(self, user: User) -> None:
        """Reset the counter, clear the lock and stamp the login time."""
        await self._user_repository.update_user_fields(
            user.id,
            failed_login_attempts=0,
            locked_until=None,
            last_login=self._clock(),
        )

    def remaining_attempts(self, attempts: int) -> int:
        return self._max_attempts - attempts


class AuthenticationService:
    """
    High-level authentication service orchestrating auth operations.

    Combines password verification, lockout, the token codec, the refresh
    token ledger and the revocation list. Failures are raised as typed
    exceptions and never retried here.
    """

    def __init__(
        self,
        user_repository: UserRepositoryInterface,
        refresh_token_repository: RefreshTokenRepositoryInterface,
        revoked_token_repository: RevokedTokenRepositoryInterface,
        role_repository: RoleRepositoryInterface,
        password_service: PasswordServiceInterface,
        token_service: TokenServiceInterface,
        lockout_policy: LockoutPolicy,
        config: AuthConfig,
        clock: Clock = utcnow,
    ) -> None:
        """
        Initialize authentication service.

        Args:
            user_repository: Credential store
            refresh_token_repository: Refresh token ledger
            revoked_token_repository: Access token revocation list
            role_repository: Role membership store
            password_service: Password hashing service
            token_service: Access token codec
            lockout_policy: Failed login policy
            config: Auth policy
            clock: Source of the current time
        """
        self._user_repository = user_repository
        self._refresh_token_repository = refresh_token_repository
        self._revoked_token_repository = revoked_token_repository
        self._role_repository = role_repository
        self._password_service = password_service
        self._token_service = token_service
        self._lockout_policy = lockout_policy
        self._config = config
        self._clock = clock

    async def register(
        self, registration: UserRegistration, client_info: Optional[ClientInfo] = None
    ) -> AuthResult:
        """
        Register new user account and sign it in.

        Args:
            registration: Account data
            client_info: Caller address and user agent

        Returns:
            Sanitized user with a fresh token pair

        Raises:
            EmailDuplicatedException: If email already exists
            UsernameDuplicatedException: If username already exists
            NotFoundException: If an explicit role id does not exist
        """
        roles = await self._resolve_initial_roles(registration.role_ids)
        hashed_password = await self._password_service.hash_password(registration.password)

        user = await self._user_repository.create_user(
            User(
                id="",
                username=registration.username.strip(),
                email=self._normalize_email(registration.email),
                hashed_password=hashed_password,
                first_name=registration.first_name,
                last_name=registration.last_name,
            )
        )

        for role in roles:
            await self._role_repository.grant_role_to_user(user.id, role.id)

        access_token, refresh_token = await self._issue_session(user, client_info)
        logger.info(f"Registered user {user.id}")

        return AuthResult(
            user=user.to_profile(tuple(role.name for role in roles)),
            access_token=access_token.token,
            refresh_token=refresh_token.token,
            expires_at=access_token.expires_at,
        )

    async def login(
        self, email: str, password: str, client_info: Optional[ClientInfo] = None
    ) -> AuthResult:
        """
        Authenticate user and return token pair.

        Args:
            email: Account email
            password: Plain text password
            client_info: Caller address and user agent

        Returns:
            Sanitized user with a fresh token pair

        Raises:
            InvalidCredentialsException: If credentials are invalid
            AccountLockedException: If locked, or this failure hit the threshold
        """
        user = await self._user_repository.find_active_user_by_email(
            self._normalize_email(email)
        )

        if user is None:
            logger.info("Login rejected for unknown or inactive account")
            # Same shape as a first wrong password on an existing account.
            raise InvalidCredentialsException(
                remaining_attempts=self._lockout_policy.remaining_attempts(1)
            )

        self._lockout_policy.check_lockout(user)

        if not await self._password_service.verify_password(password, user.hashed_password):
            attempts = await self._lockout_policy.record_failure(user)
            remaining = self._lockout_policy.remaining_attempts(attempts)
            if remaining > 0:
                raise InvalidCredentialsException(remaining_attempts=remaining)
            raise AccountLockedException(self._lockout_policy.lockout_minutes)

        await self._lockout_policy.record_success(user)

        access_token, refresh_token = await self._issue_session(user, client_info)
        roles = await self._role_repository.get_roles_for_user(user.id)
        logger.info(f"User {user.id} logged in")

        return AuthResult(
            user=user.to_profile(tuple(role.name for role in roles)),
            access_token=access_token.token,
            refresh_token=refresh_token.token,
            expires_at=access_token.expires_at,
        )

    async def refresh(
        self, refresh_token: str, client_info: Optional[ClientInfo] = None
    ) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        The presented token is consumed; the previous access token stays
        valid until its own expiry.

        Raises:
            RefreshTokenInvalidException: If refresh token is unknown
            RefreshTokenRevokedException: If refresh token was used or revoked
            RefreshTokenExpiredException: If refresh token has expired
            UserInactiveException: If the owner was deactivated or deleted
        """
        record = await self._refresh_token_repository.rotate_refresh_token(
            refresh_token, self._clock()
        )

        user = await self._user_repository.get_user_by_id(record.user_id)
        if user is None or not user.is_active:
            raise UserInactiveException(record.user_id)

        access_token, new_refresh_token = await self._issue_session(user, client_info)
        logger.info(f"Rotated refresh token {record.id} for user {user.id}")

        return TokenPair(
            access_token=access_token.token,
            refresh_token=new_refresh_token.token,
            expires_at=access_token.expires_at,
        )

    async def logout(
        self, access_token: Optional[str], refresh_token: Optional[str] = None
    ) -> None:
        """
        Invalidate the current session.

        Blacklists the access token's jti and revokes the given refresh
        token. Unusable inputs are ignored: the session is unusable either way.
        """
        claims = self._token_service.decode_access_token(access_token)
        if claims is not None:
            await self._revoked_token_repository.revoke(
                RevokedToken(
                    jti=claims.jti,
                    user_id=claims.sub,
                    expires_at=claims.expires_at,
                    reason=RevocationReason.LOGOUT,
                )
            )
            logger.info(f"User {claims.sub} logged out")

        if refresh_token:
            await self._refresh_token_repository.revoke_refresh_token(
                refresh_token, self._clock()
            )

    async def logout_all(self, user_id: str) -> int:
        """
        Revoke every outstanding refresh token of the user.

        Access tokens already issued are not blacklisted and stay valid
        until they expire.

        Returns:
            Number of refresh tokens revoked
        """
        revoked = await self._refresh_token_repository.revoke_user_tokens(
            user_id, self._clock()
        )
        logger.info(f"Revoked {revoked} refresh token(s) for user {user_id}")
        return revoked

    async def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        current_claims: Optional[AccessTokenClaims] = None,
    ) -> None:
        """
        Change the user's password.

        Access tokens issued before the change are rejected from now on,
        and every refresh token of the user is revoked.

        Args:
            user_id: User identifier
            current_password: Password to re-verify
            new_password: Replacement password
            current_claims: Claims of the token presenting the request

        Raises:
            NotFoundException: If user does not exist
            UnauthorizedException: If current password does not match
        """
        user = await self._user_repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User", user_id)

        if not await self._password_service.verify_password(current_password, user.hashed_password):
            raise UnauthorizedException("Current password is incorrect")

        hashed_password = await self._password_service.hash_password(new_password)
        now = self._clock()

        await self._user_repository.update_user_fields(
            user_id, hashed_password=hashed_password, password_changed_at=now
        )

        if current_claims is not None:
            await self._revoked_token_repository.revoke(
                RevokedToken(
                    jti=current_claims.jti,
                    user_id=user_id,
                    expires_at=current_claims.expires_at,
                    reason=RevocationReason.PASSWORD_CHANGE,
                )
            )

        await self._refresh_token_repository.revoke_user_tokens(user_id, now)
        logger.info(f"Password changed for user {user_id}")

    async def verify_access_token(self, token: str) -> AccessTokenClaims:
        """
        Verify an access token and check the revocation list.

        Raises:
            TokenMissingException: If token is empty
            TokenExpiredException: If token has expired
            TokenInvalidException: If token is invalid
            TokenBlacklistedException: If token was revoked
        """
        claims = self._token_service.verify_access_token(token)

        if await self._revoked_token_repository.is_revoked(claims.jti):
            raise TokenBlacklistedException()

        return claims

    async def resolve_token(self, token: str) -> Tuple[User, AccessTokenClaims]:
        """
        Get the user behind an access token together with its claims.

        Raises:
            TokenInvalidException: If the user is gone or changed password
                after the token was issued
        """
        claims = await self.verify_access_token(token)

        user = await self._user_repository.get_user_by_id(claims.sub)
        if user is None:
            raise TokenInvalidException("User not found")

        if user.password_changed_at and user.password_changed_at > claims.issued_at:
            raise TokenInvalidException("Password was changed. Please log in again")

        return user, claims

    async def get_user_from_token(self, token: str) -> User:
        """
        Get current user from access token.

        Args:
            token: JWT access token

        Returns:
            Current user entity
        """
        user, _ = await self.resolve_token(token)
        return user

    async def get_user_profile(self, user_id: str) -> UserProfile:
        """
        Get a sanitized user with role names.

        Raises:
            NotFoundException: If user does not exist
        """
        user = await self._user_repository.get_user_by_id(user_id)
        if user is None:
            raise NotFoundException("User", user_id)

        roles = await self._role_repository.get_roles_for_user(user_id)
        return user.to_profile(tuple(role.name for role in roles))

    async def revoke_user_sessions(
        self, user_id: str, reason: RevocationReason = RevocationReason.ADMIN_REVOKE
    ) -> int:
        """
        Kill every session of a user, access tokens included.

        Every access token is issued alongside a refresh record, so the
        records created within one access token lifetime name every jti
        that may still be live.

        Returns:
            Number of refresh tokens revoked
        """
        now = self._clock()
        access_ttl = self._config.access_token_ttl
        recent = await self._refresh_token_repository.get_tokens_created_since(
            user_id, now - access_ttl
        )

        for record in recent:
            issued_at = record.created_at or now
            await self._revoked_token_repository.revoke(
                RevokedToken(
                    jti=record.access_token_jti,
                    user_id=user_id,
                    expires_at=issued_at + access_ttl,
                    reason=reason,
                )
            )

        revoked = await self._refresh_token_repository.revoke_user_tokens(user_id, now)
        logger.warning(
            f"Revoked sessions of user {user_id} ({reason.value}): "
            f"{len(recent)} access token(s), {revoked} refresh token(s)"
        )
        return revoked

    async def _issue_session(
        self, user: User, client_info: Optional[ClientInfo]
    ) -> Tuple[IssuedAccessToken, RefreshToken]:
        """Issue an access token and a refresh token bound to its jti."""
        client_info = client_info or ClientInfo()
        access_token = self._token_service.issue_access_token(user)

        refresh_token = await self._refresh_token_repository.save_refresh_token(
            RefreshToken(
                id=None,
                user_id=user.id,
                token=self._token_service.generate_refresh_secret(),
                access_token_jti=access_token.jti,
                expires_at=self._clock() + self._config.refresh_token_ttl,
                ip_address=client_info.ip_address,
                user_agent=client_info.user_agent,
            )
        )

        return access_token, refresh_token

    async def _resolve_initial_roles(self, role_ids: Tuple[str, ...]) -> List[Role]:
        """Look up explicit roles, or fall back to the default role."""
        if role_ids:
            roles = []
            for role_id in dict.fromkeys(role_ids):
                role = await self._role_repository.get_role_by_id(role_id)
                if role is None:
                    raise NotFoundException("Role", role_id)
                roles.append(role)
            return roles

        default_role = await self._role_repository.get_role_by_name(
            self._config.default_role_name
        )
        if default_role is None:
            logger.warning(
                f"Default role '{self._config.default_role_name}' does not exist; "
                "registering user without roles"
            )
            return []
        return [default_role]

    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()
