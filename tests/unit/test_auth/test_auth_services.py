"""Tests for authentication services."""

import pytest
from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock

from jose import jwt
from passlib.hash import bcrypt

from booking_auth.core.auth.config import AuthConfig
from booking_auth.core.auth.entities import (
    ClientInfo,
    RefreshToken,
    Role,
    User,
    UserRegistration,
)
from booking_auth.core.auth.exceptions import (
    AccountLockedException,
    InvalidCredentialsException,
    RefreshTokenRevokedException,
    TokenBlacklistedException,
    TokenExpiredException,
    TokenInvalidException,
    TokenMissingException,
    UnauthorizedException,
    UserInactiveException,
)
from booking_auth.core.auth.services import (
    AuthenticationService,
    LockoutPolicy,
    PasswordService,
    TokenService,
)
from booking_auth.core.domain.enums import RevocationReason
from booking_auth.core.exceptions import NotFoundException
from booking_auth.utils.time import utcnow

NOW = utcnow().replace(microsecond=0)
PASSWORD = "correct_password"
PASSWORD_HASH = bcrypt.using(rounds=4).hash(PASSWORD)


@pytest.fixture
def auth_config():
    return AuthConfig(jwt_secret_key="test-secret")


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def password_service():
    """Create password service with a cheap cost factor."""
    return PasswordService(rounds=4)


@pytest.fixture
def token_service(auth_config):
    return TokenService(auth_config)


@pytest.fixture
def mock_user():
    """Create user holding a real hash of PASSWORD."""
    return User(
        id="user-1",
        username="testuser",
        email="test@example.com",
        hashed_password=PASSWORD_HASH,
        is_active=True,
    )


@pytest.fixture
def mock_user_repository():
    """Create mock user repository."""
    return AsyncMock()


@pytest.fixture
def mock_refresh_token_repository():
    """Create mock refresh token repository echoing saved tokens back."""
    repository = AsyncMock()
    repository.save_refresh_token.side_effect = lambda token: replace(token, id="rt-new", created_at=NOW)
    return repository


@pytest.fixture
def mock_revoked_token_repository():
    repository = AsyncMock()
    repository.is_revoked.return_value = False
    return repository


@pytest.fixture
def mock_role_repository():
    repository = AsyncMock()
    repository.get_roles_for_user.return_value = [Role(id="role-user", name="user")]
    return repository


@pytest.fixture
def lockout_policy(mock_user_repository, auth_config, clock):
    return LockoutPolicy(mock_user_repository, auth_config, clock)


@pytest.fixture
def auth_service(
    mock_user_repository,
    mock_refresh_token_repository,
    mock_revoked_token_repository,
    mock_role_repository,
    password_service,
    token_service,
    lockout_policy,
    auth_config,
    clock,
):
    """Create authentication service with mocked repositories."""
    return AuthenticationService(
        mock_user_repository,
        mock_refresh_token_repository,
        mock_revoked_token_repository,
        mock_role_repository,
        password_service,
        token_service,
        lockout_policy,
        auth_config,
        clock,
    )


class TestPasswordService:
    """Test cases for PasswordService."""

    @pytest.mark.asyncio
    async def test_hash_password(self, password_service):
        """Test password hashing."""
        hashed = await password_service.hash_password("test_password_123")

        assert hashed != "test_password_123"
        assert hashed.startswith("$2b$")

    @pytest.mark.asyncio
    async def test_verify_password(self, password_service):
        hashed = await password_service.hash_password("test_password_123")

        assert await password_service.verify_password("test_password_123", hashed) is True
        assert await password_service.verify_password("wrong_password", hashed) is False

    @pytest.mark.asyncio
    async def test_same_password_produces_different_hashes(self, password_service):
        hash1 = await password_service.hash_password("test_password_123")
        hash2 = await password_service.hash_password("test_password_123")

        assert hash1 != hash2

    @pytest.mark.asyncio
    async def test_verify_against_garbage_hash_is_false(self, password_service):
        """Test that an unrecognised stored hash fails closed."""
        assert await password_service.verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokenService:
    """Test cases for TokenService."""

    def test_issue_access_token(self, token_service, mock_user):
        """Test access token claims."""
        issued = token_service.issue_access_token(mock_user)
        claims = jwt.get_unverified_claims(issued.token)

        assert issued.token.count(".") == 2
        assert claims["sub"] == "user-1"
        assert claims["email"] == "test@example.com"
        assert claims["username"] == "testuser"
        assert claims["jti"] == issued.jti
        assert claims["token_type"] == "access"
        assert claims["exp"] - claims["iat"] == pytest.approx(15 * 60, abs=1)

    def test_every_token_gets_a_fresh_jti(self, token_service, mock_user):
        first = token_service.issue_access_token(mock_user)
        second = token_service.issue_access_token(mock_user)

        assert first.jti != second.jti
        assert len(first.jti) == 32

    def test_expires_at_matches_signed_claim(self, token_service, mock_user):
        issued = token_service.issue_access_token(mock_user)
        claims = token_service.verify_access_token(issued.token)

        assert issued.expires_at == claims.expires_at

    def test_verify_access_token(self, token_service, mock_user):
        issued = token_service.issue_access_token(mock_user)

        claims = token_service.verify_access_token(issued.token)

        assert claims.sub == "user-1"
        assert claims.jti == issued.jti
        assert isinstance(claims.iat, float)

    def test_verify_empty_token(self, token_service):
        with pytest.raises(TokenMissingException):
            token_service.verify_access_token("")

    def test_verify_expired_token(self, auth_config, mock_user):
        """Test that an expired signature is reported as expired, not invalid."""
        past = TokenService(auth_config, clock=lambda: utcnow() - timedelta(hours=1))
        issued = past.issue_access_token(mock_user)

        with pytest.raises(TokenExpiredException):
            TokenService(auth_config).verify_access_token(issued.token)

    def test_verify_wrong_signature(self, token_service, mock_user):
        forged = TokenService(AuthConfig(jwt_secret_key="other-secret")).issue_access_token(mock_user)

        with pytest.raises(TokenInvalidException):
            token_service.verify_access_token(forged.token)

    def test_verify_malformed_token(self, token_service):
        with pytest.raises(TokenInvalidException):
            token_service.verify_access_token("not.a.jwt")

    def test_verify_rejects_other_token_types(self, token_service):
        token = jwt.encode(
            {"sub": "user-1", "jti": "j", "iat": 0, "exp": 4102444800, "token_type": "refresh"},
            "test-secret",
            algorithm="HS256",
        )

        with pytest.raises(TokenInvalidException, match="Unexpected token type"):
            token_service.verify_access_token(token)

    def test_decode_ignores_expiry(self, auth_config, mock_user):
        past = TokenService(auth_config, clock=lambda: utcnow() - timedelta(hours=1))
        issued = past.issue_access_token(mock_user)

        claims = TokenService(auth_config).decode_access_token(issued.token)

        assert claims is not None
        assert claims.jti == issued.jti

    def test_decode_unusable_tokens(self, token_service):
        assert token_service.decode_access_token(None) is None
        assert token_service.decode_access_token("garbage") is None

    def test_refresh_secret_is_long_and_random(self, token_service):
        first = token_service.generate_refresh_secret()

        assert len(first) == 128
        assert first != token_service.generate_refresh_secret()


class TestLockoutPolicy:
    """Test cases for LockoutPolicy."""

    def test_check_lockout_inside_window(self, lockout_policy, mock_user):
        user = replace(mock_user, locked_until=NOW + timedelta(minutes=3))

        with pytest.raises(AccountLockedException) as exc_info:
            lockout_policy.check_lockout(user)

        assert exc_info.value.remaining_minutes == 3

    def test_check_lockout_after_window(self, lockout_policy, mock_user):
        lockout_policy.check_lockout(replace(mock_user, locked_until=NOW - timedelta(seconds=1)))

    @pytest.mark.asyncio
    async def test_record_failure(self, lockout_policy, mock_user, mock_user_repository):
        mock_user_repository.increment_failed_login_attempts.return_value = 2

        attempts = await lockout_policy.record_failure(mock_user)

        assert attempts == 2
        mock_user_repository.increment_failed_login_attempts.assert_awaited_once_with(
            "user-1", 5, NOW + timedelta(minutes=15)
        )

    @pytest.mark.asyncio
    async def test_record_success_resets_state(self, lockout_policy, mock_user, mock_user_repository):
        await lockout_policy.record_success(mock_user)

        mock_user_repository.update_user_fields.assert_awaited_once_with(
            "user-1", failed_login_attempts=0, locked_until=None, last_login=NOW
        )

    def test_remaining_attempts(self, lockout_policy):
        assert lockout_policy.remaining_attempts(1) == 4
        assert lockout_policy.lockout_minutes == 15


class TestAuthenticationServiceRegister:
    """Test cases for registration."""

    @pytest.mark.asyncio
    async def test_register_assigns_default_role(
        self, auth_service, mock_user_repository, mock_role_repository, mock_refresh_token_repository
    ):
        """Test registering with no explicit roles."""
        mock_role_repository.get_role_by_name.return_value = Role(id="role-user", name="user")
        mock_user_repository.create_user.side_effect = lambda user: replace(user, id="user-1")

        result = await auth_service.register(
            UserRegistration(username=" newuser ", email="New@Example.com", password="password123"),
            ClientInfo(ip_address="127.0.0.1", user_agent="pytest"),
        )

        created = mock_user_repository.create_user.await_args.args[0]
        assert created.email == "new@example.com"
        assert created.username == "newuser"
        assert created.hashed_password != "password123"

        mock_role_repository.get_role_by_name.assert_awaited_once_with("user")
        mock_role_repository.grant_role_to_user.assert_awaited_once_with("user-1", "role-user")

        assert result.user.roles == ("user",)
        assert result.user.email == "new@example.com"

        saved = mock_refresh_token_repository.save_refresh_token.await_args.args[0]
        assert saved.token == result.refresh_token
        assert saved.access_token_jti == jwt.get_unverified_claims(result.access_token)["jti"]
        assert saved.expires_at == NOW + timedelta(days=7)
        assert saved.ip_address == "127.0.0.1"
        assert saved.user_agent == "pytest"

    @pytest.mark.asyncio
    async def test_register_with_explicit_roles(
        self, auth_service, mock_user_repository, mock_role_repository
    ):
        admin = Role(id="role-admin", name="admin")
        mock_role_repository.get_role_by_id.return_value = admin
        mock_user_repository.create_user.side_effect = lambda user: replace(user, id="user-2")

        result = await auth_service.register(
            UserRegistration(
                username="boss", email="boss@example.com", password="password123", role_ids=("role-admin",)
            )
        )

        assert result.user.roles == ("admin",)
        mock_role_repository.get_role_by_name.assert_not_awaited()
        mock_role_repository.grant_role_to_user.assert_awaited_once_with("user-2", "role-admin")

    @pytest.mark.asyncio
    async def test_register_with_unknown_role(
        self, auth_service, mock_user_repository, mock_role_repository
    ):
        """Test that an unknown role id fails before the user is created."""
        mock_role_repository.get_role_by_id.return_value = None

        with pytest.raises(NotFoundException):
            await auth_service.register(
                UserRegistration(
                    username="boss", email="boss@example.com", password="password123", role_ids=("nope",)
                )
            )

        mock_user_repository.create_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_without_default_role(
        self, auth_service, mock_user_repository, mock_role_repository
    ):
        mock_role_repository.get_role_by_name.return_value = None
        mock_user_repository.create_user.side_effect = lambda user: replace(user, id="user-3")

        result = await auth_service.register(
            UserRegistration(username="lonely", email="lonely@example.com", password="password123")
        )

        assert result.user.roles == ()
        mock_role_repository.grant_role_to_user.assert_not_awaited()


class TestAuthenticationServiceLogin:
    """Test cases for login and lockout."""

    @pytest.mark.asyncio
    async def test_login_success(self, auth_service, mock_user, mock_user_repository):
        mock_user_repository.find_active_user_by_email.return_value = mock_user

        result = await auth_service.login(" TEST@example.com", PASSWORD)

        mock_user_repository.find_active_user_by_email.assert_awaited_once_with("test@example.com")
        mock_user_repository.update_user_fields.assert_awaited_once_with(
            "user-1", failed_login_attempts=0, locked_until=None, last_login=NOW
        )
        assert result.user.id == "user-1"
        assert result.user.roles == ("user",)
        assert result.access_token.count(".") == 2
        assert len(result.refresh_token) == 128

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, auth_service, mock_user_repository):
        """Test that an unknown email looks like a first wrong password."""
        mock_user_repository.find_active_user_by_email.return_value = None

        with pytest.raises(InvalidCredentialsException) as exc_info:
            await auth_service.login("ghost@example.com", PASSWORD)

        assert exc_info.value.remaining_attempts == 4
        assert exc_info.value.message == "Invalid credentials. 4 attempt(s) remaining"
        mock_user_repository.increment_failed_login_attempts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, auth_service, mock_user, mock_user_repository):
        mock_user_repository.find_active_user_by_email.return_value = mock_user
        mock_user_repository.increment_failed_login_attempts.return_value = 3

        with pytest.raises(InvalidCredentialsException) as exc_info:
            await auth_service.login("test@example.com", "wrong_password")

        assert exc_info.value.remaining_attempts == 2
        mock_user_repository.update_user_fields.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_failure_reaching_threshold_locks(
        self, auth_service, mock_user, mock_user_repository
    ):
        """Test that the fifth failure itself reports the lock."""
        mock_user_repository.find_active_user_by_email.return_value = mock_user
        mock_user_repository.increment_failed_login_attempts.return_value = 5

        with pytest.raises(AccountLockedException) as exc_info:
            await auth_service.login("test@example.com", "wrong_password")

        assert exc_info.value.remaining_minutes == 15

    @pytest.mark.asyncio
    async def test_login_while_locked_skips_password_check(
        self, auth_service, mock_user, mock_user_repository, mock_refresh_token_repository
    ):
        locked = replace(mock_user, failed_login_attempts=5, locked_until=NOW + timedelta(minutes=10))
        mock_user_repository.find_active_user_by_email.return_value = locked

        with pytest.raises(AccountLockedException) as exc_info:
            await auth_service.login("test@example.com", PASSWORD)

        assert exc_info.value.remaining_minutes == 10
        mock_user_repository.increment_failed_login_attempts.assert_not_awaited()
        mock_refresh_token_repository.save_refresh_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_after_lock_expired(self, auth_service, mock_user, mock_user_repository):
        """Test that an elapsed lock lets a correct password through and resets."""
        expired_lock = replace(mock_user, failed_login_attempts=5, locked_until=NOW - timedelta(minutes=1))
        mock_user_repository.find_active_user_by_email.return_value = expired_lock

        result = await auth_service.login("test@example.com", PASSWORD)

        assert result.user.id == "user-1"
        mock_user_repository.update_user_fields.assert_awaited_once_with(
            "user-1", failed_login_attempts=0, locked_until=None, last_login=NOW
        )


class TestAuthenticationServiceTokens:
    """Test cases for refresh, logout and token resolution."""

    @pytest.mark.asyncio
    async def test_refresh_rotates(
        self, auth_service, mock_user, mock_user_repository, mock_refresh_token_repository
    ):
        mock_refresh_token_repository.rotate_refresh_token.return_value = RefreshToken(
            id="rt-old",
            user_id="user-1",
            token="old_refresh",
            access_token_jti="old-jti",
            expires_at=NOW + timedelta(days=1),
            is_revoked=True,
        )
        mock_user_repository.get_user_by_id.return_value = mock_user

        pair = await auth_service.refresh("old_refresh")

        mock_refresh_token_repository.rotate_refresh_token.assert_awaited_once_with("old_refresh", NOW)
        assert pair.refresh_token != "old_refresh"
        assert pair.token_type == "bearer"
        mock_refresh_token_repository.save_refresh_token.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_for_inactive_user(
        self, auth_service, mock_user, mock_user_repository, mock_refresh_token_repository
    ):
        mock_refresh_token_repository.rotate_refresh_token.return_value = RefreshToken(
            id="rt-old",
            user_id="user-1",
            token="old_refresh",
            access_token_jti="old-jti",
            expires_at=NOW + timedelta(days=1),
        )
        mock_user_repository.get_user_by_id.return_value = replace(mock_user, is_active=False)

        with pytest.raises(UserInactiveException):
            await auth_service.refresh("old_refresh")

        mock_refresh_token_repository.save_refresh_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refresh_reuse_propagates(self, auth_service, mock_refresh_token_repository):
        mock_refresh_token_repository.rotate_refresh_token.side_effect = RefreshTokenRevokedException()

        with pytest.raises(RefreshTokenRevokedException):
            await auth_service.refresh("used_refresh")

    @pytest.mark.asyncio
    async def test_logout_blacklists_jti(
        self,
        auth_service,
        token_service,
        mock_user,
        mock_revoked_token_repository,
        mock_refresh_token_repository,
    ):
        issued = token_service.issue_access_token(mock_user)

        await auth_service.logout(issued.token, "some_refresh")

        entry = mock_revoked_token_repository.revoke.await_args.args[0]
        assert entry.jti == issued.jti
        assert entry.user_id == "user-1"
        assert entry.expires_at == issued.expires_at
        assert entry.reason == RevocationReason.LOGOUT
        mock_refresh_token_repository.revoke_refresh_token.assert_awaited_once_with("some_refresh", NOW)

    @pytest.mark.asyncio
    async def test_logout_with_expired_token_still_blacklists(
        self, auth_service, auth_config, mock_user, mock_revoked_token_repository
    ):
        past = TokenService(auth_config, clock=lambda: utcnow() - timedelta(hours=1))
        issued = past.issue_access_token(mock_user)

        await auth_service.logout(issued.token)

        assert mock_revoked_token_repository.revoke.await_args.args[0].jti == issued.jti

    @pytest.mark.asyncio
    async def test_logout_with_garbage_token(
        self, auth_service, mock_revoked_token_repository, mock_refresh_token_repository
    ):
        """Test that logout succeeds with nothing usable to revoke."""
        await auth_service.logout("garbage")

        mock_revoked_token_repository.revoke.assert_not_awaited()
        mock_refresh_token_repository.revoke_refresh_token.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_logout_all(self, auth_service, mock_refresh_token_repository, mock_revoked_token_repository):
        mock_refresh_token_repository.revoke_user_tokens.return_value = 3

        revoked = await auth_service.logout_all("user-1")

        assert revoked == 3
        mock_refresh_token_repository.revoke_user_tokens.assert_awaited_once_with("user-1", NOW)
        mock_revoked_token_repository.revoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_verify_blacklisted_token(
        self, auth_service, token_service, mock_user, mock_revoked_token_repository
    ):
        issued = token_service.issue_access_token(mock_user)
        mock_revoked_token_repository.is_revoked.return_value = True

        with pytest.raises(TokenBlacklistedException):
            await auth_service.verify_access_token(issued.token)

        mock_revoked_token_repository.is_revoked.assert_awaited_once_with(issued.jti)

    @pytest.mark.asyncio
    async def test_resolve_token(self, auth_service, token_service, mock_user, mock_user_repository):
        issued = token_service.issue_access_token(mock_user)
        mock_user_repository.get_user_by_id.return_value = mock_user

        user, claims = await auth_service.resolve_token(issued.token)

        assert user == mock_user
        assert claims.jti == issued.jti

    @pytest.mark.asyncio
    async def test_resolve_token_after_password_change(
        self, auth_service, token_service, mock_user, mock_user_repository
    ):
        """Test that tokens issued before a password change are stale."""
        issued = token_service.issue_access_token(mock_user)
        mock_user_repository.get_user_by_id.return_value = replace(
            mock_user, password_changed_at=utcnow() + timedelta(seconds=1)
        )

        with pytest.raises(TokenInvalidException, match="Password was changed"):
            await auth_service.resolve_token(issued.token)

    @pytest.mark.asyncio
    async def test_resolve_token_for_missing_user(
        self, auth_service, token_service, mock_user, mock_user_repository
    ):
        issued = token_service.issue_access_token(mock_user)
        mock_user_repository.get_user_by_id.return_value = None

        with pytest.raises(TokenInvalidException, match="User not found"):
            await auth_service.get_user_from_token(issued.token)


class TestAuthenticationServiceAccount:
    """Test cases for password change, profile and session revocation."""

    @pytest.mark.asyncio
    async def test_change_password(
        self,
        auth_service,
        token_service,
        mock_user,
        mock_user_repository,
        mock_refresh_token_repository,
        mock_revoked_token_repository,
    ):
        mock_user_repository.get_user_by_id.return_value = mock_user
        claims = token_service.verify_access_token(token_service.issue_access_token(mock_user).token)

        await auth_service.change_password("user-1", PASSWORD, "new_password", current_claims=claims)

        kwargs = mock_user_repository.update_user_fields.await_args.kwargs
        assert kwargs["password_changed_at"] == NOW
        assert kwargs["hashed_password"] != "new_password"
        assert kwargs["hashed_password"].startswith("$2b$")

        entry = mock_revoked_token_repository.revoke.await_args.args[0]
        assert entry.jti == claims.jti
        assert entry.reason == RevocationReason.PASSWORD_CHANGE
        mock_refresh_token_repository.revoke_user_tokens.assert_awaited_once_with("user-1", NOW)

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(
        self, auth_service, mock_user, mock_user_repository, mock_refresh_token_repository
    ):
        mock_user_repository.get_user_by_id.return_value = mock_user

        with pytest.raises(UnauthorizedException, match="Current password is incorrect"):
            await auth_service.change_password("user-1", "wrong_password", "new_password")

        mock_user_repository.update_user_fields.assert_not_awaited()
        mock_refresh_token_repository.revoke_user_tokens.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_change_password_unknown_user(self, auth_service, mock_user_repository):
        mock_user_repository.get_user_by_id.return_value = None

        with pytest.raises(NotFoundException):
            await auth_service.change_password("ghost", PASSWORD, "new_password")

    @pytest.mark.asyncio
    async def test_get_user_profile(self, auth_service, mock_user, mock_user_repository):
        mock_user_repository.get_user_by_id.return_value = mock_user

        profile = await auth_service.get_user_profile("user-1")

        assert profile.username == "testuser"
        assert profile.roles == ("user",)

    @pytest.mark.asyncio
    async def test_revoke_user_sessions_blacklists_recent_access_tokens(
        self, auth_service, mock_refresh_token_repository, mock_revoked_token_repository
    ):
        """Test that every access token issued within one lifetime is blacklisted."""
        created = [NOW - timedelta(minutes=10), NOW - timedelta(minutes=1)]
        mock_refresh_token_repository.get_tokens_created_since.return_value = [
            RefreshToken(
                id=f"rt-{index}",
                user_id="user-1",
                token=f"refresh-{index}",
                access_token_jti=f"jti-{index}",
                expires_at=NOW + timedelta(days=7),
                created_at=created_at,
            )
            for index, created_at in enumerate(created)
        ]
        mock_refresh_token_repository.revoke_user_tokens.return_value = 2

        revoked = await auth_service.revoke_user_sessions("user-1")

        assert revoked == 2
        mock_refresh_token_repository.get_tokens_created_since.assert_awaited_once_with(
            "user-1", NOW - timedelta(minutes=15)
        )
        entries = [call.args[0] for call in mock_revoked_token_repository.revoke.await_args_list]
        assert [entry.jti for entry in entries] == ["jti-0", "jti-1"]
        assert entries[0].expires_at == created[0] + timedelta(minutes=15)
        assert all(entry.reason == RevocationReason.ADMIN_REVOKE for entry in entries)
