"""Refresh token repository implementation."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import RefreshToken
from booking_auth.core.auth.exceptions import (
    RefreshTokenExpiredException,
    RefreshTokenInvalidException,
    RefreshTokenRevokedException,
)
from booking_auth.core.auth.interfaces import RefreshTokenRepositoryInterface
from booking_auth.core.services.auth.models import RefreshTokenModel

logger = logging.getLogger(__name__)


class SqlRefreshTokenRepository(RefreshTokenRepositoryInterface):
    """SQLAlchemy implementation of refresh token repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize refresh token repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """
        Get refresh token by token string.

        Args:
            token: Refresh token string

        Returns:
            RefreshToken entity if found, None otherwise
        """
        result = await self._session.execute(
            select(RefreshTokenModel).where(RefreshTokenModel.token == token)
        )
        token_model = result.scalar_one_or_none()

        if token_model:
            return self._model_to_entity(token_model)
        return None

    async def save_refresh_token(self, refresh_token: RefreshToken) -> RefreshToken:
        """
        Save new refresh token.

        Args:
            refresh_token: RefreshToken entity to save

        Returns:
            Created RefreshToken entity
        """
        token_model = RefreshTokenModel(
            user_id=refresh_token.user_id,
            token=refresh_token.token,
            access_token_jti=refresh_token.access_token_jti,
            expires_at=refresh_token.expires_at,
            is_revoked=refresh_token.is_revoked,
            ip_address=refresh_token.ip_address,
            user_agent=(refresh_token.user_agent or "")[:500] or None,
        )
        if refresh_token.created_at is not None:
            token_model.created_at = refresh_token.created_at

        self._session.add(token_model)
        await self._session.flush()
        return self._model_to_entity(token_model)

    async def rotate_refresh_token(self, token: str, now: datetime) -> RefreshToken:
        """
        Consume a refresh token exactly once.

        The revoke is a single conditional UPDATE, so of two concurrent
        rotations only one matches a row. The winner commits at once.

        Args:
            token: Presented refresh secret
            now: Current time

        Returns:
            The consumed record

        Raises:
            RefreshTokenInvalidException: If no record matches
            RefreshTokenRevokedException: If already used or revoked
            RefreshTokenExpiredException: If past expiry
        """
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.token == token,
                RefreshTokenModel.is_revoked.is_(False),
                RefreshTokenModel.expires_at > now,
            )
            .values(is_revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 1:
            await self._session.commit()
            consumed = await self._session.execute(
                select(RefreshTokenModel)
                .where(RefreshTokenModel.token == token)
                .execution_options(populate_existing=True)
            )
            return self._model_to_entity(consumed.scalar_one())

        existing = await self.get_refresh_token(token)
        if existing is None:
            raise RefreshTokenInvalidException()
        if existing.is_revoked:
            logger.warning(f"Reuse of revoked refresh token {existing.id} for user {existing.user_id}")
            raise RefreshTokenRevokedException()
        if existing.is_expired(now):
            raise RefreshTokenExpiredException()
        raise RefreshTokenInvalidException()

    async def revoke_refresh_token(self, token: str, now: datetime) -> bool:
        """
        Revoke refresh token.

        Args:
            token: Refresh token string
            now: Revocation time

        Returns:
            True if token was revoked, False if not found or already revoked
        """
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.token == token,
                RefreshTokenModel.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )

        return result.rowcount > 0

    async def revoke_user_tokens(self, user_id: str, now: datetime) -> int:
        """
        Revoke all refresh tokens for a user.

        Args:
            user_id: User ID
            now: Revocation time

        Returns:
            Number of tokens revoked
        """
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.user_id == user_id,
                RefreshTokenModel.is_revoked.is_(False),
            )
            .values(is_revoked=True, revoked_at=now)
            .execution_options(synchronize_session=False)
        )

        return result.rowcount

    async def get_tokens_created_since(self, user_id: str, since: datetime) -> List[RefreshToken]:
        result = await self._session.execute(
            select(RefreshTokenModel)
            .where(
                RefreshTokenModel.user_id == user_id,
                RefreshTokenModel.created_at >= since,
            )
            .order_by(RefreshTokenModel.created_at)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def cleanup_expired_tokens(self, now: datetime) -> int:
        """
        Remove expired refresh tokens from database.

        Args:
            now: Current time

        Returns:
            Number of tokens removed
        """
        result = await self._session.execute(
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _model_to_entity(self, model: RefreshTokenModel) -> RefreshToken:
        """
        Convert database model to domain entity.

        Args:
            model: RefreshToken database model

        Returns:
            RefreshToken domain entity
        """
        return RefreshToken(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            access_token_jti=model.access_token_jti,
            expires_at=model.expires_at,
            is_revoked=model.is_revoked,
            revoked_at=model.revoked_at,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            created_at=model.created_at,
        )
