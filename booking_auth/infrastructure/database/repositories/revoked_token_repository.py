"""Access token revocation list repository."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import RevokedToken
from booking_auth.core.auth.interfaces import RevokedTokenRepositoryInterface
from booking_auth.core.services.auth.models import RevokedTokenModel, generate_id
from booking_auth.utils.time import utcnow

_INSERT_BY_DIALECT = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class SqlRevokedTokenRepository(RevokedTokenRepositoryInterface):
    """SQLAlchemy implementation of the token blacklist."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def revoke(self, entry: RevokedToken) -> None:
        """
        Blacklist a jti.

        Inserting a jti that is already present is a no-op, so concurrent
        logouts of the same token both succeed.

        Args:
            entry: Blacklist entry to insert
        """
        dialect = self._session.bind.dialect.name
        insert = _INSERT_BY_DIALECT.get(dialect)
        if insert is None:
            raise RuntimeError(f"Unsupported database dialect for token blacklist: {dialect}")

        statement = (
            insert(RevokedTokenModel)
            .values(
                id=entry.id or generate_id(),
                jti=entry.jti,
                user_id=entry.user_id,
                expires_at=entry.expires_at,
                reason=entry.reason.value,
                created_at=entry.created_at or utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["jti"])
        )
        await self._session.execute(statement)

    async def is_revoked(self, jti: str) -> bool:
        result = await self._session.execute(
            select(RevokedTokenModel.id).where(RevokedTokenModel.jti == jti).limit(1)
        )
        return result.first() is not None

    async def prune(self, now: datetime) -> int:
        """
        Delete entries whose original token expiry has passed.

        Such tokens fail signature-time expiry checks anyway.

        Args:
            now: Current time

        Returns:
            Number of entries removed
        """
        result = await self._session.execute(
            delete(RevokedTokenModel)
            .where(RevokedTokenModel.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
