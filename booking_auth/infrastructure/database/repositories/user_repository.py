"""User repository implementation."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import User
from booking_auth.core.auth.exceptions import (
    EmailDuplicatedException,
    UsernameDuplicatedException,
)
from booking_auth.core.auth.interfaces import UserRepositoryInterface
from booking_auth.core.domain.enums import UserStatus
from booking_auth.core.services.auth.models import UserModel

logger = logging.getLogger(__name__)


class SqlUserRepository(UserRepositoryInterface):
    """SQLAlchemy implementation of user repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize user repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_user_by_id(self, user_id: str, include_deleted: bool = False) -> Optional[User]:
        """
        Get user by ID.

        Args:
            user_id: User ID
            include_deleted: Also return soft-deleted users

        Returns:
            User entity if found, None otherwise
        """
        query = select(UserModel).where(UserModel.id == user_id)
        return await self._fetch_one(query, include_deleted)

    async def get_user_by_username(self, username: str, include_deleted: bool = False) -> Optional[User]:
        query = select(UserModel).where(UserModel.username == username)
        return await self._fetch_one(query, include_deleted)

    async def get_user_by_email(self, email: str, include_deleted: bool = False) -> Optional[User]:
        query = select(UserModel).where(UserModel.email == email)
        return await self._fetch_one(query, include_deleted)

    async def find_active_user_by_email(self, email: str) -> Optional[User]:
        """
        Get a user allowed to log in.

        Args:
            email: Lower-cased email address

        Returns:
            Active, non-deleted user entity if found, None otherwise
        """
        query = select(UserModel).where(
            UserModel.email == email,
            UserModel.is_active.is_(True),
        )
        return await self._fetch_one(query, include_deleted=False)

    async def list_users(
        self,
        limit: int = 50,
        offset: int = 0,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> Tuple[List[User], int]:
        """
        List users ordered by creation time.

        Args:
            limit: Page size
            offset: Rows to skip
            search: Substring matched against username and email
            include_deleted: Also list soft-deleted users

        Returns:
            Page of users and the total count
        """
        conditions = []
        if not include_deleted:
            conditions.append(UserModel.status != UserStatus.DELETED.value)
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(func.lower(UserModel.username).like(pattern), UserModel.email.like(pattern))
            )

        total = await self._session.scalar(
            select(func.count()).select_from(UserModel).where(*conditions)
        )
        result = await self._session.execute(
            select(UserModel)
            .where(*conditions)
            .order_by(UserModel.created_at)
            .limit(limit)
            .offset(offset)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()], total or 0

    async def create_user(self, user: User) -> User:
        """
        Create new user.

        Args:
            user: User entity to create

        Returns:
            Created user entity with ID

        Raises:
            EmailDuplicatedException: If email exists, soft-deleted users included
            UsernameDuplicatedException: If username exists
        """
        await self._ensure_unique(user.email, user.username)

        user_model = UserModel(
            username=user.username,
            email=user.email,
            hashed_password=user.hashed_password,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            status=UserStatus.ACTIVE.value,
        )

        try:
            self._session.add(user_model)
            await self._session.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration.
            await self._session.rollback()
            await self._ensure_unique(user.email, user.username)
            raise EmailDuplicatedException(user.email)

        await self._session.refresh(user_model)
        return self._model_to_entity(user_model)

    async def update_user_fields(self, user_id: str, **fields: Any) -> Optional[User]:
        """
        Update selected columns of a user.

        Args:
            user_id: User ID
            **fields: Column values to write

        Returns:
            Updated user entity, None if not found
        """
        user_model = await self._session.get(UserModel, user_id)
        if user_model is None:
            return None

        for name, value in fields.items():
            if name not in UserModel.__table__.columns:
                raise AttributeError(f"UserModel has no column '{name}'")
            setattr(user_model, name, value.value if isinstance(value, Enum) else value)

        await self._session.flush()
        return self._model_to_entity(user_model)

    async def increment_failed_login_attempts(
        self, user_id: str, max_attempts: int, lock_until: datetime
    ) -> int:
        """
        Count a failed login in a single atomic UPDATE.

        ``locked_until`` is set in the same statement once the new count
        reaches ``max_attempts``. Committed immediately so the count survives
        the failing request.

        Returns:
            The new failed attempt count
        """
        new_count = UserModel.failed_login_attempts + 1
        await self._session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                failed_login_attempts=new_count,
                locked_until=case(
                    (new_count >= max_attempts, lock_until),
                    else_=UserModel.locked_until,
                ),
            )
            .execution_options(synchronize_session="fetch")
        )
        attempts = await self._session.scalar(
            select(UserModel.failed_login_attempts).where(UserModel.id == user_id)
        )
        await self._session.commit()
        return attempts or 0

    async def _ensure_unique(self, email: str, username: str) -> None:
        if await self.get_user_by_email(email, include_deleted=True) is not None:
            raise EmailDuplicatedException(email)
        if await self.get_user_by_username(username, include_deleted=True) is not None:
            raise UsernameDuplicatedException(username)

    async def _fetch_one(self, query, include_deleted: bool) -> Optional[User]:
        if not include_deleted:
            query = query.where(UserModel.status != UserStatus.DELETED.value)

        result = await self._session.execute(query)
        user_model = result.scalar_one_or_none()

        if user_model:
            return self._model_to_entity(user_model)
        return None

    def _model_to_entity(self, model: UserModel) -> User:
        """
        Convert database model to domain entity.

        Args:
            model: User database model

        Returns:
            User domain entity
        """
        return User(
            id=model.id,
            username=model.username,
            email=model.email,
            hashed_password=model.hashed_password,
            first_name=model.first_name,
            last_name=model.last_name,
            is_active=model.is_active,
            status=UserStatus(model.status),
            failed_login_attempts=model.failed_login_attempts,
            locked_until=model.locked_until,
            last_login=model.last_login,
            password_changed_at=model.password_changed_at,
            deleted_at=model.deleted_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
