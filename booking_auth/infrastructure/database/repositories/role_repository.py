"""Role repository implementation."""

from typing import List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import Role
from booking_auth.core.auth.interfaces import RoleRepositoryInterface
from booking_auth.core.services.auth.models import RoleModel, role_permissions, user_roles


class SqlRoleRepository(RoleRepositoryInterface):
    """SQLAlchemy implementation of role repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize role repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_role_by_id(self, role_id: str) -> Optional[Role]:
        role_model = await self._session.get(RoleModel, role_id)
        return self._model_to_entity(role_model) if role_model else None

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        result = await self._session.execute(select(RoleModel).where(RoleModel.name == name))
        role_model = result.scalar_one_or_none()
        return self._model_to_entity(role_model) if role_model else None

    async def list_roles(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Role], int]:
        """
        List roles ordered by name.

        Args:
            limit: Page size
            offset: Rows to skip
            search: Case-insensitive substring of the role name

        Returns:
            Page of roles and the total count
        """
        conditions = []
        if search:
            conditions.append(func.lower(RoleModel.name).like(f"%{search.lower()}%"))

        total = await self._session.scalar(
            select(func.count()).select_from(RoleModel).where(*conditions)
        )
        result = await self._session.execute(
            select(RoleModel).where(*conditions).order_by(RoleModel.name).limit(limit).offset(offset)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()], total or 0

    async def create_role(self, role: Role) -> Role:
        role_model = RoleModel(
            name=role.name,
            description=role.description,
            is_active=role.is_active,
        )
        self._session.add(role_model)
        await self._session.flush()
        return self._model_to_entity(role_model)

    async def update_role(self, role: Role) -> Role:
        """
        Update existing role.

        Args:
            role: Role entity carrying the new values

        Returns:
            Updated role entity, unchanged input if the role is gone
        """
        role_model = await self._session.get(RoleModel, role.id)
        if role_model is None:
            return role

        role_model.name = role.name
        role_model.description = role.description
        role_model.is_active = role.is_active
        await self._session.flush()
        return self._model_to_entity(role_model)

    async def delete_role(self, role_id: str) -> bool:
        """
        Delete a role together with its memberships and grants.

        Returns:
            True if the role was deleted, False if not found
        """
        await self._session.execute(delete(user_roles).where(user_roles.c.role_id == role_id))
        await self._session.execute(
            delete(role_permissions).where(role_permissions.c.role_id == role_id)
        )
        result = await self._session.execute(
            delete(RoleModel)
            .where(RoleModel.id == role_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def grant_role_to_user(self, user_id: str, role_id: str) -> None:
        await self._session.execute(insert(user_roles).values(user_id=user_id, role_id=role_id))

    async def revoke_role_from_user(self, user_id: str, role_id: str) -> bool:
        result = await self._session.execute(
            delete(user_roles).where(
                user_roles.c.user_id == user_id,
                user_roles.c.role_id == role_id,
            )
        )
        return result.rowcount > 0

    async def user_has_role(self, user_id: str, role_id: str) -> bool:
        result = await self._session.execute(
            select(user_roles.c.role_id).where(
                user_roles.c.user_id == user_id,
                user_roles.c.role_id == role_id,
            )
        )
        return result.first() is not None

    async def get_roles_for_user(self, user_id: str) -> List[Role]:
        """
        Read the user's current role memberships.

        Args:
            user_id: User ID

        Returns:
            Roles the user holds, active or not, ordered by name
        """
        result = await self._session.execute(
            select(RoleModel)
            .join(user_roles, user_roles.c.role_id == RoleModel.id)
            .where(user_roles.c.user_id == user_id)
            .order_by(RoleModel.name)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def get_user_ids_for_role(self, role_id: str) -> List[str]:
        result = await self._session.execute(
            select(user_roles.c.user_id).where(user_roles.c.role_id == role_id)
        )
        return list(result.scalars().all())

    def _model_to_entity(self, model: RoleModel) -> Role:
        return Role(
            id=model.id,
            name=model.name,
            description=model.description,
            is_active=model.is_active,
            created_at=model.created_at,
        )
