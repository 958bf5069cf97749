"""Permission repository implementation."""

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import Permission
from booking_auth.core.auth.interfaces import PermissionRepositoryInterface
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.services.auth.models import PermissionModel, role_permissions


class SqlPermissionRepository(PermissionRepositoryInterface):
    """SQLAlchemy implementation of permission repository."""

    def __init__(self, session: AsyncSession):
        """
        Initialize permission repository.

        Args:
            session: Database session
        """
        self._session = session

    async def get_permission_by_id(self, permission_id: str) -> Optional[Permission]:
        permission_model = await self._session.get(PermissionModel, permission_id)
        return self._model_to_entity(permission_model) if permission_model else None

    async def get_permission_by_name(self, name: str) -> Optional[Permission]:
        result = await self._session.execute(
            select(PermissionModel).where(PermissionModel.name == name)
        )
        permission_model = result.scalar_one_or_none()
        return self._model_to_entity(permission_model) if permission_model else None

    async def get_permission_by_resource_action(
        self, resource: str, action: PermissionAction
    ) -> Optional[Permission]:
        result = await self._session.execute(
            select(PermissionModel).where(
                PermissionModel.resource == resource,
                PermissionModel.action == PermissionAction(action).value,
            )
        )
        permission_model = result.scalar_one_or_none()
        return self._model_to_entity(permission_model) if permission_model else None

    async def list_permissions(
        self, limit: int = 50, offset: int = 0, search: Optional[str] = None
    ) -> Tuple[List[Permission], int]:
        """
        List permissions ordered by name.

        Args:
            limit: Page size
            offset: Rows to skip
            search: Case-insensitive substring of the name or resource

        Returns:
            Page of permissions and the total count
        """
        conditions = []
        if search:
            pattern = f"%{search.lower()}%"
            conditions.append(
                or_(
                    func.lower(PermissionModel.name).like(pattern),
                    func.lower(PermissionModel.resource).like(pattern),
                )
            )

        total = await self._session.scalar(
            select(func.count()).select_from(PermissionModel).where(*conditions)
        )
        result = await self._session.execute(
            select(PermissionModel)
            .where(*conditions)
            .order_by(PermissionModel.name)
            .limit(limit)
            .offset(offset)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()], total or 0

    async def create_permission(self, permission: Permission) -> Permission:
        permission_model = PermissionModel(
            name=permission.name,
            resource=permission.resource,
            action=PermissionAction(permission.action).value,
            description=permission.description,
        )
        self._session.add(permission_model)
        await self._session.flush()
        return self._model_to_entity(permission_model)

    async def update_permission(self, permission: Permission) -> Permission:
        permission_model = await self._session.get(PermissionModel, permission.id)
        if permission_model is None:
            return permission

        permission_model.name = permission.name
        permission_model.resource = permission.resource
        permission_model.action = PermissionAction(permission.action).value
        permission_model.description = permission.description
        await self._session.flush()
        return self._model_to_entity(permission_model)

    async def delete_permission(self, permission_id: str) -> bool:
        """
        Delete a permission and every grant of it.

        Returns:
            True if the permission was deleted, False if not found
        """
        await self._session.execute(
            delete(role_permissions).where(role_permissions.c.permission_id == permission_id)
        )
        result = await self._session.execute(
            delete(PermissionModel)
            .where(PermissionModel.id == permission_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def grant_permission_to_role(self, role_id: str, permission_id: str) -> None:
        await self._session.execute(
            insert(role_permissions).values(role_id=role_id, permission_id=permission_id)
        )

    async def revoke_permission_from_role(self, role_id: str, permission_id: str) -> bool:
        result = await self._session.execute(
            delete(role_permissions).where(
                role_permissions.c.role_id == role_id,
                role_permissions.c.permission_id == permission_id,
            )
        )
        return result.rowcount > 0

    async def role_has_permission(self, role_id: str, permission_id: str) -> bool:
        result = await self._session.execute(
            select(role_permissions.c.permission_id).where(
                role_permissions.c.role_id == role_id,
                role_permissions.c.permission_id == permission_id,
            )
        )
        return result.first() is not None

    async def get_permissions_for_roles(self, role_ids: Sequence[str]) -> List[Permission]:
        """
        Read the union of permissions granted to the given roles.

        Args:
            role_ids: Role IDs

        Returns:
            Distinct permissions ordered by name
        """
        if not role_ids:
            return []

        result = await self._session.execute(
            select(PermissionModel)
            .where(
                PermissionModel.id.in_(
                    select(role_permissions.c.permission_id).where(
                        role_permissions.c.role_id.in_(list(role_ids))
                    )
                )
            )
            .order_by(PermissionModel.name)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()]

    def _model_to_entity(self, model: PermissionModel) -> Permission:
        return Permission(
            id=model.id,
            name=model.name,
            resource=model.resource,
            action=PermissionAction(model.action),
            description=model.description,
            created_at=model.created_at,
        )
