"""YAML loader for the default RBAC roles and permissions."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml
from sqlalchemy.ext.asyncio import AsyncSession

from booking_auth.core.auth.entities import Permission, Role
from booking_auth.core.domain.enums import PermissionAction
from booking_auth.core.exceptions import ConfigurationException
from booking_auth.infrastructure.database.repositories.permission_repository import (
    SqlPermissionRepository,
)
from booking_auth.infrastructure.database.repositories.role_repository import SqlRoleRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleSeed:
    """A role and the names of the permissions it is granted."""

    name: str
    description: str
    permissions: Tuple[str, ...]


@dataclass(frozen=True)
class RbacSeed:
    """Parsed RBAC configuration."""

    permissions: Tuple[Tuple[str, PermissionAction], ...]
    roles: Tuple[RoleSeed, ...]


@dataclass
class SeedReport:
    """Rows added by one seeding run."""

    permissions_created: int = 0
    roles_created: int = 0
    grants_created: int = 0


class YamlLoader:
    """Asynchronous YAML file loader with validation."""

    @staticmethod
    async def load_yaml_file(file_path: str) -> Dict[str, Any]:
        """
        Load YAML file asynchronously with error handling.

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed YAML content as dictionary

        Raises:
            ConfigurationException: If file cannot be loaded or parsed
        """
        path = Path(file_path)

        if not path.is_file():
            raise ConfigurationException("file", f"Configuration file not found: {file_path}")

        content = await asyncio.to_thread(path.read_text, encoding="utf-8")

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationException("yaml", f"Invalid YAML syntax in {file_path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationException("yaml", f"Root element must be a dictionary in {file_path}")
        return data


def parse_rbac_seed(data: Dict[str, Any], source: str = "<rbac>") -> RbacSeed:
    """
    Validate raw RBAC configuration.

    Every (resource, action) pair becomes a permission named
    ``resource.action``; roles may only reference those names.

    Raises:
        ConfigurationException: If the structure is invalid
    """
    resources = _string_list(data, "resources", source)
    action_names = _string_list(data, "actions", source)

    try:
        actions = [PermissionAction(name) for name in action_names]
    except ValueError as e:
        raise ConfigurationException("rbac", f"Unknown action in {source}: {e}")

    permissions = tuple((resource, action) for resource in resources for action in actions)
    known = {f"{resource}.{action.value}" for resource, action in permissions}

    raw_roles = data.get("roles", [])
    if not isinstance(raw_roles, list):
        raise ConfigurationException("rbac", f"'roles' must be a list in {source}")

    roles: List[RoleSeed] = []
    seen = set()
    for index, raw_role in enumerate(raw_roles):
        if not isinstance(raw_role, dict) or not raw_role.get("name"):
            raise ConfigurationException("rbac", f"Role at index {index} has no name in {source}")

        name = str(raw_role["name"])
        if name in seen:
            raise ConfigurationException("rbac", f"Duplicate role '{name}' in {source}")
        seen.add(name)

        granted = tuple(str(p) for p in raw_role.get("permissions") or [])
        unknown = sorted(set(granted) - known)
        if unknown:
            raise ConfigurationException(
                "rbac", f"Role '{name}' references unknown permissions {unknown} in {source}"
            )

        roles.append(RoleSeed(name=name, description=str(raw_role.get("description", "")), permissions=granted))

    return RbacSeed(permissions=permissions, roles=tuple(roles))


async def load_rbac_seed(file_path: str) -> RbacSeed:
    data = await YamlLoader.load_yaml_file(file_path)
    return parse_rbac_seed(data, file_path)


async def seed_rbac(session: AsyncSession, seed: RbacSeed) -> SeedReport:
    """
    Insert missing permissions, roles and grants.

    Existing rows are left untouched, so running twice changes nothing.
    The caller commits.

    Args:
        session: Database session
        seed: Parsed RBAC configuration

    Returns:
        Counts of rows created
    """
    role_repository = SqlRoleRepository(session)
    permission_repository = SqlPermissionRepository(session)
    report = SeedReport()
    permission_ids: Dict[str, str] = {}

    for resource, action in seed.permissions:
        name = f"{resource}.{action.value}"
        permission = await permission_repository.get_permission_by_resource_action(resource, action)
        if permission is None:
            permission = await permission_repository.create_permission(
                Permission(
                    id="",
                    name=name,
                    resource=resource,
                    action=action,
                    description=f"Allows {action.value} on {resource}",
                )
            )
            report.permissions_created += 1
        permission_ids[name] = permission.id

    for role_seed in seed.roles:
        role = await role_repository.get_role_by_name(role_seed.name)
        if role is None:
            role = await role_repository.create_role(
                Role(id="", name=role_seed.name, description=role_seed.description)
            )
            report.roles_created += 1

        for permission_name in role_seed.permissions:
            permission_id = permission_ids[permission_name]
            if not await permission_repository.role_has_permission(role.id, permission_id):
                await permission_repository.grant_permission_to_role(role.id, permission_id)
                report.grants_created += 1

    logger.info(
        f"RBAC seed applied: {report.permissions_created} permission(s), "
        f"{report.roles_created} role(s), {report.grants_created} grant(s) created"
    )
    return report


def _string_list(data: Dict[str, Any], key: str, source: str) -> List[str]:
    value = data.get(key)
    if not isinstance(value, list) or not value:
        raise ConfigurationException("rbac", f"'{key}' must be a non-empty list in {source}")
    return [str(item) for item in value]
