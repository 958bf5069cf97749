"""Domain enums for the booking auth service."""

from enum import Enum


class UserStatus(str, Enum):
    """User record lifecycle status."""

    ACTIVE = "active"
    DELETED = "deleted"


class PermissionAction(str, Enum):
    """Actions a permission can grant on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


class RevocationReason(str, Enum):
    """Why an access token was put on the blacklist."""

    LOGOUT = "LOGOUT"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    SECURITY_BREACH = "SECURITY_BREACH"
    ADMIN_REVOKE = "ADMIN_REVOKE"


class ErrorCode(str, Enum):
    """Stable machine-readable error codes returned to clients."""

    DOMAIN_ERROR = "DOMAIN_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HTTP_ERROR = "HTTP_ERROR"

    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_INVALID = "TOKEN_INVALID"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_BLACKLISTED = "TOKEN_BLACKLISTED"
    REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
    REFRESH_TOKEN_REVOKED = "REFRESH_TOKEN_REVOKED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    USER_INACTIVE = "USER_INACTIVE"
    UNAUTHORIZED = "UNAUTHORIZED"

    FORBIDDEN = "FORBIDDEN"
    CSRF_MISSING = "CSRF_MISSING"
    CSRF_INVALID = "CSRF_INVALID"

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    EMAIL_DUPLICATED = "EMAIL_DUPLICATED"
    USERNAME_DUPLICATED = "USERNAME_DUPLICATED"
