"""Domain exceptions for the booking auth service."""

from typing import Optional

from booking_auth.core.domain.enums import ErrorCode


class DomainException(Exception):
    """
    Base exception for domain-related errors.

    Every subclass carries a stable ``code``; the HTTP layer maps codes,
    not classes, to status codes.
    """

    code: ErrorCode = ErrorCode.DOMAIN_ERROR

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundException(DomainException):
    """Raised when a user, role or permission lookup finds nothing."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str, identifier: str) -> None:
        """
        Initialize not found exception.

        Args:
            entity: Kind of entity that was looked up
            identifier: Identifier used for the lookup
        """
        super().__init__(f"{entity} not found", f"{entity} id: {identifier}")
        self.entity = entity
        self.identifier = identifier


class ConflictException(DomainException):
    """Raised when a create or assignment would duplicate existing state."""

    code = ErrorCode.CONFLICT


class ForbiddenException(DomainException):
    """Raised when the caller lacks the role or permission required."""

    code = ErrorCode.FORBIDDEN

    def __init__(self, message: str = "Access denied", details: Optional[str] = None) -> None:
        super().__init__(message, details)


class CsrfMissingException(DomainException):
    """Raised when a mutating request carries no CSRF header."""

    code = ErrorCode.CSRF_MISSING

    def __init__(self) -> None:
        super().__init__("CSRF token required")


class CsrfInvalidException(DomainException):
    """Raised when the CSRF header does not match the configured secret."""

    code = ErrorCode.CSRF_INVALID

    def __init__(self) -> None:
        super().__init__("Invalid CSRF token")


class ConfigurationException(DomainException):
    """Raised when a configuration file is missing or malformed."""

    code = ErrorCode.CONFIGURATION_ERROR

    def __init__(self, config_type: str, message: str) -> None:
        """
        Initialize configuration exception.

        Args:
            config_type: Kind of configuration that failed
            message: Error message
        """
        super().__init__(f"Configuration error in {config_type}: {message}")
        self.config_type = config_type
