class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""


class ConflictError(DomainError):
    """Raised on uniqueness or membership-exclusivity violations."""


class InvalidTransitionError(DomainError):
    """Raised when a program status change is not allowed from its current status."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""
