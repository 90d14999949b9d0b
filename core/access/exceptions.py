"""Exceptions raised by job access control and grant management."""


class JobAccessError(Exception):
    """Base class for job access errors."""
    pass


class InvalidArgument(JobAccessError, ValueError):
    """Raised for empty or malformed identifiers and unknown levels."""
    pass


class BackingStoreError(JobAccessError):
    """Raised by stores when the underlying storage call fails."""
    pass


class NotFoundError(JobAccessError):
    """Raised when a referenced record does not exist."""
    pass


class JobNotFound(NotFoundError):
    pass


class UserNotFound(NotFoundError):
    pass


class GrantNotFound(NotFoundError):
    pass


class AuthorizationError(JobAccessError):
    """Raised when the acting user may not perform an operation."""
    pass


class InsufficientPermissions(AuthorizationError):
    """Raised when the actor is neither a company admin nor the job owner."""
    pass


class CrossCompanyGrant(AuthorizationError):
    """Raised when granting to a user outside the actor's company."""
    pass


class SelfRevocationError(JobAccessError):
    """Raised when an actor tries to revoke their own admin grant."""
    pass
