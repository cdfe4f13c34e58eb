class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""


class ManifestLockedError(DomainError):
    """Raised when a package mutation targets a closed manifest."""


class RateNotFoundError(DomainError):
    """Raised when no rate bracket covers a package."""


class AirRateNotFoundError(RateNotFoundError):
    pass


class SeaRateNotFoundError(RateNotFoundError):
    pass


class BackupError(DomainError):
    """Raised when a backup handler cannot produce its artifact."""
