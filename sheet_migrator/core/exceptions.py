"""Core exceptions for sheet migration operations."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.plan import RunReport


class SheetMigratorError(Exception):
    """Base exception for sheet migration operations."""


class ConfigurationError(SheetMigratorError):
    """Configuration validation or loading failed."""


class RemoteStoreError(SheetMigratorError):
    """Remote tabular store call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientRemoteError(RemoteStoreError):
    """Remote failure that may succeed on retry (5xx, connection reset, timeout)."""


class RateLimitedError(TransientRemoteError):
    """Remote store rejected the request because of quota; nothing was applied."""


class PermanentRemoteError(RemoteStoreError):
    """Remote failure that will not succeed on retry (auth, malformed request)."""


class DestinationChangedError(SheetMigratorError):
    """A destination gained rows between planning and the copy commit."""


class IdentityConflictError(SheetMigratorError):
    """Attempt to replace a record identity that is already set."""


class MigrationAborted(SheetMigratorError):
    """A run stopped before completion; the store is left in a recoverable state."""

    def __init__(self, message: str, report: "RunReport"):
        super().__init__(message)
        self.report = report
