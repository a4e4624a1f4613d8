"""Exception classes for leasedlock."""

from leasedlock.types import RecoveryData


class LeasedLockError(Exception):
    """Base exception for all leasedlock errors."""


class LockTimeoutError(LeasedLockError, TimeoutError):
    """Raised when lock() could not acquire the lock within its timeout."""


class LockRecoveredError(LeasedLockError):
    """Raised by lock() after taking over an expired lease.

    The lock IS held when this is raised. ``recovery_data`` is the payload
    left by the previous owner.
    """

    def __init__(self, message: str, recovery_data: RecoveryData | None = None) -> None:
        super().__init__(message)
        self.recovery_data = recovery_data


class LostLockError(LeasedLockError):
    """Raised when the stored owner token no longer matches this handle's token."""


class InvalidPayloadError(LeasedLockError, TypeError):
    """Raised when recovery_data is not a str or bytes value."""
