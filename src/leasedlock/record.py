"""Lock record model."""

import uuid
from dataclasses import dataclass

from leasedlock.errors import InvalidPayloadError
from leasedlock.types import AcquireResult, RecoveryData


def new_token() -> str:
    """Create a fresh owner token. Never reused across acquisitions."""
    return str(uuid.uuid4())


def validate_recovery_data(recovery_data: object) -> RecoveryData | None:
    """Return recovery_data unchanged if it can be stored, raise otherwise."""
    if recovery_data is None or isinstance(recovery_data, (str, bytes)):
        return recovery_data
    raise InvalidPayloadError(
        f"recovery_data must be str or bytes, got {type(recovery_data).__name__}"
    )


@dataclass(frozen=True)
class LockRecord:
    """Value persisted per lock key."""

    owner_token: str
    expires_at: float  # absolute store time in seconds
    recovery_data: RecoveryData | None = None

    def is_expired(self, now: float) -> bool:
        """A lease is live while now < expires_at."""
        return now >= self.expires_at


@dataclass(frozen=True)
class Acquisition:
    """Result of an atomic acquire against a store."""

    result: AcquireResult
    recovery_data: RecoveryData | None = None

    @classmethod
    def rejected(cls) -> "Acquisition":
        return cls(AcquireResult.REJECTED)
