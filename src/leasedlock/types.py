"""Type definitions for leasedlock."""

from enum import Enum
from typing import TypeAlias

# Opaque payload carried by a lock record
RecoveryData: TypeAlias = str | bytes


class AcquireResult(str, Enum):
    """Outcome of a single acquisition attempt.

    Only ``REJECTED`` is falsy, so ``if await lock.try_lock():`` reads as
    "did I get it".
    """

    FRESH = "fresh"
    RECOVERED = "recovered"
    REJECTED = "rejected"

    def __bool__(self) -> bool:
        return self is not AcquireResult.REJECTED
