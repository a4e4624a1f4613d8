"""leasedlock - Distributed exclusive locks leased from a shared key-value store."""

from leasedlock.errors import (
    InvalidPayloadError,
    LeasedLockError,
    LockRecoveredError,
    LockTimeoutError,
    LostLockError,
)
from leasedlock.expirytable import ExpiryTable
from leasedlock.index import ExpiryIndex
from leasedlock.lock import DEFAULT_EXPIRE, DEFAULT_KEY_GROUP, DEFAULT_TIMEOUT, LeasedLock
from leasedlock.memory import MemoryLockStore
from leasedlock.record import Acquisition, LockRecord
from leasedlock.retry import RetryScheduler
from leasedlock.store import LockStore, create_store
from leasedlock.types import AcquireResult, RecoveryData

__version__ = "0.1.0"

__all__ = [
    "LeasedLock",
    "ExpiryIndex",
    "ExpiryTable",
    "LockStore",
    "MemoryLockStore",
    "create_store",
    "LockRecord",
    "Acquisition",
    "AcquireResult",
    "RecoveryData",
    "RetryScheduler",
    "LeasedLockError",
    "LockTimeoutError",
    "LockRecoveredError",
    "LostLockError",
    "InvalidPayloadError",
    "DEFAULT_KEY_GROUP",
    "DEFAULT_TIMEOUT",
    "DEFAULT_EXPIRE",
]
