"""Store adapter interface.

A store exposes exactly the atomic primitives the lock protocol needs.
Every mutating method must be a single indivisible operation on the
backing store; callers never see a get-then-set sequence.
"""

from abc import ABC, abstractmethod

from leasedlock.record import Acquisition, LockRecord
from leasedlock.types import RecoveryData

DEFAULT_PREFIX = "leasedlock:"


class LockStore(ABC):
    """Backing store for leased locks. Time is decided by the store."""

    @abstractmethod
    async def acquire(
        self,
        key: str,
        key_group: str,
        token: str,
        expire: float,
        recovery_data: RecoveryData | None = None,
    ) -> Acquisition:
        """
        Atomically claim a lock.

        - No record: write token, now + expire and recovery_data; FRESH.
        - Expired record: write token and now + expire, keep the stored
          recovery_data; RECOVERED with the stored recovery_data.
        - Live record: no change; REJECTED.

        The expiry index entry is updated in the same operation.
        """

    @abstractmethod
    async def renew(self, key: str, key_group: str, token: str, expire: float) -> bool:
        """Set expires_at to now + expire only if the stored token equals token."""

    @abstractmethod
    async def release(self, key: str, key_group: str, token: str) -> bool:
        """Delete the record and its index entry only if the stored token equals token."""

    @abstractmethod
    async def read(self, key: str, key_group: str) -> LockRecord | None:
        """Return the stored record, or None."""

    @abstractmethod
    async def list_expired(self, key_group: str) -> list[str]:
        """Return keys in key_group whose indexed expiry is <= now."""

    @abstractmethod
    async def now(self) -> float:
        """Current store time in seconds."""

    async def close(self) -> None:
        """Release any connection held by the store."""

    async def __aenter__(self) -> "LockStore":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def create_store(redis_url: str | None = None, *, prefix: str = DEFAULT_PREFIX) -> LockStore:
    """
    Create a lock store.

    Args:
        redis_url: Redis connection URL. Without one, an in-process memory
            store is returned (single instance or tests only).
        prefix: Key prefix for the Redis store.

    Returns:
        A LockStore instance
    """
    if redis_url:
        from leasedlock.redis_store import RedisLockStore

        return RedisLockStore(redis_url, prefix=prefix)

    from leasedlock.memory import MemoryLockStore

    return MemoryLockStore()
