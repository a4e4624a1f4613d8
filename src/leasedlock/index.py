"""Discovery of expired leases within a key group."""

import logging

from leasedlock.lock import DEFAULT_EXPIRE, DEFAULT_KEY_GROUP, DEFAULT_TIMEOUT, LeasedLock
from leasedlock.store import LockStore
from leasedlock.types import AcquireResult

logger = logging.getLogger(__name__)


class ExpiryIndex:
    """
    Expired leases of one key group, as indexed by the store.

    The index is only used to find candidates. Ownership is always decided
    by an atomic acquisition against the record itself.
    """

    def __init__(self, store: LockStore, key_group: str = DEFAULT_KEY_GROUP) -> None:
        self.store = store
        self.key_group = key_group

    async def keys(self) -> list[str]:
        """Return the keys whose lease has expired, without claiming them."""
        return await self.store.list_expired(self.key_group)

    async def expired(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        expire: float = DEFAULT_EXPIRE,
    ) -> list[LeasedLock]:
        """
        Recover every expired lease in the group.

        Each returned handle already owns its own fresh token and carries the
        previous owner's recovery_data. Keys that another caller recovered
        first are skipped, so concurrent callers never get the same lease.

        Args:
            timeout: timeout of the returned handles
            expire: lease duration applied to each recovered lock

        Returns:
            Handles for the recovered locks, empty if nothing expired
        """
        recovered: list[LeasedLock] = []
        for key in await self.keys():
            lock = LeasedLock(key, self.store, key_group=self.key_group, timeout=timeout, expire=expire)
            result = await lock.try_lock()

            if result is AcquireResult.RECOVERED:
                recovered.append(lock)
            elif result is AcquireResult.FRESH:
                # Unlocked between listing and claiming; don't leave a new lock behind
                await lock.try_unlock()
            else:
                logger.debug(f"Expired lock {self.key_group}/{key} was claimed by someone else")

        return recovered

    def __repr__(self) -> str:
        return f"ExpiryIndex(key_group={self.key_group!r})"
