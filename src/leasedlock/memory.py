"""In-process lock store."""

import asyncio
import time
from collections.abc import Callable

from leasedlock.expirytable import ExpiryTable
from leasedlock.record import Acquisition, LockRecord
from leasedlock.store import LockStore
from leasedlock.types import AcquireResult, RecoveryData


class MemoryLockStore(LockStore):
    """
    Lock store kept in process memory.

    Only coordinates handles that share this object, so it suits a single
    instance or tests. Each operation runs under one asyncio.Lock without
    awaiting inside the critical section.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """
        Initialize the store.

        Args:
            clock: Time source in seconds. Injectable for deterministic tests.
        """
        self._lock = asyncio.Lock()
        self._clock = clock
        self._records: dict[str, dict[str, LockRecord]] = {}
        self._indexes: dict[str, ExpiryTable] = {}

    def _group(self, key_group: str) -> tuple[dict[str, LockRecord], ExpiryTable]:
        """Return the maps of key_group, creating them. Only for writes."""
        records = self._records.setdefault(key_group, {})
        index = self._indexes.setdefault(key_group, ExpiryTable())
        return records, index

    def _owned_record(self, key: str, key_group: str, token: str) -> LockRecord | None:
        record = self._records.get(key_group, {}).get(key)
        if record is None or record.owner_token != token:
            return None
        return record

    def _drop_group_if_empty(self, key_group: str) -> None:
        if not self._records.get(key_group) and not self._indexes.get(key_group):
            self._records.pop(key_group, None)
            self._indexes.pop(key_group, None)

    async def acquire(
        self,
        key: str,
        key_group: str,
        token: str,
        expire: float,
        recovery_data: RecoveryData | None = None,
    ) -> Acquisition:
        async with self._lock:
            now = self._clock()
            records, index = self._group(key_group)
            existing = records.get(key)

            if existing is None:
                result = AcquireResult.FRESH
                data = recovery_data
            elif existing.is_expired(now):
                result = AcquireResult.RECOVERED
                data = existing.recovery_data
            else:
                return Acquisition.rejected()

            records[key] = LockRecord(owner_token=token, expires_at=now + expire, recovery_data=data)
            index.set(key, now + expire)
            return Acquisition(result, data)

    async def renew(self, key: str, key_group: str, token: str, expire: float) -> bool:
        async with self._lock:
            existing = self._owned_record(key, key_group, token)
            if existing is None:
                return False

            records, index = self._group(key_group)
            expires_at = self._clock() + expire
            records[key] = LockRecord(
                owner_token=token,
                expires_at=expires_at,
                recovery_data=existing.recovery_data,
            )
            index.set(key, expires_at)
            return True

    async def release(self, key: str, key_group: str, token: str) -> bool:
        async with self._lock:
            if self._owned_record(key, key_group, token) is None:
                return False

            records, index = self._group(key_group)
            del records[key]
            index.discard(key)
            self._drop_group_if_empty(key_group)
            return True

    async def read(self, key: str, key_group: str) -> LockRecord | None:
        async with self._lock:
            return self._records.get(key_group, {}).get(key)

    async def key_groups(self) -> set[str]:
        """Return the groups that currently hold at least one record."""
        async with self._lock:
            return {group for group, records in self._records.items() if records}

    async def list_expired(self, key_group: str) -> list[str]:
        async with self._lock:
            index = self._indexes.get(key_group)
            if index is None:
                return []
            return index.expired(self._clock())

    async def now(self) -> float:
        return self._clock()
