"""Tests for expired lease discovery."""

import pytest
import pytest_asyncio

from leasedlock import AcquireResult, ExpiryIndex, LeasedLock, MemoryLockStore

GROUP = "test"


@pytest_asyncio.fixture
async def locks(store: MemoryLockStore) -> tuple[LeasedLock, LeasedLock]:
    expired = LeasedLock("1", store, key_group=GROUP, expire=0)
    unexpired = LeasedLock("2", store, key_group=GROUP, expire=100)
    await expired.lock(recovery_data="payload-1")
    await unexpired.lock(recovery_data="payload-2")
    return expired, unexpired


@pytest.mark.asyncio
async def test_no_expired_locks(store: MemoryLockStore) -> None:
    """Test that nothing is returned when no lease expired."""
    assert await LeasedLock.expired(store) == []

    await LeasedLock("live", store, expire=100).lock()
    assert await LeasedLock.expired(store) == []


@pytest.mark.asyncio
async def test_returns_expired_locks(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that only expired locks are returned."""
    expired, _ = locks

    assert await LeasedLock.expired(store, key_group=GROUP) == [expired]


@pytest.mark.asyncio
async def test_only_current_group(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that other groups are never listed."""
    assert await LeasedLock.expired(store, key_group="xxx") == []
    assert await LeasedLock.expired(store) == []


@pytest.mark.asyncio
async def test_returned_lock_is_owned(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that a returned handle owns a fresh token and the old payload."""
    expired, _ = locks

    recovered = (await LeasedLock.expired(store, key_group=GROUP))[0]

    assert recovered.token is not None
    assert recovered.token != expired.token
    assert recovered.recovery_data == "payload-1"
    assert await recovered.owns()
    assert not await expired.owns()


@pytest.mark.asyncio
async def test_unlock_removes_key(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that unlocking a recovered lock removes it from the index."""
    lock = (await LeasedLock.expired(store, key_group=GROUP, expire=0))[0]

    await lock.unlock()

    assert await LeasedLock.expired(store, key_group=GROUP) == []
    assert await ExpiryIndex(store, GROUP).keys() == []
    assert await store.read("1", GROUP) is None


@pytest.mark.asyncio
async def test_second_call_gets_nothing(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that a recovered lease is live again, so the next call skips it."""
    lock1 = (await LeasedLock.expired(store, key_group=GROUP))[0]

    assert await LeasedLock.expired(store, key_group=GROUP) == []
    assert await lock1.try_extend() is True


@pytest.mark.asyncio
async def test_recovered_lock_extended_once(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that only the latest recovery of a lease can extend it."""
    lock1 = (await LeasedLock.expired(store, key_group=GROUP, expire=0))[0]
    lock2 = (await LeasedLock.expired(store, key_group=GROUP, expire=0))[0]

    assert lock1.token != lock2.token
    assert await lock2.try_extend() is True
    assert await lock1.try_extend() is False


@pytest.mark.asyncio
async def test_keys_does_not_claim(store: MemoryLockStore, locks: tuple[LeasedLock, LeasedLock]) -> None:
    """Test that keys() is a passive listing."""
    expired, _ = locks
    index = ExpiryIndex(store, GROUP)

    assert await index.keys() == ["1"]
    assert await index.keys() == ["1"]
    assert await expired.owns()


@pytest.mark.asyncio
async def test_index_follows_extension(store: MemoryLockStore) -> None:
    """Test that extending a lease takes it out of the expired listing."""
    lock = LeasedLock("k", store, key_group=GROUP, expire=0)
    await lock.lock()
    index = ExpiryIndex(store, GROUP)
    assert await index.keys() == ["k"]

    lock2 = LeasedLock("k", store, key_group=GROUP, expire=100)
    assert await lock2.try_lock() is AcquireResult.RECOVERED
    assert await index.keys() == []


class _StaleIndexStore(MemoryLockStore):
    """Store whose index lists a key that was unlocked in the meantime."""

    async def list_expired(self, key_group: str) -> list[str]:
        return ["ghost"]


@pytest.mark.asyncio
async def test_unlocked_between_listing_and_claim() -> None:
    """Test that a vanished key is skipped and not left locked."""
    store = _StaleIndexStore()

    assert await ExpiryIndex(store, GROUP).expired() == []
    assert await store.read("ghost", GROUP) is None
