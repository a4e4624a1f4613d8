"""Example demonstrating crash recovery with recovery data."""

import asyncio
import os

from leasedlock import LeasedLock, LockRecoveredError, create_store


async def crashing_worker(store) -> None:
    """Worker that takes the lock, records progress and dies without unlocking."""
    lock = LeasedLock("import-batch-42", store, key_group="imports", expire=0.5)
    await lock.lock(recovery_data="processed-rows=1200")
    print("[worker-1] Locked batch, crashed before unlock")


async def careful_worker(store) -> None:
    """Worker that waits for the lock and repairs after a takeover."""
    lock = LeasedLock("import-batch-42", store, key_group="imports", timeout=2.0, expire=30)
    try:
        await lock.lock(recovery_data="processed-rows=0")
        print("[worker-2] Got a clean lock")
    except LockRecoveredError as e:
        print(f"[worker-2] Took over an expired lease, resuming from {e.recovery_data!r}")

    await lock.unlock()
    print("[worker-2] ✓ Done")


async def main() -> None:
    """Demonstrate lease expiry, recovery and expired-lease scans."""
    store = create_store(os.environ.get("LEASEDLOCK_REDIS_URL"))

    print("=== Crash Recovery Example ===\n")
    await crashing_worker(store)
    await careful_worker(store)

    print("\n=== Expired Lease Scan ===\n")
    for i in range(3):
        await LeasedLock(f"batch-{i}", store, key_group="imports", expire=0).lock(
            recovery_data=f"checkpoint-{i}"
        )

    for lock in await LeasedLock.expired(store, key_group="imports", expire=30):
        print(f"Reclaimed {lock.key} at {lock.recovery_data!r}")
        await lock.unlock()

    print(f"Still expired: {await LeasedLock.expired(store, key_group='imports')}")
    await store.close()


if __name__ == "__main__":
    asyncio.run(main())
