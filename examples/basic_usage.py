"""Basic usage example for leasedlock.

Uses Redis when LEASEDLOCK_REDIS_URL is set, an in-process store otherwise.
"""

import asyncio
import os

from leasedlock import LeasedLock, LockTimeoutError, create_store


async def main() -> None:
    """Demonstrate locking, contention and scoped locking."""
    store = create_store(os.environ.get("LEASEDLOCK_REDIS_URL"))

    print("=== Basic Lock Example ===\n")

    report = LeasedLock("nightly-report", store, timeout=0.5, expire=30)
    await report.lock()
    print(f"Acquired {report.key} with token {report.token}")

    # A second handle competes for the same key
    rival = LeasedLock("nightly-report", store, timeout=0.5, expire=30)
    print(f"Rival try_lock: {(await rival.try_lock()).value}")
    try:
        await rival.lock()
    except LockTimeoutError as e:
        print(f"Rival gave up: {e}")

    await report.unlock()
    print(f"Released, rival try_lock: {(await rival.try_lock()).value}\n")
    await rival.unlock()

    print("=== Scoped Example ===\n")

    async def critical_section(name: str) -> str:
        await asyncio.sleep(0.1)
        return f"{name} done"

    lock = LeasedLock("nightly-report", store)
    print(await lock.synchronize(critical_section, "report"))

    async with lock:
        print(f"Inside async with, owns: {await lock.owns()}")
    print(f"After async with, locked: {await lock.is_locked()}")

    await store.close()


if __name__ == "__main__":
    asyncio.run(main())
