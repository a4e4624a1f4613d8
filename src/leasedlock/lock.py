"""Main LeasedLock implementation."""

import inspect
import logging
import math
from collections.abc import Callable
from typing import Any, TypeVar

from leasedlock.errors import LockRecoveredError, LockTimeoutError, LostLockError
from leasedlock.record import new_token, validate_recovery_data
from leasedlock.retry import RetryScheduler
from leasedlock.store import LockStore
from leasedlock.types import AcquireResult, RecoveryData

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_KEY_GROUP = "default"
DEFAULT_TIMEOUT = 5.0
DEFAULT_EXPIRE = 60.0


class LeasedLock:
    """
    Exclusive lock on a named resource, held as a lease in a shared store.

    Every successful acquisition generates a new owner token. Release and
    renewal only succeed while the stored token still equals that token, so
    a handle whose lease expired and was recovered elsewhere can never touch
    the new owner's record. Acquisition is not re-entrant: a handle that
    already holds the lock competes like any other caller.
    """

    def __init__(
        self,
        key: str,
        store: LockStore,
        *,
        key_group: str = DEFAULT_KEY_GROUP,
        timeout: float = DEFAULT_TIMEOUT,
        expire: float = DEFAULT_EXPIRE,
        max_interval: float = 0.1,
    ) -> None:
        """
        Initialize the handle. Nothing is sent to the store.

        Args:
            key: Name of the locked resource
            store: Backing store shared by all contenders
            key_group: Namespace of the expiry index this lock is listed in
            timeout: Seconds lock() keeps retrying before giving up
            expire: Lease duration in seconds applied on every (re)acquisition
                and extension. 0 creates a lease that is already expired.
            max_interval: Upper bound of the pause between lock() attempts

        Raises:
            ValueError: If key is empty, timeout/expire is negative or not
                finite, or max_interval is not positive
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if not math.isfinite(timeout) or timeout < 0:
            raise ValueError("timeout must be a finite number >= 0")
        if not math.isfinite(expire) or expire < 0:
            raise ValueError("expire must be a finite number >= 0")
        if not math.isfinite(max_interval) or max_interval <= 0:
            raise ValueError("max_interval must be a finite number > 0")

        self._key = key
        self._store = store
        self._key_group = key_group
        self._timeout = timeout
        self._expire = expire
        self._retry = RetryScheduler(
            timeout,
            initial_interval=min(0.01, max_interval),
            max_interval=max_interval,
        )
        self._token: str | None = None
        self._recovery_data: RecoveryData | None = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def key_group(self) -> str:
        return self._key_group

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def expire(self) -> float:
        return self._expire

    @property
    def token(self) -> str | None:
        """Owner token this handle believes it holds, None when it holds nothing."""
        return self._token

    @property
    def owned(self) -> bool:
        return self._token is not None

    @property
    def recovery_data(self) -> RecoveryData | None:
        """
        Payload observed at the last successful acquisition.

        After a recovery this is the previous owner's payload, not the one
        passed to the recovering call.
        """
        return self._recovery_data

    async def try_lock(self, recovery_data: RecoveryData | None = None) -> AcquireResult:
        """
        Make a single acquisition attempt.

        Args:
            recovery_data: Payload stored with a fresh lock. Ignored when an
                expired lease is recovered; the stored payload is kept.

        Returns:
            AcquireResult.FRESH, AcquireResult.RECOVERED, or
            AcquireResult.REJECTED (falsy) if another lease is live

        Raises:
            InvalidPayloadError: If recovery_data is not str or bytes
        """
        recovery_data = validate_recovery_data(recovery_data)
        return await self._attempt(recovery_data)

    async def _attempt(self, recovery_data: RecoveryData | None) -> AcquireResult:
        token = new_token()
        acquisition = await self._store.acquire(
            self._key, self._key_group, token, self._expire, recovery_data
        )

        if not acquisition.result:
            logger.debug(f"Lock {self._key_group}/{self._key} is held elsewhere")
            return acquisition.result

        self._token = token
        self._recovery_data = acquisition.recovery_data
        logger.debug(f"Acquired lock {self._key_group}/{self._key} ({acquisition.result.value})")
        return acquisition.result

    async def lock(self, recovery_data: RecoveryData | None = None) -> None:
        """
        Acquire the lock, retrying until the timeout elapses.

        Args:
            recovery_data: Payload stored with a fresh lock

        Raises:
            LockRecoveredError: The lock was acquired by recovering an expired
                lease. The lock is held; the exception carries the inherited
                recovery_data.
            LockTimeoutError: The lock could not be acquired within timeout
            InvalidPayloadError: If recovery_data is not str or bytes
        """
        recovery_data = validate_recovery_data(recovery_data)
        result = await self._retry.run(lambda: self._attempt(recovery_data))

        if result is AcquireResult.RECOVERED:
            logger.info(f"Recovered expired lock {self._key_group}/{self._key}")
            raise LockRecoveredError(
                f"Recovered expired lock {self._key!r}", self._recovery_data
            )
        if not result:
            raise LockTimeoutError(
                f"Could not acquire lock {self._key!r} within {self._timeout}s"
            )

    async def try_unlock(self) -> bool:
        """
        Release the lock if this handle still owns it.

        The handle drops its token once the store answers, whether the
        release was accepted or rejected. A store error leaves the token in
        place so the release can be retried.

        Returns:
            True if the record was deleted, False if the stored token no
            longer matched (or this handle held nothing)
        """
        token = self._token
        if token is None:
            return False

        released = await self._store.release(self._key, self._key_group, token)
        if self._token == token:
            self._token = None
        if released:
            logger.debug(f"Released lock {self._key_group}/{self._key}")
        else:
            logger.warning(f"Lost lock {self._key_group}/{self._key} before release")
        return released

    async def unlock(self) -> None:
        """
        Release the lock.

        Raises:
            LostLockError: If the lease was recovered by someone else (or the
                handle held nothing), so there was nothing of ours to release
        """
        if not await self.try_unlock():
            raise LostLockError(f"Lock {self._key!r} is no longer owned by this handle")

    async def try_extend(self) -> bool:
        """
        Push the expiry to now + expire if this handle still owns the record.

        Works on an already expired lease as long as nobody recovered it.
        The stored recovery_data is never changed. A rejected extension
        drops this handle's token.

        Returns:
            True if the lease was extended
        """
        if self._token is None:
            return False

        extended = await self._store.renew(self._key, self._key_group, self._token, self._expire)
        if extended:
            logger.debug(f"Extended lock {self._key_group}/{self._key} by {self._expire}s")
        else:
            logger.warning(f"Lost lock {self._key_group}/{self._key} before extension")
            self._token = None
        return extended

    async def extend(self) -> None:
        """
        Extend the lease.

        Raises:
            LostLockError: If this handle no longer owns the lock
        """
        if not await self.try_extend():
            raise LostLockError(f"Lock {self._key!r} is no longer owned by this handle")

    async def is_locked(self) -> bool:
        """Return True if any owner currently holds a live lease on this key."""
        record = await self._store.read(self._key, self._key_group)
        if record is None:
            return False
        return not record.is_expired(await self._store.now())

    async def owns(self) -> bool:
        """Return True if the stored owner token is this handle's token."""
        if self._token is None:
            return False
        record = await self._store.read(self._key, self._key_group)
        return record is not None and record.owner_token == self._token

    async def _enter(self, recovery_data: RecoveryData | None) -> None:
        try:
            await self.lock(recovery_data)
        except LockRecoveredError:
            # Held anyway; the scoped forms run the block regardless
            pass

    async def _exit(self, failed: bool) -> None:
        if failed:
            await self.try_unlock()
        else:
            await self.unlock()

    async def synchronize(
        self,
        block: Callable[..., Any],
        *args: Any,
        recovery_data: RecoveryData | None = None,
        **kwargs: Any,
    ) -> Any:
        """
        Run block while holding the lock and return its result.

        block may be a plain or a coroutine function. The block also runs
        when the lock was recovered. An unlock is attempted on every exit;
        if the block raised, its exception propagates after the attempt.

        Raises:
            LockTimeoutError: The lock was not acquired; block did not run
            LostLockError: The block finished but the lease was recovered by
                someone else in the meantime
        """
        await self._enter(recovery_data)
        try:
            result = block(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except BaseException:
            await self._exit(failed=True)
            raise
        await self._exit(failed=False)
        return result

    async def __aenter__(self) -> "LeasedLock":
        """Context manager entry, same rules as synchronize()."""
        await self._enter(None)
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, *args: object) -> None:
        """Context manager exit."""
        await self._exit(failed=exc_type is not None)

    @classmethod
    async def expired(
        cls,
        store: LockStore,
        key_group: str = DEFAULT_KEY_GROUP,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        expire: float = DEFAULT_EXPIRE,
    ) -> "list[LeasedLock]":
        """Claim every expired lock in key_group. See ExpiryIndex.expired()."""
        from leasedlock.index import ExpiryIndex

        return await ExpiryIndex(store, key_group).expired(timeout=timeout, expire=expire)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LeasedLock):
            return NotImplemented
        return (self._key, self._key_group) == (other._key, other._key_group)

    def __hash__(self) -> int:
        return hash((self._key, self._key_group))

    def __repr__(self) -> str:
        return f"LeasedLock(key={self._key!r}, key_group={self._key_group!r}, expire={self._expire})"
