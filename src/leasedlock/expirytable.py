"""Sorted expiry table for O(log n) expired-key lookups."""

import bisect


class ExpiryTable:
    """Maps keys to expiration timestamps, kept ordered by timestamp.

    Lookups of everything expired at ``now`` touch only the expired prefix,
    never the whole table.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[float, str]] = []
        self._scores: dict[str, float] = {}

    def set(self, key: str, expires_at: float) -> None:
        """Insert key or move it to a new timestamp. O(n) worst case for the move."""
        self.discard(key)
        bisect.insort(self._entries, (expires_at, key))
        self._scores[key] = expires_at

    def discard(self, key: str) -> None:
        """Remove key if present."""
        score = self._scores.pop(key, None)
        if score is None:
            return
        index = bisect.bisect_left(self._entries, (score, key))
        # Entry must exist since both structures are updated together
        del self._entries[index]

    def expired(self, now: float) -> list[str]:
        """Return keys whose timestamp is <= now, oldest first."""
        end = bisect.bisect_right(self._entries, now, key=lambda entry: entry[0])
        return [key for _, key in self._entries[:end]]

    def get(self, key: str) -> float | None:
        return self._scores.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._scores

    def __len__(self) -> int:
        return len(self._scores)

    def __bool__(self) -> bool:
        return bool(self._scores)
