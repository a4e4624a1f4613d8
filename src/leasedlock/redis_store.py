"""Redis lock store.

Layout per key group (the ``{group}`` hash tag keeps both keys in one
cluster slot):

- ``<prefix>{<group>}:lock:<key>``: hash with ``token``, ``expires_at`` and,
  when a payload was given, ``data_type`` and ``data``. No Redis TTL is set,
  an expired record has to survive until it is recovered or unlocked.
- ``<prefix>{<group>}:expirations``: sorted set, member = key,
  score = expires_at.

Every mutation is a single Lua script and reads the clock with ``TIME`` so
all clients share the server's notion of now.
"""

import redis.asyncio as redis

from leasedlock.record import Acquisition, LockRecord
from leasedlock.store import DEFAULT_PREFIX, LockStore
from leasedlock.types import AcquireResult, RecoveryData

_NOW = """
local clock = redis.call('TIME')
local now = tonumber(clock[1]) + tonumber(clock[2]) / 1000000
"""

# KEYS: record, index  ARGV: token, expire, member, data_type, data
_ACQUIRE_LUA = _NOW + """
local expires_at = string.format('%.6f', now + tonumber(ARGV[2]))
local current = redis.call('HGET', KEYS[1], 'expires_at')
if current then
  if now < tonumber(current) then
    return {0}
  end
  redis.call('HSET', KEYS[1], 'token', ARGV[1], 'expires_at', expires_at)
  redis.call('ZADD', KEYS[2], expires_at, ARGV[3])
  return {2, redis.call('HGET', KEYS[1], 'data_type') or '', redis.call('HGET', KEYS[1], 'data') or ''}
end
redis.call('HSET', KEYS[1], 'token', ARGV[1], 'expires_at', expires_at)
if ARGV[4] ~= '' then
  redis.call('HSET', KEYS[1], 'data_type', ARGV[4], 'data', ARGV[5])
end
redis.call('ZADD', KEYS[2], expires_at, ARGV[3])
return {1, ARGV[4], ARGV[5]}
"""

# KEYS: record, index  ARGV: token, expire, member
_RENEW_LUA = """
if redis.call('HGET', KEYS[1], 'token') ~= ARGV[1] then
  return 0
end
""" + _NOW + """
local expires_at = string.format('%.6f', now + tonumber(ARGV[2]))
redis.call('HSET', KEYS[1], 'expires_at', expires_at)
redis.call('ZADD', KEYS[2], expires_at, ARGV[3])
return 1
"""

# KEYS: record, index  ARGV: token, member
_RELEASE_LUA = """
if redis.call('HGET', KEYS[1], 'token') ~= ARGV[1] then
  return 0
end
redis.call('DEL', KEYS[1])
redis.call('ZREM', KEYS[2], ARGV[2])
return 1
"""

# KEYS: index
_EXPIRED_LUA = _NOW + """
return redis.call('ZRANGEBYSCORE', KEYS[1], '-inf', string.format('%.6f', now))
"""


def _text(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _encode_payload(recovery_data: RecoveryData | None) -> tuple[str, RecoveryData]:
    if recovery_data is None:
        return "", ""
    if isinstance(recovery_data, bytes):
        return "bytes", recovery_data
    return "str", recovery_data


def _decode_payload(data_type: bytes | str, data: bytes | str) -> RecoveryData | None:
    kind = _text(data_type)
    if not kind:
        return None
    if kind == "bytes":
        return data.encode() if isinstance(data, str) else data
    return _text(data)


class RedisLockStore(LockStore):
    """
    Lock store backed by Redis.

    Attributes:
        redis_url: Redis connection URL (used when no client is injected)
        prefix: Key prefix for records and indexes
    """

    def __init__(
        self,
        redis_url: str | None = None,
        *,
        client: "redis.Redis | None" = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        """
        Initialize the store.

        Args:
            redis_url: Redis connection URL, e.g. ``redis://localhost:6379/0``
            client: Existing async Redis client. It is not closed by close().
            prefix: Key prefix for records and indexes

        Raises:
            ValueError: If neither redis_url nor client is given
        """
        if redis_url is None and client is None:
            raise ValueError("RedisLockStore needs a redis_url or a client")
        self.redis_url = redis_url
        self.prefix = prefix
        self._redis = client
        self._owns_client = client is None
        self._scripts: dict[str, object] = {}

    def _get_redis(self) -> "redis.Redis":
        """Return the Redis client, creating it on first use."""
        if self._redis is None:
            self._redis = redis.from_url(self.redis_url)
        if not self._scripts:
            self._scripts = {
                "acquire": self._redis.register_script(_ACQUIRE_LUA),
                "renew": self._redis.register_script(_RENEW_LUA),
                "release": self._redis.register_script(_RELEASE_LUA),
                "expired": self._redis.register_script(_EXPIRED_LUA),
            }
        return self._redis

    async def _run(self, name: str, keys: list[str], args: list[object]) -> object:
        self._get_redis()
        script = self._scripts[name]
        return await script(keys=keys, args=args)  # type: ignore[operator]

    def record_key(self, key: str, key_group: str) -> str:
        return f"{self.prefix}{{{key_group}}}:lock:{key}"

    def index_key(self, key_group: str) -> str:
        return f"{self.prefix}{{{key_group}}}:expirations"

    async def acquire(
        self,
        key: str,
        key_group: str,
        token: str,
        expire: float,
        recovery_data: RecoveryData | None = None,
    ) -> Acquisition:
        data_type, data = _encode_payload(recovery_data)
        reply = await self._run(
            "acquire",
            [self.record_key(key, key_group), self.index_key(key_group)],
            [token, repr(float(expire)), key, data_type, data],
        )
        code = int(reply[0])  # type: ignore[index]
        if code == 0:
            return Acquisition.rejected()

        result = AcquireResult.FRESH if code == 1 else AcquireResult.RECOVERED
        payload = _decode_payload(reply[1], reply[2])  # type: ignore[index]
        return Acquisition(result, payload)

    async def renew(self, key: str, key_group: str, token: str, expire: float) -> bool:
        reply = await self._run(
            "renew",
            [self.record_key(key, key_group), self.index_key(key_group)],
            [token, repr(float(expire)), key],
        )
        return bool(reply)

    async def release(self, key: str, key_group: str, token: str) -> bool:
        reply = await self._run(
            "release",
            [self.record_key(key, key_group), self.index_key(key_group)],
            [token, key],
        )
        return bool(reply)

    async def read(self, key: str, key_group: str) -> LockRecord | None:
        fields = await self._get_redis().hgetall(self.record_key(key, key_group))
        if not fields:
            return None
        fields = {_text(name): value for name, value in fields.items()}
        return LockRecord(
            owner_token=_text(fields["token"]),
            expires_at=float(_text(fields["expires_at"])),
            recovery_data=_decode_payload(fields.get("data_type", ""), fields.get("data", "")),
        )

    async def list_expired(self, key_group: str) -> list[str]:
        reply = await self._run("expired", [self.index_key(key_group)], [])
        return [_text(member) for member in reply]  # type: ignore[union-attr]

    async def now(self) -> float:
        seconds, microseconds = await self._get_redis().time()
        return seconds + microseconds / 1_000_000

    async def close(self) -> None:
        """Close the Redis connection if this store created it."""
        if self._redis is not None and self._owns_client:
            await self._redis.aclose()
            self._redis = None
            self._scripts = {}
