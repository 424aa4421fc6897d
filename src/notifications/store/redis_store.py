"""Redis-backed key-value store.

Counters use a Lua script so the increment and the first-write expiry
happen in one round trip; claims use ``SET NX EX``.
"""

import redis
import structlog
from notifications.errors import StoreUnavailable
from notifications.store.port import KeyValueStore

logger = structlog.get_logger(__name__)

_INCR_WITH_EXPIRY = """
local value = redis.call('INCR', KEYS[1])
if value == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return value
"""

_DELETE_IF_EQUALS = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisStore(KeyValueStore):
    def __init__(self, url: str | None = None, client: redis.Redis | None = None):
        self._client = client or redis.Redis.from_url(url, decode_responses=True)
        self._incr = self._client.register_script(_INCR_WITH_EXPIRY)
        self._delete_if_equals = self._client.register_script(_DELETE_IF_EQUALS)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        try:
            return bool(self._client.set(key, value, nx=True, ex=int(ttl_seconds)))
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            self._client.set(key, value, ex=int(ttl_seconds) if ttl_seconds else None)
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def incr(self, key: str, ttl_seconds: int) -> int:
        try:
            return int(self._incr(keys=[key], args=[int(ttl_seconds)]))
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def delete_if_equals(self, key: str, value: str) -> bool:
        try:
            return bool(self._delete_if_equals(keys=[key], args=[value]))
        except redis.RedisError as exc:
            raise StoreUnavailable(str(exc)) from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            logger.warning("Redis ping failed")
            return False
