"""Redis-backed lock store.

Acquisition is a single ``SET key holder NX PX <ttl_ms>`` - Redis performs
the check and the write atomically and expires the key on its own, so a
crashed holder frees the lock after the TTL. Release runs a small Lua
script that deletes the key only if it still holds our token, so an
instance whose lock already expired cannot delete a successor's lock.

Any ``redis`` error is reported as
:class:`~jobspine.core.errors.LockStoreUnavailableError`.
"""

from __future__ import annotations

import math
from typing import Any

import redis
from redis.exceptions import RedisError

from jobspine.core.errors import LockStoreUnavailableError
from jobspine.core.logging import get_logger

logger = get_logger(__name__)

RELEASE_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    return redis.call("DEL", KEYS[1])
end
return 0
"""


class RedisLockStore:
    """:class:`~jobspine.locks.store.LockStore` on a single Redis primary.

    Mutual exclusion holds only as long as that primary is the single
    authority for the key; replica failover can lose a freshly set lock.

    Example:
        >>> store = RedisLockStore.from_url("redis://localhost:6379/0")
        >>> store.set_if_absent("nightly-sync", "host-a:1", ttl_seconds=60)
        True
    """

    name = "redis"

    def __init__(self, client: Any, key_prefix: str = "jobspine:lock:") -> None:
        self._client = client
        self._prefix = key_prefix
        self._release = client.register_script(RELEASE_SCRIPT)

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        key_prefix: str = "jobspine:lock:",
        socket_timeout: float = 5.0,
    ) -> RedisLockStore:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def set_if_absent(self, key: str, holder: str, ttl_seconds: float) -> bool:
        ttl_ms = max(1, math.ceil(ttl_seconds * 1000))
        try:
            return bool(self._client.set(self._key(key), holder, nx=True, px=ttl_ms))
        except RedisError as e:
            raise LockStoreUnavailableError(
                f"Redis unavailable while acquiring {key}: {e}", cause=e
            ).with_context(lock_key=key, backend=self.name) from e

    def delete_if_holder(self, key: str, holder: str) -> bool:
        try:
            return bool(self._release(keys=[self._key(key)], args=[holder]))
        except RedisError as e:
            raise LockStoreUnavailableError(
                f"Redis unavailable while releasing {key}: {e}", cause=e
            ).with_context(lock_key=key, backend=self.name) from e

    def get_holder(self, key: str) -> str | None:
        try:
            value = self._client.get(self._key(key))
        except RedisError as e:
            raise LockStoreUnavailableError(
                f"Redis unavailable while reading {key}: {e}", cause=e
            ).with_context(lock_key=key, backend=self.name) from e
        if isinstance(value, bytes):
            return value.decode()
        return value


__all__ = ["RELEASE_SCRIPT", "RedisLockStore"]
