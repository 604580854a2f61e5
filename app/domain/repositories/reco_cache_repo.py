from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Tuple
import hashlib
import json
import time

from redis.asyncio import Redis

from app.domain.models.reco import RecoItem

def _h(params: Dict[str, Any]) -> str:
    """
    Create a short hash of the query parameters.
    Used to generate unique cache keys for different query shapes.
    """
    s = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha1(s.encode()).hexdigest()[:10]

def reco_key(prefix: str, version: str, category: str, identity: str, limit: int, **params: Any) -> str:
    """
    Build the cache key for a computed list:
      {prefix}:{version}:{category}:{identity}:{hash(limit, params)}
    Category and identity stay readable so they can be invalidated by prefix.
    """
    return f"{prefix}:{version}:{category}:{identity}:{_h({'k': limit, **params})}"


class RecoCache(Protocol):
    async def get(self, key: str) -> Optional[list[RecoItem]]: ...

    async def set(self, key: str, items: Iterable[RecoItem], ttl: int) -> None: ...

    async def invalidate_prefix(self, prefix: str) -> int: ...


class RedisRecoCache:
    """
    Adapter for caching recommendation lists in Redis.
    SET EX replaces an entry whole, so readers see a full list or a miss.
    """
    def __init__(self, redis: Redis):
        self.cache = redis

    async def get(self, key: str) -> Optional[list[RecoItem]]:
        raw = await self.cache.get(key)
        if raw:
            data = json.loads(raw)
            return [RecoItem.model_validate(x) for x in data]
        return None

    async def set(self, key: str, items: Iterable[RecoItem], ttl: int) -> None:
        payload = [i.model_dump(mode="json") for i in items]
        await self.cache.set(key, json.dumps(payload), ex=ttl)

    async def invalidate_prefix(self, prefix: str) -> int:
        deleted = 0
        async for k in self.cache.scan_iter(match=f"{prefix}*"):
            deleted += await self.cache.delete(k)
        return deleted


class InMemoryRecoCache:
    """
    Process-local cache with lazy expiry.
    `clock` returns seconds (monotonic by default) and is injectable for tests.
    """
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Tuple[RecoItem, ...]]] = {}

    async def get(self, key: str) -> Optional[list[RecoItem]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, items = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return list(items)

    async def set(self, key: str, items: Iterable[RecoItem], ttl: int) -> None:
        # one assignment of an immutable tuple: no partial entry is observable
        self._entries[key] = (self._clock() + ttl, tuple(items))

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            self._entries.pop(k, None)
        return len(keys)
