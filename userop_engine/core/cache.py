# /userop_engine/core/cache.py
# In-memory caches with both a time-to-live and a time-to-idle clock.
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

from userop_engine.core.logger import get_logger

log = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class _Entry:
    value: Any
    written_at: float
    accessed_at: float


class DualClockCache(Generic[K, V]):
    """
    Key-value store where an entry dies when either clock runs out:

    * ``ttl`` counts from the last write and is never extended by reads.
    * ``tti`` (time-to-idle) counts from the last read or write.

    Eviction is lazy on access; ``purge_expired`` sweeps the whole map. Values
    are advisory: concurrent writers to the same key resolve last-write-wins.
    """
    def __init__(self, ttl: float, tti: float, name: str = "cache", clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.tti = tti
        self.name = name
        self._clock = clock
        self._entries: Dict[K, _Entry] = {}

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.written_at >= self.ttl or now - entry.accessed_at >= self.tti

    async def get(self, key: K) -> Optional[V]:
        now = self._clock()
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry, now):
            # Only drop the entry we inspected; a concurrent set may have replaced it.
            if self._entries.get(key) is entry:
                del self._entries[key]
            return None
        entry.accessed_at = now
        return entry.value

    async def set(self, key: K, value: V):
        now = self._clock()
        self._entries[key] = _Entry(value, now, now)

    async def invalidate(self, key: K):
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        """Removes every expired entry and returns how many were dropped."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("CACHE_PURGED", cache=self.name, removed=len(expired))
        return len(expired)

    def __contains__(self, key) -> bool:
        # Does not count as an access.
        entry = self._entries.get(key)
        return entry is not None and not self._expired(entry, self._clock())

    def __len__(self) -> int:
        return len(self._entries)


class GasCache:
    """Fee and nonce values shared by every estimator in the process."""
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.base_fee_cache: DualClockCache[int, int] = DualClockCache(12, 24, "base_fee", clock)
        self.priority_fee_cache: DualClockCache[int, int] = DualClockCache(12, 24, "priority_fee", clock)
        # Shorter TTL for nonces
        self.nonce_cache: DualClockCache[Tuple[int, str], int] = DualClockCache(5, 10, "nonce", clock)

    async def get_base_fee(self, chain_id: int) -> Optional[int]:
        return await self.base_fee_cache.get(chain_id)

    async def set_base_fee(self, chain_id: int, value: int):
        await self.base_fee_cache.set(chain_id, value)

    async def get_priority_fee(self, chain_id: int) -> Optional[int]:
        return await self.priority_fee_cache.get(chain_id)

    async def set_priority_fee(self, chain_id: int, value: int):
        await self.priority_fee_cache.set(chain_id, value)

    async def get_nonce(self, chain_id: int, address: str) -> Optional[int]:
        return await self.nonce_cache.get((chain_id, address.lower()))

    async def set_nonce(self, chain_id: int, address: str, value: int):
        await self.nonce_cache.set((chain_id, address.lower()), value)

    async def invalidate_nonce(self, chain_id: int, address: str):
        await self.nonce_cache.invalidate((chain_id, address.lower()))
        log.debug("NONCE_INVALIDATED", chain_id=chain_id, address=address)
