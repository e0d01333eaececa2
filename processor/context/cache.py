"""
Context Cache - TTL cache for compressed contexts.

`ContextCache` is a plain keyed store with expiry and hit/miss accounting.
`MarketContextCache` layers the market snapshot table under it: a memory
miss falls through to the store, and whatever the store returns is
compressed and written back for the market TTL.

Investor and property contexts are memory-only.
"""
import asyncio
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, Optional, TypeVar

from loguru import logger

from config import settings as app_settings, Settings
from processor.errors import CollaboratorQueryFailed
from processor.store import OpportunityStore
from .compressor import compress_market_context
from .models import (
    CompressedInvestorContext,
    CompressedMarketContext,
    CompressedPropertyContext,
)

T = TypeVar("T")

MARKET_CACHE_PREFIX = "market:"
INVESTOR_CACHE_PREFIX = "investor:"
PROPERTY_CACHE_PREFIX = "property:"

SECONDS_PER_HOUR = 60 * 60


@dataclass
class CacheEntry(Generic[T]):
    data: T
    created_at: float    # epoch seconds
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass
class CacheStats:
    hits: int
    misses: int
    evictions: int
    size: int
    hit_rate: Optional[float]    # None before the first lookup

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "hit_rate": f"{self.hit_rate * 100:.1f}%" if self.hit_rate is not None else "N/A",
        }


class ContextCache:
    """
    In-memory TTL cache.

    An entry is readable while `now <= expires_at`. Reading an expired entry
    removes it and counts as one eviction plus one miss.
    """

    def __init__(self, clock: Callable[[], float] = time.time, settings: Optional[Settings] = None):
        self._clock = clock
        self.settings = settings or app_settings
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(now):
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                return None

            self._hits += 1
            return entry.data

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be non-negative, got {ttl_seconds}")
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(data=value, created_at=now, expires_at=now + ttl_seconds)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def sweep(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._evictions += len(expired)

        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
                hit_rate=self._hits / lookups if lookups else None,
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # ============================================
    # INVESTOR / PROPERTY CONTEXTS
    # ============================================

    def get_cached_investor_context(self, investor_id: str) -> Optional[CompressedInvestorContext]:
        return self.get(f"{INVESTOR_CACHE_PREFIX}{investor_id}")

    def set_cached_investor_context(self, context: CompressedInvestorContext) -> None:
        self.set(
            f"{INVESTOR_CACHE_PREFIX}{context.investor_id}",
            context,
            self.settings.INVESTOR_CONTEXT_TTL_HOURS * SECONDS_PER_HOUR,
        )

    def get_cached_property_context(self, property_id: str) -> Optional[CompressedPropertyContext]:
        return self.get(f"{PROPERTY_CACHE_PREFIX}{property_id}")

    def set_cached_property_context(self, context: CompressedPropertyContext) -> None:
        self.set(
            f"{PROPERTY_CACHE_PREFIX}{context.property_id}",
            context,
            self.settings.PROPERTY_CONTEXT_TTL_HOURS * SECONDS_PER_HOUR,
        )


class MarketContextCache:
    """Market contexts: memory first, then the market snapshot table."""

    def __init__(
        self,
        cache: ContextCache,
        store: OpportunityStore,
        ttl_hours: Optional[float] = None,
    ):
        self.cache = cache
        self.store = store
        self.ttl_seconds = (
            ttl_hours if ttl_hours is not None else cache.settings.MARKET_CONTEXT_TTL_HOURS
        ) * SECONDS_PER_HOUR

    @staticmethod
    def _key(org_id: str, area: str) -> str:
        return f"{MARKET_CACHE_PREFIX}{org_id}:{area}"

    async def get_cached_market_context(
        self,
        org_id: str,
        area: str,
    ) -> Optional[CompressedMarketContext]:
        """
        Look up the market context for an area.

        Returns None when neither memory nor the store has a row, or when
        the store read fails.
        """
        key = self._key(org_id, area)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            snapshot = await self._fetch_snapshot(org_id, area)
        except CollaboratorQueryFailed as e:
            logger.warning(f"Failed to fetch market context for {area}: {e}")
            return None

        if snapshot is None:
            return None

        context = compress_market_context(snapshot)
        self.cache.set(key, context, self.ttl_seconds)
        return context

    async def _fetch_snapshot(self, org_id: str, area: str):
        try:
            return await self.store.get_market_snapshot(org_id, area)
        except Exception as e:
            raise CollaboratorQueryFailed(f"market snapshot query failed for {area}") from e

    def set_cached_market_context(self, org_id: str, context: CompressedMarketContext) -> None:
        self.cache.set(self._key(org_id, context.area), context, self.ttl_seconds)

    async def get_batch(
        self,
        org_id: str,
        areas: Iterable[str],
    ) -> Dict[str, CompressedMarketContext]:
        """Concurrent lookups for many areas. Only resolved areas are returned."""
        unique = list(dict.fromkeys(areas))
        results = await asyncio.gather(
            *(self.get_cached_market_context(org_id, area) for area in unique),
            return_exceptions=True,
        )

        contexts: Dict[str, CompressedMarketContext] = {}
        for area, result in zip(unique, results):
            if isinstance(result, BaseException):
                logger.warning(f"Market context lookup failed for {area}: {result}")
                continue
            if result is not None:
                contexts[area] = result
        return contexts
