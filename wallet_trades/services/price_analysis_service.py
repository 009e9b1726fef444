"""
Price analysis service for the Wallet Trades Analyzer.

This module enriches trades with price history while keeping outbound
price requests to a minimum:

- trades are grouped by (mint, hour bucket) and each group is looked up once
- concurrent lookups of the same key share one in-flight future
- successful analyses are memoized in a bounded, insertion-ordered cache
- every lookup runs as one task on the price family's ``RateLimiter``
"""

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from wallet_trades.models.trades import PriceAnalysis, PriceLookupRequest, PricePoint
from wallet_trades.services.base_service import BaseService
from wallet_trades.utils.rate_limiter import RateLimiter

# Width of a deduplication bucket in seconds
BUCKET_SECONDS = 3600


class PriceHistoryClient(Protocol):
    """Source of time-ordered price points for a token."""

    async def get_historical_prices(
        self,
        mint: str,
        from_timestamp: int,
        to_timestamp: int,
        timeframe: Optional[str] = None
    ) -> List[PricePoint]:
        ...


def make_cache_key(mint: str, timestamp: int) -> str:
    """Build the deduplication key of a trade: ``mint-<hour bucket start>``."""
    bucket = (int(timestamp) // BUCKET_SECONDS) * BUCKET_SECONDS
    return f"{mint}-{bucket}"


def compute_price_analysis(price_history: List[PricePoint]) -> Optional[PriceAnalysis]:
    """Derive purchase, current and all-time-high prices from a history.

    The ATH scan covers the full series, starting from the purchase point,
    so ``ath_price`` is never below the purchase or current price. Ties keep
    the first occurrence.

    Args:
        price_history: Price points ordered by time, starting at the purchase

    Returns:
        The analysis, or None if the history is empty
    """
    if not price_history:
        return None

    first = price_history[0]
    ath_price = first.value
    ath_timestamp = first.timestamp

    for point in price_history:
        if point.value > ath_price:
            ath_price = point.value
            ath_timestamp = point.timestamp

    return PriceAnalysis(
        purchase_price=first.value,
        current_price=price_history[-1].value,
        ath_price=ath_price,
        ath_timestamp=ath_timestamp,
        price_history=list(price_history)
    )


class PriceAnalysisCache:
    """Bounded memo of successful price analyses.

    Entries are kept in insertion order. Adding a new key while the cache
    holds ``max_entries`` entries first removes the ``evict_count`` oldest
    entries in one pass. Absent results are never stored.
    """

    def __init__(self, max_entries: int = 1000, evict_count: int = 500):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if not 1 <= evict_count <= max_entries:
            raise ValueError("evict_count must be between 1 and max_entries")

        self.max_entries = max_entries
        self.evict_count = evict_count
        self._entries: "OrderedDict[str, PriceAnalysis]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[PriceAnalysis]:
        analysis = self._entries.get(key)
        if analysis is None:
            self.misses += 1
        else:
            self.hits += 1
        return analysis

    def set(self, key: str, analysis: Optional[PriceAnalysis]) -> None:
        if analysis is None:
            return

        if key not in self._entries and len(self._entries) >= self.max_entries:
            evicted = min(self.evict_count, len(self._entries))
            for _ in range(evicted):
                self._entries.popitem(last=False)
            self.evictions += evicted

        self._entries[key] = analysis

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "maxEntries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }


@dataclass
class PriceLookupGroup:
    """Trades sharing one deduplication key."""

    mint: str
    timestamp: int
    requests: List[PriceLookupRequest] = field(default_factory=list)


class PriceAnalysisService(BaseService):
    """Service for deduplicated, rate-limited price analyses."""

    def __init__(
        self,
        price_client: PriceHistoryClient,
        scheduler: RateLimiter,
        cache: Optional[PriceAnalysisCache] = None,
        timeframe: str = "30m",
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the price analysis service.

        Args:
            price_client: Price history collaborator
            scheduler: Rate limiter for the price API family
            cache: Process-scoped analysis cache
            timeframe: Candle size requested from the price client
            clock: Source of the current unix time
        """
        super().__init__()
        self.price_client = price_client
        self.scheduler = scheduler
        self.cache = cache if cache is not None else PriceAnalysisCache()
        self.timeframe = timeframe
        self.clock = clock
        self._in_flight: Dict[str, "asyncio.Future[Optional[PriceAnalysis]]"] = {}
        # purchase timestamp each in-flight lookup started from
        self._in_flight_starts: Dict[str, int] = {}
        self.lookups_submitted = 0

    async def get_full_price_history(
        self,
        mint: str,
        from_timestamp: int,
        to_timestamp: int
    ) -> List[PricePoint]:
        """Page through the price history between two timestamps.

        Each page starts one second after the last point of the previous
        page. Paging stops on an empty page or when a page does not advance
        past its start. Points are deduplicated by timestamp, first wins.
        """
        all_prices: List[PricePoint] = []
        current_start = from_timestamp

        while current_start < to_timestamp:
            chunk = await self.price_client.get_historical_prices(
                mint, current_start, to_timestamp, self.timeframe
            )
            if not chunk:
                break

            all_prices.extend(chunk)

            last_timestamp = chunk[-1].timestamp
            if last_timestamp <= current_start:
                break

            current_start = last_timestamp + 1

        seen = set()
        unique_prices = []
        for point in all_prices:
            if point.timestamp not in seen:
                seen.add(point.timestamp)
                unique_prices.append(point)
        return unique_prices

    async def _lookup(self, mint: str, purchase_timestamp: int) -> Optional[PriceAnalysis]:
        now = int(self.clock())
        history = await self.get_full_price_history(mint, purchase_timestamp, now)
        return compute_price_analysis(history)

    def _on_lookup_done(self, key: str, future: "asyncio.Future[Optional[PriceAnalysis]]") -> None:
        # a superseded lookup started from a later timestamp and is never cached
        if self._in_flight.get(key) is not future:
            return
        del self._in_flight[key]
        del self._in_flight_starts[key]

        if future.cancelled():
            return
        if future.exception() is not None:
            return
        self.cache.set(key, future.result())

    async def get_price_analysis(self, mint: str, timestamp: int) -> Optional[PriceAnalysis]:
        """Get the price analysis of a token from a purchase time until now.

        Served from the cache when possible. Otherwise an in-flight lookup
        for the same key is joined when it started at or before
        ``timestamp``. A lookup that started later would miss the earlier
        purchase price, so a new lookup is scheduled from ``timestamp`` and
        replaces it as the key's in-flight entry; only that entry's result
        is cached. Cached results are served regardless of their start.

        Raises:
            Exception: Whatever the scheduled lookup raised
        """
        key = make_cache_key(mint, timestamp)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        future = self._in_flight.get(key)
        if future is None or self._in_flight_starts[key] > timestamp:
            future = self.scheduler.schedule(lambda: self._lookup(mint, timestamp))
            future.add_done_callback(lambda f: self._on_lookup_done(key, f))
            self._in_flight[key] = future
            self._in_flight_starts[key] = timestamp
            self.lookups_submitted += 1
            self.logger.debug(f"Scheduled price lookup for {key} from {timestamp}")

        return await asyncio.shield(future)

    @staticmethod
    def group_requests(requests: Iterable[PriceLookupRequest]) -> Dict[str, PriceLookupGroup]:
        """Group lookup requests by key; each group keeps its earliest timestamp."""
        groups: Dict[str, PriceLookupGroup] = {}
        for request in requests:
            key = make_cache_key(request.mint, request.timestamp)
            group = groups.get(key)
            if group is None:
                groups[key] = PriceLookupGroup(request.mint, request.timestamp, [request])
            else:
                group.timestamp = min(group.timestamp, request.timestamp)
                group.requests.append(request)
        return groups

    async def analyze_trades(
        self,
        requests: Iterable[PriceLookupRequest]
    ) -> Dict[str, Optional[PriceAnalysis]]:
        """Look up every unique (mint, hour bucket) of the given trades.

        All unique keys are fanned out together; a failed lookup yields None
        for its key and does not affect the others.

        Returns:
            Mapping of cache key to analysis (or None)
        """
        groups = self.group_requests(requests)
        if not groups:
            return {}

        self.log_with_context(
            "info",
            "Analyzing trade prices",
            trades=sum(len(group.requests) for group in groups.values()),
            unique_keys=len(groups)
        )

        results = await asyncio.gather(
            *(self.get_price_analysis(group.mint, group.timestamp) for group in groups.values()),
            return_exceptions=True
        )

        analyses: Dict[str, Optional[PriceAnalysis]] = {}
        for (key, group), result in zip(groups.items(), results):
            if isinstance(result, BaseException):
                self.logger.warning(f"Price analysis failed for {group.mint} ({key}): {result}")
                analyses[key] = None
            else:
                analyses[key] = result
        return analyses

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cache": self.cache.stats(),
            "inFlight": len(self._in_flight),
            "lookupsSubmitted": self.lookups_submitted,
            "scheduler": self.scheduler.get_stats(),
        }
