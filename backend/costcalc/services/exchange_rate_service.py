"""
Exchange rate service.

Serves conversion rates between any two currency codes with a TTL-bound
in-memory cache, a primary and a fallback rate source, and degradation to
expired cache entries when both sources fail.

Lookup order for ``get_rate``:
    1. same currency -> identity rate, answered locally
    2. fresh cache entry
    3. primary source, then fallback source
    4. expired cache entry, flagged as stale
    5. RateUnavailable
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from costcalc.core.config import settings
from costcalc.core.exceptions import ConversionError, RateUnavailable
from costcalc.core.integrations.rate_sources import RateSource, RateSourceError
from costcalc.schemas.currency_rate import (
    CacheEntryStats,
    CacheStatsResponse,
    ExchangeRateSnapshot,
    RateOrigin,
    RateTable,
)
from costcalc.services.base_service import BaseService
from costcalc.services.rate_history_service import HistoricalRateTracker

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExchangeRateService(BaseService):
    """Cached exchange rate lookups with fallback sourcing."""

    def __init__(
        self,
        primary: RateSource,
        fallback: Optional[RateSource] = None,
        ttl_seconds: int = settings.EXCHANGE_RATE_CACHE_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        history: Optional[HistoricalRateTracker] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self.history = history
        self._cache: Dict[str, ExchangeRateSnapshot] = {}

    # Internal --------------------------------------------------

    @staticmethod
    def _cache_key(from_currency: str, to_currency: str) -> str:
        return f"{from_currency}_{to_currency}".upper()

    def _is_fresh(self, snapshot: ExchangeRateSnapshot) -> bool:
        return self._clock() - snapshot.timestamp < self._ttl

    def _identity(self, currency: str) -> ExchangeRateSnapshot:
        return ExchangeRateSnapshot(
            from_currency=currency,
            to_currency=currency,
            rate=1.0,
            timestamp=self._clock(),
            source=RateOrigin.LOCAL,
        )

    async def _fetch_table(self, base_currency: str) -> Tuple[RateTable, RateOrigin]:
        """Fetch a rate table from the primary source, then the fallback."""
        try:
            return await self.primary.fetch_table(base_currency), RateOrigin.API
        except RateSourceError as e:
            primary_error = e
            logger.warning(
                f"Primary rate source failed for base {base_currency}, trying fallback: {e}",
                extra={"source": getattr(self.primary, "name", "primary")},
            )

        if self.fallback is None:
            raise primary_error

        try:
            return await self.fallback.fetch_table(base_currency), RateOrigin.FALLBACK_API
        except RateSourceError as e:
            logger.error(
                f"Fallback rate source also failed for base {base_currency}: {e}",
                extra={"source": getattr(self.fallback, "name", "fallback")},
            )
            raise RateSourceError(
                f"Unable to fetch exchange rates from any source ({primary_error}; {e})"
            ) from e

    def _store(
        self,
        from_currency: str,
        to_currency: str,
        rate: float,
        origin: RateOrigin,
    ) -> ExchangeRateSnapshot:
        snapshot = ExchangeRateSnapshot(
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            timestamp=self._clock(),
            source=origin,
        )
        self._cache[self._cache_key(from_currency, to_currency)] = snapshot
        if self.history is not None:
            self.history.save_rate(snapshot)
        return snapshot

    @staticmethod
    def _as_stale(snapshot: ExchangeRateSnapshot) -> ExchangeRateSnapshot:
        return snapshot.model_copy(update={"source": RateOrigin.CACHE, "stale": True})

    @staticmethod
    def _extract(table: RateTable, to_currency: str) -> Optional[float]:
        rate = table.rates.get(to_currency)
        if rate is None or rate <= 0:
            return None
        return rate

    # Public API -----------------------------------------------

    async def get_rate(self, from_currency: str, to_currency: str) -> ExchangeRateSnapshot:
        """
        Get the rate converting ``from_currency`` into ``to_currency``.

        Raises:
            ConversionError: the fetched table has no rate for ``to_currency``
            RateUnavailable: no source answered and nothing is cached
        """
        from_code = from_currency.upper()
        to_code = to_currency.upper()

        if from_code == to_code:
            return self._identity(from_code)

        cached = self._cache.get(self._cache_key(from_code, to_code))
        if cached and self._is_fresh(cached):
            return cached

        try:
            table, origin = await self._fetch_table(from_code)
        except RateSourceError as e:
            if cached:
                logger.warning(
                    f"Using expired cached rate for {from_code}->{to_code} as fallback",
                    extra={"cached_at": cached.timestamp.isoformat()},
                )
                return self._as_stale(cached)
            raise RateUnavailable(from_code, to_code, str(e)) from e

        rate = self._extract(table, to_code)
        if rate is None:
            raise ConversionError(from_code, to_code)

        return self._store(from_code, to_code, rate, origin)

    async def get_multiple_rates(
        self,
        base_currency: str,
        target_currencies: Iterable[str],
    ) -> List[ExchangeRateSnapshot]:
        """
        Get rates from one base currency to several targets with a single table fetch.

        Targets absent from the fetched table are omitted from the result.
        """
        base = base_currency.upper()
        targets = list(dict.fromkeys(t.upper() for t in target_currencies))

        found: Dict[str, ExchangeRateSnapshot] = {}
        to_fetch: List[str] = []
        for target in targets:
            if target == base:
                found[target] = self._identity(base)
                continue
            cached = self._cache.get(self._cache_key(base, target))
            if cached and self._is_fresh(cached):
                found[target] = cached
            else:
                to_fetch.append(target)

        if to_fetch:
            try:
                table, origin = await self._fetch_table(base)
            except RateSourceError as e:
                stale = {
                    target: self._as_stale(self._cache[self._cache_key(base, target)])
                    for target in to_fetch
                    if self._cache_key(base, target) in self._cache
                }
                if not stale:
                    raise RateUnavailable(base, ",".join(to_fetch), str(e)) from e
                logger.warning(
                    f"Using expired cached rates for base {base}: {sorted(stale)}",
                )
                found.update(stale)
            else:
                for target in to_fetch:
                    rate = self._extract(table, target)
                    if rate is None:
                        logger.debug(f"Rate for {target} missing from {base} table")
                        continue
                    found[target] = self._store(base, target, rate, origin)

        return [found[target] for target in targets if target in found]

    def clear_cache(self) -> None:
        """Drop every cached rate."""
        self._cache.clear()
        logger.info("Exchange rate cache cleared")

    def get_cache_stats(self) -> CacheStatsResponse:
        """Summarize the cache contents."""
        entries = [
            CacheEntryStats(
                key=key,
                timestamp=snapshot.timestamp,
                source=snapshot.source,
                expired=not self._is_fresh(snapshot),
            )
            for key, snapshot in self._cache.items()
        ]
        return CacheStatsResponse(size=len(entries), entries=entries)
