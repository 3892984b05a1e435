"""
Historical rate tracking.
Keeps a rolling window of observed rates per currency pair.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from costcalc.core.config import settings
from costcalc.schemas.currency_rate import ExchangeRateSnapshot, RateHistoryEntry
from costcalc.services.base_service import BaseService


class HistoricalRateTracker(BaseService):
    """In-memory rate history with a fixed retention window."""

    def __init__(
        self,
        retention_days: int = settings.RATE_HISTORY_DAYS,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.retention = timedelta(days=retention_days)
        self._clock = clock
        self._history: Dict[str, List[RateHistoryEntry]] = {}

    @staticmethod
    def _key(from_currency: str, to_currency: str) -> str:
        return f"{from_currency}_{to_currency}".upper()

    def save_rate(self, snapshot: ExchangeRateSnapshot) -> None:
        """Record a snapshot and drop entries older than the retention window."""
        key = self._key(snapshot.from_currency, snapshot.to_currency)
        cutoff = self._clock() - self.retention
        history = [entry for entry in self._history.get(key, []) if entry.timestamp > cutoff]
        history.append(
            RateHistoryEntry(
                rate=snapshot.rate,
                timestamp=snapshot.timestamp,
                source=snapshot.source,
            )
        )
        self._history[key] = history

    def get_rate_history(self, from_currency: str, to_currency: str) -> List[RateHistoryEntry]:
        return list(self._history.get(self._key(from_currency, to_currency), []))

    def get_average_rate(self, from_currency: str, to_currency: str, days: int = 7) -> float:
        """Average of the rates recorded in the last ``days`` days, or 0 without samples."""
        cutoff = self._clock() - timedelta(days=days)
        recent = [
            entry.rate
            for entry in self.get_rate_history(from_currency, to_currency)
            if entry.timestamp > cutoff
        ]
        if not recent:
            return 0.0
        return sum(recent) / len(recent)
