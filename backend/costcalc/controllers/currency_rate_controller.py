"""
Currency rate controller.
"""

from typing import List

from costcalc.controllers.base_controller import BaseController
from costcalc.schemas.currency_rate import (
    CacheStatsResponse,
    ConversionRequest,
    ConversionResponse,
    CurrencyListResponse,
    ExchangeRateListResponse,
    ExchangeRateSnapshot,
    RateHistoryResponse,
    RateOrigin,
)
from costcalc.services.exchange_rate_service import ExchangeRateService
from costcalc.services.rate_history_service import HistoricalRateTracker
from costcalc.utils import currency_converter


class CurrencyRateController(BaseController):
    """Controller for exchange rate operations."""

    def __init__(
        self,
        exchange_rate_service: ExchangeRateService,
        rate_history: HistoricalRateTracker,
    ):
        self.exchange_rate_service = exchange_rate_service
        self.rate_history = rate_history

    async def list_currencies(self) -> CurrencyListResponse:
        """List supported currencies with display metadata."""
        items = list(currency_converter.SUPPORTED_CURRENCIES)
        return CurrencyListResponse(items=items, total=len(items))

    async def get_rate(self, from_currency: str, to_currency: str) -> ExchangeRateSnapshot:
        """Get a single conversion rate."""
        return await self.exchange_rate_service.get_rate(from_currency, to_currency)

    async def get_rate_table(self, base_currency: str, targets: List[str]) -> ExchangeRateListResponse:
        """Get rates from one base to several targets, listing the ones not found."""
        items = await self.exchange_rate_service.get_multiple_rates(base_currency, targets)
        found = {item.to_currency for item in items}
        missing = [code.upper() for code in dict.fromkeys(targets) if code.upper() not in found]
        return ExchangeRateListResponse(base=base_currency.upper(), items=items, missing=missing)

    async def get_history(self, from_currency: str, to_currency: str, days: int = 7) -> RateHistoryResponse:
        """Recorded rates for a currency pair and their recent average."""
        return RateHistoryResponse(
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            entries=self.rate_history.get_rate_history(from_currency, to_currency),
            average_rate=self.rate_history.get_average_rate(from_currency, to_currency, days=days),
            days=days,
        )

    async def get_cache_stats(self) -> CacheStatsResponse:
        """Summarize the rate cache."""
        return self.exchange_rate_service.get_cache_stats()

    async def clear_cache(self) -> None:
        """Drop every cached rate."""
        self.exchange_rate_service.clear_cache()

    async def convert(self, request: ConversionRequest) -> ConversionResponse:
        """Convert an amount, looking up the rate unless one is supplied."""
        from_code = request.from_currency.upper()
        to_code = request.to_currency.upper()

        if currency_converter.same_currency(from_code, to_code):
            rate, source = 1.0, RateOrigin.LOCAL
        elif request.rate is not None:
            rate, source = request.rate, RateOrigin.LOCAL
        else:
            snapshot = await self.exchange_rate_service.get_rate(from_code, to_code)
            rate, source = snapshot.rate, snapshot.source

        converted = currency_converter.convert(request.amount, from_code, to_code, rate)
        return ConversionResponse(
            amount=request.amount,
            from_currency=from_code,
            to_currency=to_code,
            rate=rate,
            converted_amount=converted,
            formatted=currency_converter.format_currency(converted, to_code),
            source=source,
        )
