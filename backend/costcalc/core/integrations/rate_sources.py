"""
Exchange rate sources.
Each source fetches a full rate table for a base currency from one HTTP endpoint.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import aiohttp

from costcalc.core.integrations.http.http_client import HttpClient
from costcalc.schemas.currency_rate import RateTable

logger = logging.getLogger(__name__)


class RateSourceError(Exception):
    """A rate source could not produce a usable rate table."""


class RateSource(Protocol):
    """Anything that can fetch a rate table for a base currency."""
    name: str

    async def fetch_table(self, base_currency: str) -> RateTable: ...


class HttpRateSource:
    """
    Rate source backed by a JSON HTTP endpoint.

    The endpoint must answer with ``{"base": ..., "date": ..., "rates": {code: rate}}``.
    A ``"success": false`` flag in the body is treated as a failure.
    """

    def __init__(
        self,
        name: str,
        url_template: str,
        http_client: Optional[HttpClient] = None,
        timeout: int = 10,
        max_retries: int = 2,
        retry_delay: float = 0.5,
    ):
        self.name = name
        self.url_template = url_template
        self.http_client = http_client or HttpClient(
            timeout=timeout,
            max_retries=max_retries,
            retry_delay=retry_delay,
            headers={
                "Accept": "application/json",
                "User-Agent": "ProjectCostCalculator/1.0",
            },
        )

    def build_url(self, base_currency: str) -> str:
        return self.url_template.format(base=base_currency.upper())

    async def fetch_table(self, base_currency: str) -> RateTable:
        url = self.build_url(base_currency)
        try:
            data = await self.http_client.get(url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RateSourceError(f"{self.name}: request to {url} failed: {e}") from e
        return self._parse(base_currency, data)

    def _parse(self, base_currency: str, data: Any) -> RateTable:
        if not isinstance(data, dict):
            raise RateSourceError(f"{self.name}: malformed response body")
        if data.get("success") is False:
            error = data.get("error") or "unsuccessful response"
            raise RateSourceError(f"{self.name}: {error}")

        rates = data.get("rates")
        if not isinstance(rates, dict) or not rates:
            raise RateSourceError(f"{self.name}: no exchange rates received")

        parsed: Dict[str, float] = {}
        for code, value in rates.items():
            try:
                parsed[str(code).upper()] = float(value)
            except (TypeError, ValueError):
                logger.debug(f"{self.name}: skipping non-numeric rate for {code}: {value!r}")
        if not parsed:
            raise RateSourceError(f"{self.name}: no numeric exchange rates received")

        try:
            return RateTable(
                base=data.get("base") or base_currency,
                date=data.get("date"),
                rates=parsed,
                fetched_at=datetime.now(timezone.utc),
            )
        except ValueError as e:
            raise RateSourceError(f"{self.name}: malformed response body: {e}") from e

    async def close(self) -> None:
        await self.http_client.close()
