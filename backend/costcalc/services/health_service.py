"""
Health service.
Provides health check functionality.
"""

import time
from typing import Optional

from costcalc.core.config import settings
from costcalc.schemas.health import HealthResponse
from costcalc.services.base_service import BaseService
from costcalc.services.exchange_rate_service import ExchangeRateService


class HealthService(BaseService):
    """Service for health check operations."""

    def __init__(self, exchange_rate_service: Optional[ExchangeRateService] = None):
        self.start_time = time.time()
        self.exchange_rate_service = exchange_rate_service

    async def get_health(self) -> HealthResponse:
        """
        Get system health status.

        Returns:
            HealthResponse with status, uptime, and checks
        """
        uptime_seconds = int(time.time() - self.start_time)
        uptime_str = f"PT{uptime_seconds}S"  # ISO 8601 duration format

        checks = {}

        # Rate cache is in-process; report its state without touching the network
        if self.exchange_rate_service is not None:
            stats = self.exchange_rate_service.get_cache_stats()
            expired = sum(1 for entry in stats.entries if entry.expired)
            checks["exchange_rate_cache"] = "ok"
            checks["exchange_rate_cache_size"] = stats.size
            checks["exchange_rate_cache_expired"] = expired

        status = "ok" if all(
            check == "ok" for check in checks.values() if isinstance(check, str)
        ) else "degraded"

        return HealthResponse(
            status=status,
            uptime=uptime_str,
            version=settings.VERSION,
            checks=checks,
        )
