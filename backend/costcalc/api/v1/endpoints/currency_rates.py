"""
Currency rate API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from costcalc.controllers.currency_rate_controller import CurrencyRateController
from costcalc.deps.di_container import get_currency_rate_controller
from costcalc.schemas.currency_rate import (
    CacheStatsResponse,
    ConversionRequest,
    ConversionResponse,
    CurrencyListResponse,
    ExchangeRateListResponse,
    ExchangeRateSnapshot,
    RateHistoryResponse,
)

router = APIRouter()


@router.get("/currencies", response_model=CurrencyListResponse)
async def list_currencies(
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> CurrencyListResponse:
    """List supported currencies."""
    return await controller.list_currencies()


@router.get("/rate", response_model=ExchangeRateSnapshot, response_model_by_alias=True)
async def get_rate(
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3),
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> ExchangeRateSnapshot:
    """Get the conversion rate between two currencies."""
    return await controller.get_rate(from_currency, to_currency)


@router.get("/table", response_model=ExchangeRateListResponse)
async def get_rate_table(
    base: str = Query(..., min_length=3, max_length=3),
    targets: str = Query(..., description="Comma-separated currency codes"),
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> ExchangeRateListResponse:
    """Get rates from one base currency to several targets."""
    codes = [code.strip() for code in targets.split(",") if code.strip()]
    if not codes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one target currency is required",
        )
    return await controller.get_rate_table(base, codes)


@router.get("/history", response_model=RateHistoryResponse)
async def get_rate_history(
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3),
    days: int = Query(7, ge=1, le=365),
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> RateHistoryResponse:
    """Get recorded rates and their average for a currency pair."""
    return await controller.get_history(from_currency, to_currency, days=days)


@router.get("/cache", response_model=CacheStatsResponse)
async def get_cache_stats(
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> CacheStatsResponse:
    """Get rate cache statistics."""
    return await controller.get_cache_stats()


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache(
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
):
    """Clear the rate cache."""
    await controller.clear_cache()


@router.post("/convert", response_model=ConversionResponse)
async def convert_amount(
    request: ConversionRequest,
    controller: CurrencyRateController = Depends(get_currency_rate_controller),
) -> ConversionResponse:
    """Convert an amount between two currencies."""
    return await controller.convert(request)
