"""
Currency rate Pydantic schemas for rate snapshots, rate tables and conversion requests.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
import enum


class RateOrigin(str, enum.Enum):
    """Provenance of an exchange rate snapshot."""
    API = "api"
    FALLBACK_API = "fallback-api"
    LOCAL = "local"
    CACHE = "cache"


class RateTable(BaseModel):
    """A full rate table for one base currency as returned by a rate source."""
    base: str = Field(..., min_length=3, max_length=3)
    date: Optional[str] = None
    rates: Dict[str, float]
    fetched_at: datetime

    @field_validator("base")
    @classmethod
    def upper_base(cls, v: str) -> str:
        return v.upper()

    @field_validator("rates")
    @classmethod
    def upper_rate_keys(cls, v: Dict[str, float]) -> Dict[str, float]:
        return {code.upper(): rate for code, rate in v.items()}


class ExchangeRateSnapshot(BaseModel):
    """A timestamped conversion factor: amount_in(to) = amount_in(from) * rate."""
    from_currency: str = Field(..., alias="from", min_length=3, max_length=3)
    to_currency: str = Field(..., alias="to", min_length=3, max_length=3)
    rate: float
    timestamp: datetime
    source: RateOrigin
    stale: bool = False

    class Config:
        populate_by_name = True


class CurrencyInfo(BaseModel):
    """Display metadata for a supported currency."""
    code: str
    name: str
    symbol: str
    flag: Optional[str] = None


class CurrencyListResponse(BaseModel):
    """Schema for supported currency list response."""
    items: List[CurrencyInfo]
    total: int


class ExchangeRateListResponse(BaseModel):
    """Schema for a multi-target rate lookup."""
    base: str
    items: List[ExchangeRateSnapshot]
    missing: List[str] = []


class CacheEntryStats(BaseModel):
    """One cached rate entry."""
    key: str
    timestamp: datetime
    source: RateOrigin
    expired: bool


class CacheStatsResponse(BaseModel):
    """Schema for rate cache statistics."""
    size: int
    entries: List[CacheEntryStats]


class RateHistoryEntry(BaseModel):
    """One recorded rate observation."""
    rate: float
    timestamp: datetime
    source: RateOrigin


class RateHistoryResponse(BaseModel):
    """Schema for rate history of a currency pair."""
    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    entries: List[RateHistoryEntry]
    average_rate: float
    days: int

    class Config:
        populate_by_name = True


class ConversionRequest(BaseModel):
    """Request schema for converting an amount between two currencies."""
    amount: float
    from_currency: str = Field(..., alias="from", min_length=3, max_length=3)
    to_currency: str = Field(..., alias="to", min_length=3, max_length=3)
    rate: Optional[float] = Field(None, gt=0, description="Explicit rate; looked up when omitted")

    class Config:
        populate_by_name = True


class ConversionResponse(BaseModel):
    """Response schema for a currency conversion."""
    amount: float
    from_currency: str = Field(..., alias="from")
    to_currency: str = Field(..., alias="to")
    rate: float
    converted_amount: float
    formatted: str
    source: RateOrigin

    class Config:
        populate_by_name = True
