"""
Project Pydantic schemas for settings, calculations and persisted project data.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import datetime
import enum

from costcalc.core.config import settings
from costcalc.schemas.currency_rate import ExchangeRateSnapshot
from costcalc.schemas.role import RoleAssignment, RoleAssignmentCreate


class MissingRatePolicy(str, enum.Enum):
    """What to do with a role whose currency has no rate to the target currency."""
    RAISE = "raise"
    ASSUME_PARITY = "assume_parity"
    EXCLUDE = "exclude"


class ProjectSettings(BaseModel):
    """Project-wide parameters."""
    duration_months: int = Field(default=6, ge=1)
    monthly_hours_standard: float = Field(default=settings.DEFAULT_MONTHLY_HOURS, gt=0)
    target_currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    exchange_rate_base_currency: Optional[str] = Field(None, min_length=3, max_length=3)

    @field_validator("target_currency", "exchange_rate_base_currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    @model_validator(mode="after")
    def default_rate_base(self) -> "ProjectSettings":
        if not self.exchange_rate_base_currency:
            self.exchange_rate_base_currency = self.target_currency
        return self


class MonthlyBreakdown(BaseModel):
    """Project totals for one month."""
    month: int = Field(..., ge=1)
    total_cost: float
    total_billing: float
    margin: float
    margin_percentage: float


class ProjectCalculations(BaseModel):
    """Aggregate financials for a project, in the target currency."""
    currency: str = settings.DEFAULT_CURRENCY
    total_cost: float = 0.0
    total_billing: float = 0.0
    gross_margin: float = 0.0
    gross_margin_percentage: float = 0.0
    total_hours: float = 0.0
    blended_rate: float = 0.0
    monthly_breakdown: List[MonthlyBreakdown] = []
    degraded_currencies: List[str] = []


class CostBreakdownItem(BaseModel):
    """Monthly cost grouped by role title and location."""
    role_title: str
    location: str
    member_count: int
    total_cost: float
    average_cost: float
    percentage: float


class ProjectCalculateRequest(BaseModel):
    """Request schema for a stateless project calculation."""
    roles: List[RoleAssignmentCreate] = []
    project_settings: ProjectSettings = Field(default_factory=ProjectSettings)
    exchange_rates: Optional[Dict[str, float]] = Field(
        None,
        description="Rate from each role currency to the target currency; fetched when omitted",
    )
    missing_rate_policy: MissingRatePolicy = MissingRatePolicy.RAISE


class ProjectCalculateResponse(BaseModel):
    """Response schema for a project calculation."""
    roles: List[RoleAssignment]
    project_settings: ProjectSettings
    calculations: ProjectCalculations
    exchange_rates: Dict[str, float] = {}


class ProjectCreate(BaseModel):
    """Schema for creating a project."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    roles: List[RoleAssignmentCreate] = []
    project_settings: ProjectSettings = Field(default_factory=ProjectSettings)
    missing_rate_policy: MissingRatePolicy = MissingRatePolicy.ASSUME_PARITY


class ProjectUpdate(BaseModel):
    """Schema for updating a project (all fields optional)."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    roles: Optional[List[RoleAssignmentCreate]] = None
    project_settings: Optional[ProjectSettings] = None
    missing_rate_policy: MissingRatePolicy = MissingRatePolicy.ASSUME_PARITY


class ProjectResponse(BaseModel):
    """Schema for a persisted project with its computed financials."""
    id: str
    name: str
    description: Optional[str] = None
    roles: List[RoleAssignment]
    project_settings: ProjectSettings
    calculations: ProjectCalculations
    exchange_rate: float = 1.0
    exchange_rates: Dict[str, float] = {}
    rate_snapshots: List[ExchangeRateSnapshot] = []
    exchange_rate_degraded: bool = False
    exchange_rate_note: Optional[str] = None
    missing_rate_policy: MissingRatePolicy = MissingRatePolicy.ASSUME_PARITY
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    """Schema for project list response."""
    items: List[ProjectResponse]
    total: int
