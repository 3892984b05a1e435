"""
Optimization Pydantic schemas for rate analysis and cost-saving suggestions.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
import enum

from costcalc.schemas.project import MissingRatePolicy, ProjectSettings
from costcalc.schemas.role import RoleAssignmentCreate


class SuggestionType(str, enum.Enum):
    """Suggestion categories."""
    RATE = "rate"
    ALLOCATION = "allocation"
    LOCATION = "location"
    TIMING = "timing"


class ImpactLevel(str, enum.Enum):
    """Impact classification, ordered low < medium < high."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RateOptimization(str, enum.Enum):
    """Position of a rate relative to its market band."""
    INCREASE = "increase"
    DECREASE = "decrease"
    OPTIMAL = "optimal"


class RateBasis(str, enum.Enum):
    """Which role rate is compared against market bands."""
    BILL = "bill"
    COST = "cost"


class MarketRateBand(BaseModel):
    """Reference market rate band for a role title."""
    min: float
    max: float
    optimal: float


class RateAnalysis(BaseModel):
    """Margin analysis of one role against its market band."""
    role_id: str
    name: str
    role_title: str
    current_rate: float
    cost_per_month: float
    suggested_rate: float
    margin: float
    optimization: RateOptimization


class CurrencyImpact(BaseModel):
    """Effect of converting one currency group into the project currency."""
    currency: str
    total_cost: float
    converted_cost: float
    exchange_rate: float
    impact: float


class OptimizationSuggestion(BaseModel):
    """A non-binding cost-saving suggestion."""
    type: SuggestionType
    title: str
    description: str
    potential_savings: float
    impact: ImpactLevel
    action: str
    role_id: Optional[str] = None


class OptimizationRequest(BaseModel):
    """Request schema for optimization analysis."""
    roles: List[RoleAssignmentCreate] = []
    project_settings: ProjectSettings = Field(default_factory=ProjectSettings)
    rate_basis: RateBasis = RateBasis.BILL
    exchange_rates: Optional[Dict[str, float]] = Field(
        None,
        description="Rate from each role currency to the target currency; fetched when omitted",
    )
    missing_rate_policy: MissingRatePolicy = MissingRatePolicy.EXCLUDE


class OptimizationResponse(BaseModel):
    """Response schema for optimization analysis."""
    suggestions: List[OptimizationSuggestion]
    rate_analysis: List[RateAnalysis]
    total_potential_savings: float
    currency_impact: List[CurrencyImpact] = []
