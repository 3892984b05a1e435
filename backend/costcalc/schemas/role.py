"""
Role assignment Pydantic schemas.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from uuid import uuid4


def _new_role_id() -> str:
    return uuid4().hex


class MonthlyAllocation(BaseModel):
    """One month of a role's pro-rated schedule."""
    month: int = Field(..., ge=1)
    allocation_percentage: float
    hours: float
    cost: float


class RoleAssignmentBase(BaseModel):
    """Base schema for a billed role on a project."""
    name: str = Field(..., min_length=1, max_length=255)
    role_title: str = Field(..., min_length=1, max_length=100)
    role_id: Optional[str] = None
    location: str = Field(default="", max_length=100)
    hourly_rate: float = Field(..., description="Internal cost per hour in the role's currency")
    bill_rate: float = Field(..., description="Client-facing rate per hour in the role's currency")
    monthly_allocation: float = Field(default=100.0, description="Percent of a standard month; may exceed 100")
    total_hours: float = Field(default=0.0, description="Hours across the full project duration")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    allocation_overrides: Dict[int, float] = Field(
        default_factory=dict,
        description="Per-month allocation percent keyed by 1-based month; overrides monthly_allocation",
    )

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class RoleAssignmentCreate(RoleAssignmentBase):
    """Create schema for a role assignment."""
    id: Optional[str] = None


class RoleAssignment(RoleAssignmentBase):
    """A role assignment with its derived cost and monthly schedule."""
    id: str = Field(default_factory=_new_role_id)
    cost: float = 0.0
    monthly_breakdown: List[MonthlyAllocation] = []


class RoleCatalogEntry(BaseModel):
    """Reference record from the external role catalog."""
    name: str = Field(..., min_length=1, max_length=100)
    base_rate: float
    currency: str = Field(default="USD", min_length=3, max_length=3)
    category: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()
