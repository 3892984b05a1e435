"""
Role cost model.
Computes a single role assignment's cost and its month-by-month schedule.
"""

from typing import Any, List, Optional

from costcalc.core.exceptions import InvalidInput
from costcalc.schemas.role import (
    MonthlyAllocation,
    RoleAssignment,
    RoleAssignmentCreate,
    RoleCatalogEntry,
)

# Editing any of these invalidates cost and monthly_breakdown
_COST_FIELDS = {"hourly_rate", "total_hours"}
_BREAKDOWN_FIELDS = {"hourly_rate", "total_hours", "monthly_allocation", "allocation_overrides"}
_DERIVED_FIELDS = {"id", "cost", "monthly_breakdown"}


class RoleCostModel:
    """Wraps a RoleAssignment and keeps its derived values in step with its inputs."""

    def __init__(self, role: RoleAssignment, duration_months: Optional[int] = None):
        self.role = role
        self.duration_months = duration_months
        self.recompute_cost()
        if duration_months is not None:
            self.recompute_monthly_breakdown(duration_months)

    @classmethod
    def from_create(
        cls,
        role_data: RoleAssignmentCreate,
        duration_months: Optional[int] = None,
    ) -> "RoleCostModel":
        """Build a model from create input, keeping a caller-provided id."""
        role_dict = role_data.model_dump(exclude_none=True)
        return cls(RoleAssignment(**role_dict), duration_months)

    def recompute_cost(self) -> float:
        """Set ``cost = hourly_rate * total_hours``."""
        self.role.cost = self.role.hourly_rate * self.role.total_hours
        return self.role.cost

    def allocation_for_month(self, month: int) -> float:
        """Allocation percent for a 1-based month, honouring per-month overrides."""
        return self.role.allocation_overrides.get(month, self.role.monthly_allocation)

    def recompute_monthly_breakdown(self, duration_months: int) -> List[MonthlyAllocation]:
        """
        Split total hours evenly across the project months, scaled by allocation.

        Args:
            duration_months: Project duration; must be at least 1

        Returns:
            The new breakdown, also stored on the role
        """
        if duration_months < 1:
            raise InvalidInput(
                "duration_months must be at least 1",
                details={"duration_months": duration_months},
            )

        self.duration_months = duration_months
        hours_per_month = self.role.total_hours / duration_months
        breakdown = []
        for month in range(1, duration_months + 1):
            allocation = self.allocation_for_month(month)
            hours = hours_per_month * (allocation / 100)
            breakdown.append(
                MonthlyAllocation(
                    month=month,
                    allocation_percentage=allocation,
                    hours=hours,
                    cost=hours * self.role.hourly_rate,
                )
            )
        self.role.monthly_breakdown = breakdown
        return breakdown

    def update(self, **changes: Any) -> RoleAssignment:
        """Edit role fields and re-trigger the affected recomputations."""
        unknown = set(changes) - set(RoleAssignment.model_fields)
        if unknown:
            raise InvalidInput(f"Unknown role fields: {sorted(unknown)}")
        derived = set(changes) & _DERIVED_FIELDS
        if derived:
            raise InvalidInput(f"Derived role fields cannot be edited: {sorted(derived)}")

        for field, value in changes.items():
            if field == "currency" and isinstance(value, str):
                value = value.upper()
            setattr(self.role, field, value)

        if _COST_FIELDS & set(changes):
            self.recompute_cost()
        if _BREAKDOWN_FIELDS & set(changes) and self.duration_months is not None:
            self.recompute_monthly_breakdown(self.duration_months)
        return self.role


def role_from_catalog(
    entry: RoleCatalogEntry,
    name: str,
    location: str = "",
    bill_rate: Optional[float] = None,
    monthly_allocation: float = 100.0,
    total_hours: float = 0.0,
    role_id: Optional[str] = None,
    duration_months: Optional[int] = None,
) -> RoleCostModel:
    """
    Pre-populate a role assignment from a catalog record.

    The catalog base rate becomes the initial hourly (cost) rate; the bill rate
    defaults to the same value until the caller sets it.
    """
    role = RoleAssignment(
        name=name,
        role_title=entry.name,
        role_id=role_id,
        location=location,
        hourly_rate=entry.base_rate,
        bill_rate=entry.base_rate if bill_rate is None else bill_rate,
        monthly_allocation=monthly_allocation,
        total_hours=total_hours,
        currency=entry.currency,
    )
    return RoleCostModel(role, duration_months)
