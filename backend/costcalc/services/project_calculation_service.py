"""
Project calculation service.
Folds role assignments and project settings into project-wide financials.
"""

import logging
from typing import Dict, List, Optional, Tuple

from costcalc.core.exceptions import ConversionError
from costcalc.schemas.project import (
    CostBreakdownItem,
    MissingRatePolicy,
    MonthlyBreakdown,
    ProjectCalculations,
    ProjectSettings,
)
from costcalc.schemas.role import RoleAssignment
from costcalc.services.base_service import BaseService
from costcalc.services.role_cost_service import RoleCostModel

logger = logging.getLogger(__name__)


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def margin_percentage(billing: float, cost: float) -> float:
    """Margin over billing as a percentage; 0 unless billing is positive."""
    if billing <= 0:
        return 0.0
    return (billing - cost) * 100 / billing


def monthly_run_rate(role: RoleAssignment, monthly_hours: float, use_bill_rate: bool = True) -> float:
    """Cost of one month of the role at its allocation, from the bill or cost rate."""
    rate = role.bill_rate if use_bill_rate else role.hourly_rate
    return rate * role.monthly_allocation * monthly_hours / 100


class ProjectCalculationService(BaseService):
    """Pure aggregation of role costs into ProjectCalculations."""

    def conversion_factor(
        self,
        role: RoleAssignment,
        target_currency: str,
        exchange_rates: Dict[str, float],
        policy: MissingRatePolicy,
    ) -> Tuple[Optional[float], bool]:
        """
        Rate that converts the role's currency into the target currency.

        Returns:
            (factor, degraded); factor is None when the role is excluded
        """
        if role.currency.upper() == target_currency.upper():
            return 1.0, False

        rate = exchange_rates.get(role.currency.upper())
        if rate is not None and rate > 0:
            return rate, False

        if policy == MissingRatePolicy.ASSUME_PARITY:
            logger.warning(f"No {role.currency}->{target_currency} rate; assuming 1:1 for role {role.id}")
            return 1.0, True
        if policy == MissingRatePolicy.EXCLUDE:
            logger.warning(f"No {role.currency}->{target_currency} rate; excluding role {role.id}")
            return None, True
        raise ConversionError(role.currency.upper(), target_currency.upper())

    def calculate(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        exchange_rates: Optional[Dict[str, float]] = None,
        missing_rate_policy: MissingRatePolicy = MissingRatePolicy.RAISE,
    ) -> ProjectCalculations:
        """
        Compute totals, margin, blended rate and the monthly rollup.

        Each role's cost, breakdown and billing are converted into the target
        currency before summation using ``exchange_rates`` (role currency ->
        rate to target).

        Args:
            roles: Role assignments; their derived fields are refreshed in place
            project_settings: Duration and target currency
            exchange_rates: Rate from each role currency to the target currency
            missing_rate_policy: Handling of roles whose currency has no rate

        Returns:
            ProjectCalculations in the target currency
        """
        duration = project_settings.duration_months
        target = project_settings.target_currency
        rates = {code.upper(): rate for code, rate in (exchange_rates or {}).items()}

        total_cost = 0.0
        total_billing = 0.0
        total_hours = 0.0
        month_costs = [0.0] * duration
        month_billings = [0.0] * duration
        degraded: List[str] = []

        for role in roles:
            RoleCostModel(role, duration)
            factor, is_degraded = self.conversion_factor(role, target, rates, missing_rate_policy)
            if is_degraded and role.currency not in degraded:
                degraded.append(role.currency)
            if factor is None:
                continue

            total_cost += role.cost * factor
            total_billing += role.bill_rate * role.total_hours * factor
            total_hours += role.total_hours

            # Monthly billing is scaled from monthly cost by the role's bill/cost ratio
            bill_ratio = safe_ratio(role.bill_rate, role.hourly_rate)
            for index, entry in enumerate(role.monthly_breakdown):
                month_cost = entry.cost * factor
                month_costs[index] += month_cost
                month_billings[index] += month_cost * bill_ratio

        gross_margin = total_billing - total_cost
        monthly_breakdown = [
            MonthlyBreakdown(
                month=index + 1,
                total_cost=month_costs[index],
                total_billing=month_billings[index],
                margin=month_billings[index] - month_costs[index],
                margin_percentage=margin_percentage(month_billings[index], month_costs[index]),
            )
            for index in range(duration)
        ]

        return ProjectCalculations(
            currency=target,
            total_cost=total_cost,
            total_billing=total_billing,
            gross_margin=gross_margin,
            gross_margin_percentage=margin_percentage(total_billing, total_cost),
            total_hours=total_hours,
            blended_rate=safe_ratio(total_billing, total_hours) if total_hours > 0 else 0.0,
            monthly_breakdown=monthly_breakdown,
            degraded_currencies=degraded,
        )

    def cost_breakdown(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        use_bill_rate: bool = True,
        exchange_rates: Optional[Dict[str, float]] = None,
        missing_rate_policy: MissingRatePolicy = MissingRatePolicy.RAISE,
    ) -> List[CostBreakdownItem]:
        """Group monthly run-rate cost in the target currency by role title and location, largest first."""
        monthly_hours = project_settings.monthly_hours_standard
        target = project_settings.target_currency
        rates = {code.upper(): rate for code, rate in (exchange_rates or {}).items()}
        groups: Dict[Tuple[str, str], List[float]] = {}
        for role in roles:
            factor, _ = self.conversion_factor(role, target, rates, missing_rate_policy)
            if factor is None:
                continue
            key = (role.role_title, role.location)
            groups.setdefault(key, []).append(monthly_run_rate(role, monthly_hours, use_bill_rate) * factor)

        grand_total = sum(sum(costs) for costs in groups.values())
        breakdown = [
            CostBreakdownItem(
                role_title=role_title,
                location=location,
                member_count=len(costs),
                total_cost=sum(costs),
                average_cost=sum(costs) / len(costs),
                percentage=safe_ratio(sum(costs), grand_total) * 100,
            )
            for (role_title, location), costs in groups.items()
        ]
        return sorted(breakdown, key=lambda item: item.total_cost, reverse=True)
