"""
Optimization service.
Compares role rates and allocations against reference bands and emits
non-binding cost-saving suggestions. Never mutates the roles it inspects.
"""

import logging
from typing import Dict, List, Optional

from costcalc.core.config import settings
from costcalc.schemas.optimization import (
    CurrencyImpact,
    ImpactLevel,
    MarketRateBand,
    OptimizationSuggestion,
    RateAnalysis,
    RateBasis,
    RateOptimization,
    SuggestionType,
)
from costcalc.schemas.project import MissingRatePolicy, ProjectSettings
from costcalc.schemas.role import RoleAssignment
from costcalc.services.base_service import BaseService
from costcalc.services.project_calculation_service import (
    ProjectCalculationService,
    monthly_run_rate,
    safe_ratio,
)
from costcalc.utils.currency_converter import convert

logger = logging.getLogger(__name__)

MARKET_RATES: Dict[str, MarketRateBand] = {
    "Developer": MarketRateBand(min=50, max=150, optimal=80),
    "Designer": MarketRateBand(min=40, max=120, optimal=70),
    "Project Manager": MarketRateBand(min=60, max=180, optimal=100),
    "QA Engineer": MarketRateBand(min=45, max=130, optimal=75),
    "DevOps Engineer": MarketRateBand(min=70, max=200, optimal=120),
}
DEFAULT_MARKET_RATE = MarketRateBand(min=50, max=150, optimal=80)

_IMPACT_RANK = {ImpactLevel.LOW: 0, ImpactLevel.MEDIUM: 1, ImpactLevel.HIGH: 2}


def classify_impact(margin: float) -> ImpactLevel:
    """Impact from the magnitude of a rate's distance to its market optimum."""
    magnitude = abs(margin)
    if magnitude > 30:
        return ImpactLevel.HIGH
    if magnitude > 15:
        return ImpactLevel.MEDIUM
    return ImpactLevel.LOW


class OptimizationService(BaseService):
    """Advisory analysis over a project's roles."""

    def __init__(
        self,
        market_rates: Optional[Dict[str, MarketRateBand]] = None,
        default_band: MarketRateBand = DEFAULT_MARKET_RATE,
        calculation_service: Optional[ProjectCalculationService] = None,
    ):
        self.market_rates = MARKET_RATES if market_rates is None else market_rates
        self.default_band = default_band
        self.calculation_service = calculation_service or ProjectCalculationService()

    def market_band(self, role_title: str) -> MarketRateBand:
        return self.market_rates.get(role_title, self.default_band)

    def normalize_roles(
        self,
        roles: List[RoleAssignment],
        target_currency: str,
        exchange_rates: Optional[Dict[str, float]] = None,
        missing_rate_policy: MissingRatePolicy = MissingRatePolicy.EXCLUDE,
    ) -> List[RoleAssignment]:
        """
        Copies of the roles with rates and cost expressed in the target currency.

        Market bands and savings are in the target currency, so every comparison
        runs on these copies. Roles without a rate follow ``missing_rate_policy``.
        """
        target = target_currency.upper()
        rates = {code.upper(): rate for code, rate in (exchange_rates or {}).items()}
        normalized = []
        for role in roles:
            factor, _ = self.calculation_service.conversion_factor(role, target, rates, missing_rate_policy)
            if factor is None:
                continue
            normalized.append(
                role.model_copy(
                    update={
                        "hourly_rate": convert(role.hourly_rate, role.currency, target, factor),
                        "bill_rate": convert(role.bill_rate, role.currency, target, factor),
                        "cost": convert(role.cost, role.currency, target, factor),
                        "currency": target,
                    }
                )
            )
        return normalized

    @staticmethod
    def _rate(role: RoleAssignment, rate_basis: RateBasis) -> float:
        return role.bill_rate if rate_basis == RateBasis.BILL else role.hourly_rate

    def analyze_rates(
        self,
        roles: List[RoleAssignment],
        monthly_hours: float = settings.DEFAULT_MONTHLY_HOURS,
        rate_basis: RateBasis = RateBasis.BILL,
        target_currency: Optional[str] = None,
        exchange_rates: Optional[Dict[str, float]] = None,
        missing_rate_policy: MissingRatePolicy = MissingRatePolicy.EXCLUDE,
    ) -> List[RateAnalysis]:
        """
        Position every role's rate in its market band, largest margin first.

        With ``target_currency`` set, rates are first converted into it.
        """
        if target_currency is not None:
            roles = self.normalize_roles(roles, target_currency, exchange_rates, missing_rate_policy)
        analysis = []
        for role in roles:
            band = self.market_band(role.role_title)
            rate = self._rate(role, rate_basis)

            if rate < band.min:
                optimization = RateOptimization.INCREASE
            elif rate > band.max:
                optimization = RateOptimization.DECREASE
            else:
                optimization = RateOptimization.OPTIMAL

            analysis.append(
                RateAnalysis(
                    role_id=role.id,
                    name=role.name,
                    role_title=role.role_title,
                    current_rate=rate,
                    cost_per_month=rate * role.monthly_allocation * monthly_hours / 100,
                    suggested_rate=band.optimal,
                    margin=safe_ratio(band.optimal - rate, rate) * 100,
                    optimization=optimization,
                )
            )
        return sorted(analysis, key=lambda item: abs(item.margin), reverse=True)

    def _rate_suggestions(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        rate_basis: RateBasis,
    ) -> List[OptimizationSuggestion]:
        by_id = {role.id: role for role in roles}
        suggestions = []
        for item in self.analyze_rates(roles, project_settings.monthly_hours_standard, rate_basis):
            if item.optimization != RateOptimization.DECREASE:
                continue
            role = by_id[item.role_id]
            savings = (
                (item.current_rate - item.suggested_rate)
                * role.monthly_allocation
                * project_settings.monthly_hours_standard
                / 100
                * project_settings.duration_months
            )
            suggestions.append(
                OptimizationSuggestion(
                    type=SuggestionType.RATE,
                    title=f"Optimize {item.name}'s rate",
                    description=(
                        f"Consider reducing {item.name}'s rate from {item.current_rate} to "
                        f"{item.suggested_rate} for better market alignment"
                    ),
                    potential_savings=savings,
                    impact=classify_impact(item.margin),
                    action=f"Reduce rate to {item.suggested_rate}",
                    role_id=item.role_id,
                )
            )
        return suggestions

    def _allocation_suggestions(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        rate_basis: RateBasis,
    ) -> List[OptimizationSuggestion]:
        suggestions = []
        for role in roles:
            if role.monthly_allocation <= 100:
                continue
            savings = (
                (role.monthly_allocation - 100)
                * self._rate(role, rate_basis)
                * project_settings.monthly_hours_standard
                / 100
                * project_settings.duration_months
            )
            suggestions.append(
                OptimizationSuggestion(
                    type=SuggestionType.ALLOCATION,
                    title=f"Review {role.name}'s allocation",
                    description=f"{role.name} has {role.monthly_allocation}% allocation which exceeds 100%",
                    potential_savings=savings,
                    impact=ImpactLevel.MEDIUM,
                    action="Reduce allocation to 100%",
                    role_id=role.id,
                )
            )
        return suggestions

    def _location_suggestions(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        rate_basis: RateBasis,
    ) -> List[OptimizationSuggestion]:
        breakdown = self.calculation_service.cost_breakdown(
            roles,
            project_settings,
            use_bill_rate=rate_basis == RateBasis.BILL,
        )
        totals: Dict[str, float] = {}
        counts: Dict[str, int] = {}
        for item in breakdown:
            totals[item.location] = totals.get(item.location, 0.0) + item.total_cost
            counts[item.location] = counts.get(item.location, 0) + item.member_count

        if len(totals) < 2:
            return []

        averages = sorted(
            ((location, totals[location] / counts[location]) for location in totals),
            key=lambda pair: pair[1],
            reverse=True,
        )
        expensive, expensive_avg = averages[0]
        affordable, affordable_avg = averages[-1]
        savings = (expensive_avg - affordable_avg) * counts[expensive] * project_settings.duration_months
        if savings <= 0:
            return []

        return [
            OptimizationSuggestion(
                type=SuggestionType.LOCATION,
                title="Consider location-based optimization",
                description=f"{expensive} has higher average costs than {affordable}",
                potential_savings=savings,
                impact=ImpactLevel.HIGH,
                action=f"Consider relocating some team members to {affordable}",
            )
        ]

    def suggest(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        rate_basis: RateBasis = RateBasis.BILL,
        exchange_rates: Optional[Dict[str, float]] = None,
        missing_rate_policy: MissingRatePolicy = MissingRatePolicy.EXCLUDE,
    ) -> List[OptimizationSuggestion]:
        """
        Build rate, allocation and location suggestions.

        Args:
            roles: Role assignments in any currency
            project_settings: Duration, monthly hours and target currency
            rate_basis: Compare bill rates or cost rates against market bands
            exchange_rates: Rate from each role currency to the target currency
            missing_rate_policy: Handling of roles whose currency has no rate

        Returns:
            Suggestions ordered by potential savings in the target currency,
            highest first; equal savings keep the higher impact first
        """
        roles = self.normalize_roles(
            roles,
            project_settings.target_currency,
            exchange_rates,
            missing_rate_policy,
        )
        suggestions = (
            self._rate_suggestions(roles, project_settings, rate_basis)
            + self._allocation_suggestions(roles, project_settings, rate_basis)
            + self._location_suggestions(roles, project_settings, rate_basis)
        )
        logger.debug(f"Generated {len(suggestions)} optimization suggestions")
        return sorted(
            suggestions,
            key=lambda s: (s.potential_savings, _IMPACT_RANK[s.impact]),
            reverse=True,
        )

    def currency_impact(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        exchange_rates: Dict[str, float],
    ) -> List[CurrencyImpact]:
        """
        Monthly run-rate cost per currency and its value in the project currency.

        Currencies without a rate are reported at parity with zero impact.
        """
        target = project_settings.target_currency.upper()
        monthly_hours = project_settings.monthly_hours_standard
        rates = {code.upper(): rate for code, rate in exchange_rates.items()}

        groups: Dict[str, float] = {}
        for role in roles:
            code = role.currency.upper()
            groups[code] = groups.get(code, 0.0) + monthly_run_rate(role, monthly_hours)

        impact = []
        for code, total in groups.items():
            rate = 1.0 if code == target else rates.get(code)
            if rate is None:
                logger.warning(f"No exchange rate for {code}->{target}; reporting at parity")
                rate = 1.0
            converted = total * rate
            impact.append(
                CurrencyImpact(
                    currency=code,
                    total_cost=total,
                    converted_cost=converted,
                    exchange_rate=rate,
                    impact=safe_ratio(converted - total, total) * 100,
                )
            )
        return sorted(impact, key=lambda item: abs(item.impact), reverse=True)
