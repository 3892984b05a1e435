"""
Optimization advisor tests.
"""

import pytest

from costcalc.schemas.optimization import (
    ImpactLevel,
    MarketRateBand,
    RateBasis,
    RateOptimization,
    SuggestionType,
)
from costcalc.schemas.project import ProjectSettings
from costcalc.schemas.role import RoleAssignment
from costcalc.services.optimization_service import OptimizationService, classify_impact


def _role(**overrides):
    data = {
        "name": "Alice",
        "role_title": "Developer",
        "location": "London",
        "hourly_rate": 60.0,
        "bill_rate": 100.0,
    }
    data.update(overrides)
    return RoleAssignment(**data)


@pytest.fixture
def service():
    return OptimizationService()


def test_suggestions_ordered_by_savings(service):
    roles = [
        _role(id="a", name="A", monthly_allocation=110.0, bill_rate=31.25),
        _role(id="b", name="B", monthly_allocation=110.0, bill_rate=93.75),
        _role(id="c", name="C", monthly_allocation=110.0, bill_rate=18.75),
    ]
    suggestions = service.suggest(roles, ProjectSettings(duration_months=1, monthly_hours_standard=160))

    assert [s.potential_savings for s in suggestions] == pytest.approx([1500, 500, 300])
    assert [s.role_id for s in suggestions] == ["b", "a", "c"]
    assert all(s.type == SuggestionType.ALLOCATION for s in suggestions)
    assert all(s.impact == ImpactLevel.MEDIUM for s in suggestions)


def test_rate_analysis_classification(service):
    roles = [
        _role(id="low", bill_rate=40.0),
        _role(id="ok", bill_rate=90.0),
        _role(id="high", bill_rate=200.0),
    ]
    analysis = {item.role_id: item for item in service.analyze_rates(roles)}

    assert analysis["low"].optimization == RateOptimization.INCREASE
    assert analysis["ok"].optimization == RateOptimization.OPTIMAL
    assert analysis["high"].optimization == RateOptimization.DECREASE
    assert analysis["high"].margin == pytest.approx((80 - 200) / 200 * 100)


def test_zero_rate_margin_is_zero(service):
    analysis = service.analyze_rates([_role(bill_rate=0.0)])
    assert analysis[0].margin == 0


def test_unknown_title_uses_default_band(service):
    band = service.market_band("Astronaut")
    assert (band.min, band.max, band.optimal) == (50, 150, 80)


def test_rate_suggestion_for_overpriced_role(service):
    role = _role(id="pm", role_title="Project Manager", bill_rate=300.0)
    suggestions = service.suggest([role], ProjectSettings(duration_months=2, monthly_hours_standard=160))

    assert len(suggestions) == 1
    suggestion = suggestions[0]
    assert suggestion.type == SuggestionType.RATE
    assert suggestion.potential_savings == pytest.approx((300 - 100) * 100 * 160 / 100 * 2)
    assert suggestion.impact == ImpactLevel.HIGH


def test_cost_rate_basis(service):
    role = _role(hourly_rate=250.0, bill_rate=90.0)
    assert service.suggest([role], ProjectSettings(duration_months=1)) == []

    suggestions = service.suggest([role], ProjectSettings(duration_months=1), rate_basis=RateBasis.COST)
    assert [s.type for s in suggestions] == [SuggestionType.RATE]


def test_location_suggestion(service):
    roles = [
        _role(name="A", location="New York", bill_rate=140.0),
        _role(name="B", location="New York", bill_rate=120.0),
        _role(name="C", location="Lisbon", bill_rate=60.0),
    ]
    suggestions = service.suggest(roles, ProjectSettings(duration_months=3, monthly_hours_standard=160))

    location = [s for s in suggestions if s.type == SuggestionType.LOCATION]
    assert len(location) == 1
    # New York averages 20800/month, Lisbon 9600/month
    assert location[0].potential_savings == pytest.approx((20800 - 9600) * 2 * 3)
    assert location[0].impact == ImpactLevel.HIGH
    assert "Lisbon" in location[0].action


def test_custom_market_rates():
    service = OptimizationService(market_rates={"Developer": MarketRateBand(min=10, max=20, optimal=15)})
    suggestions = service.suggest([_role(bill_rate=30.0)], ProjectSettings(duration_months=1))
    assert suggestions[0].type == SuggestionType.RATE


def test_suggest_does_not_mutate_roles(service):
    role = _role(monthly_allocation=150.0, bill_rate=400.0)
    before = role.model_dump()
    service.suggest([role], ProjectSettings())
    assert role.model_dump() == before


@pytest.mark.parametrize(
    "margin, expected",
    [(-45.0, ImpactLevel.HIGH), (20.0, ImpactLevel.MEDIUM), (-15.0, ImpactLevel.LOW), (0.0, ImpactLevel.LOW)],
)
def test_classify_impact(margin, expected):
    assert classify_impact(margin) == expected


def test_currency_impact(service):
    roles = [
        _role(bill_rate=100.0),
        _role(name="B", currency="EUR", bill_rate=50.0),
    ]
    impact = service.currency_impact(roles, ProjectSettings(target_currency="USD"), {"EUR": 1.1})
    by_code = {item.currency: item for item in impact}

    assert by_code["USD"].impact == 0
    assert by_code["EUR"].total_cost == pytest.approx(8000)
    assert by_code["EUR"].converted_cost == pytest.approx(8800)
    assert by_code["EUR"].impact == pytest.approx(10)
    assert impact[0].currency == "EUR"


def test_suggest_compares_rates_in_target_currency(service):
    roles = [
        _role(id="ny", name="A", location="New York", bill_rate=100.0),
        _role(id="pune", name="B", location="Pune", currency="INR", hourly_rate=5000.0, bill_rate=8000.0),
    ]
    suggestions = service.suggest(
        roles,
        ProjectSettings(duration_months=1, monthly_hours_standard=160, target_currency="USD"),
        exchange_rates={"INR": 0.012},
    )

    # 8000 INR/h is 96 USD/h, inside the Developer band
    assert [s.type for s in suggestions] == [SuggestionType.LOCATION]
    assert "Pune" in suggestions[0].action
    assert suggestions[0].potential_savings == pytest.approx(16000 - 15360)


def test_analyze_rates_converts_to_target_currency(service):
    role = _role(id="pune", currency="INR", bill_rate=8000.0)
    analysis = service.analyze_rates([role], target_currency="USD", exchange_rates={"INR": 0.012})

    assert analysis[0].current_rate == pytest.approx(96)
    assert analysis[0].optimization == RateOptimization.OPTIMAL


def test_suggest_excludes_roles_without_rate(service):
    role = _role(currency="INR", bill_rate=8000.0, monthly_allocation=150.0)
    assert service.suggest([role], ProjectSettings(target_currency="USD"), exchange_rates={}) == []


def test_normalize_roles_keeps_originals(service):
    role = _role(currency="EUR", hourly_rate=50.0, bill_rate=60.0)
    normalized = service.normalize_roles([role], "USD", {"EUR": 1.1})

    assert normalized[0].currency == "USD"
    assert normalized[0].bill_rate == pytest.approx(66)
    assert normalized[0].hourly_rate == pytest.approx(55)
    assert role.currency == "EUR"


def test_equal_savings_keep_higher_impact_first():
    service = OptimizationService(
        market_rates={
            "Developer": MarketRateBand(min=50, max=150, optimal=80),
            "Architect": MarketRateBand(min=500, max=1500, optimal=1000),
        }
    )
    roles = [
        _role(id="arch", name="A", role_title="Architect", bill_rate=1000.0, monthly_allocation=110.0),
        _role(id="dev", name="B", bill_rate=180.0),
    ]
    suggestions = service.suggest(roles, ProjectSettings(duration_months=1, monthly_hours_standard=160))

    assert [s.potential_savings for s in suggestions] == [16000, 16000]
    assert [(s.type, s.impact) for s in suggestions] == [
        (SuggestionType.RATE, ImpactLevel.HIGH),
        (SuggestionType.ALLOCATION, ImpactLevel.MEDIUM),
    ]
