"""
Project service tests: timeout-tagged rate lookups, degraded creation and edits.
"""

import pytest

from costcalc.core.exceptions import ConversionError, InvalidInput, ProjectNotFound
from costcalc.db.repositories.project_repository import ProjectRepository
from costcalc.schemas.project import (
    MissingRatePolicy,
    ProjectCalculateRequest,
    ProjectCreate,
    ProjectSettings,
    ProjectUpdate,
)
from costcalc.schemas.role import RoleAssignmentCreate
from costcalc.services.project_service import ProjectService, RateLookupStatus


def _role(**overrides):
    data = {
        "name": "Alice",
        "role_title": "Developer",
        "hourly_rate": 75.0,
        "bill_rate": 97.5,
        "total_hours": 80.0,
    }
    data.update(overrides)
    return RoleAssignmentCreate(**data)


@pytest.mark.asyncio
async def test_lookup_ok(project_service):
    result = await project_service.lookup_rate_with_timeout("EUR", "USD")

    assert result.status == RateLookupStatus.OK
    assert result.ok
    assert result.snapshot.rate == 1.1


@pytest.mark.asyncio
async def test_lookup_timed_out(project_service, primary_source):
    primary_source.delay = 0.5

    result = await project_service.lookup_rate_with_timeout("EUR", "USD", timeout=0.01)

    assert result.status == RateLookupStatus.TIMED_OUT
    assert result.snapshot is None
    assert result.rate_or(1.0) == 1.0


@pytest.mark.asyncio
async def test_lookup_failed(project_service, primary_source, fallback_source):
    primary_source.fail = True
    fallback_source.fail = True

    result = await project_service.lookup_rate_with_timeout("EUR", "USD")

    assert result.status == RateLookupStatus.FAILED
    assert "EUR->USD" in result.reason


@pytest.mark.asyncio
async def test_create_project_with_live_rates(project_service):
    project = await project_service.create_project(
        ProjectCreate(
            name="Migration",
            roles=[_role(), _role(name="Bob", currency="EUR", hourly_rate=50.0, bill_rate=60.0, total_hours=10.0)],
            project_settings=ProjectSettings(duration_months=1, exchange_rate_base_currency="EUR"),
        )
    )

    assert project.exchange_rate == 1.1
    assert project.exchange_rates == {"EUR": 1.1}
    assert project.exchange_rate_degraded is False
    assert project.calculations.total_cost == pytest.approx(6000 + 550)
    assert await project_service.get_project(project.id) == project


@pytest.mark.asyncio
async def test_create_project_degrades_on_timeout(exchange_rate_service, primary_source):
    primary_source.delay = 0.5
    service = ProjectService(exchange_rate_service, ProjectRepository(), rate_timeout=0.01)

    project = await service.create_project(
        ProjectCreate(
            name="Slow rates",
            roles=[_role(), _role(name="Bob", currency="GBP")],
            project_settings=ProjectSettings(duration_months=1, exchange_rate_base_currency="EUR"),
        )
    )

    assert project.exchange_rate == 1.0
    assert project.exchange_rate_degraded is True
    assert "timed out" in project.exchange_rate_note
    assert project.calculations.degraded_currencies == ["GBP"]
    assert project.calculations.total_cost == 12000


@pytest.mark.asyncio
async def test_create_project_degrades_on_failure(project_service, primary_source, fallback_source):
    primary_source.fail = True
    fallback_source.fail = True

    project = await project_service.create_project(
        ProjectCreate(
            name="Offline",
            roles=[_role()],
            project_settings=ProjectSettings(target_currency="GBP", exchange_rate_base_currency="USD"),
        )
    )

    assert project.exchange_rate == 1.0
    assert project.exchange_rate_degraded is True
    assert project.rate_snapshots == []


@pytest.mark.asyncio
async def test_calculate_uses_supplied_rates(project_service, primary_source):
    response = await project_service.calculate(
        ProjectCalculateRequest(
            roles=[_role(currency="EUR")],
            project_settings=ProjectSettings(duration_months=1),
            exchange_rates={"EUR": 2.0},
        )
    )

    assert primary_source.calls == 0
    assert response.calculations.total_cost == 12000


@pytest.mark.asyncio
async def test_calculate_raises_when_rate_missing(project_service, primary_source, fallback_source):
    primary_source.fail = True
    fallback_source.fail = True

    with pytest.raises(ConversionError):
        await project_service.calculate(
            ProjectCalculateRequest(roles=[_role(currency="EUR")], missing_rate_policy=MissingRatePolicy.RAISE)
        )


@pytest.mark.asyncio
async def test_role_edits_recompute_totals(project_service):
    project = await project_service.create_project(
        ProjectCreate(name="Edits", roles=[_role(id="r1")], project_settings=ProjectSettings(duration_months=2))
    )

    project = await project_service.add_role(project.id, _role(id="r2", hourly_rate=50.0, total_hours=20.0))
    assert project.calculations.total_cost == 6000 + 1000
    assert len(project.roles) == 2

    with pytest.raises(InvalidInput):
        await project_service.add_role(project.id, _role(id="r2"))

    project = await project_service.remove_role(project.id, "r1")
    assert project.calculations.total_cost == 1000
    assert await project_service.remove_role(project.id, "missing") is None


@pytest.mark.asyncio
async def test_update_project(project_service):
    project = await project_service.create_project(ProjectCreate(name="Before", roles=[_role()]))

    updated = await project_service.update_project(
        project.id,
        ProjectUpdate(name="After", project_settings=ProjectSettings(duration_months=4)),
    )

    assert updated.name == "After"
    assert len(updated.calculations.monthly_breakdown) == 4
    assert len(updated.roles[0].monthly_breakdown) == 4
    assert updated.created_at == project.created_at


@pytest.mark.asyncio
async def test_unknown_project(project_service):
    with pytest.raises(ProjectNotFound):
        await project_service.update_project("nope", ProjectUpdate(name="x"))
    assert await project_service.get_project("nope") is None
    assert await project_service.delete_project("nope") is False


@pytest.mark.asyncio
async def test_list_projects_by_currency(project_service):
    await project_service.create_project(ProjectCreate(name="A", project_settings=ProjectSettings(target_currency="USD")))
    await project_service.create_project(ProjectCreate(name="B", project_settings=ProjectSettings(target_currency="EUR")))

    projects, total = await project_service.list_projects()
    assert total == 2

    projects, total = await project_service.list_projects(currency="eur")
    assert total == 1
    assert projects[0].name == "B"


@pytest.mark.asyncio
async def test_duplicate_role_ids_rejected(project_service):
    roles = [_role(id="x"), _role(id="x", name="Bob")]

    with pytest.raises(InvalidInput):
        await project_service.create_project(ProjectCreate(name="Dupes", roles=roles))
    with pytest.raises(InvalidInput):
        await project_service.calculate(ProjectCalculateRequest(roles=roles))

    projects, total = await project_service.list_projects()
    assert total == 0


@pytest.mark.asyncio
async def test_expired_cached_rates_mark_project_degraded(project_service, primary_source, fallback_source, clock):
    data = ProjectCreate(
        name="Cached",
        roles=[_role(), _role(name="Bob", currency="EUR")],
        project_settings=ProjectSettings(duration_months=1, exchange_rate_base_currency="EUR"),
    )
    fresh = await project_service.create_project(data)
    assert fresh.exchange_rate_degraded is False

    clock.advance(3600)
    primary_source.fail = True
    fallback_source.fail = True
    project = await project_service.create_project(data)

    assert project.exchange_rate == 1.1
    assert project.exchange_rates == {"EUR": 1.1}
    assert project.exchange_rate_degraded is True
    assert "EUR->USD: using expired cached rate" in project.exchange_rate_note
    assert all(snapshot.stale for snapshot in project.rate_snapshots)
