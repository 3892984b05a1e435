"""
Project service with business logic.

Creating or editing a project fetches the exchange rates it needs through a
timeout-bounded lookup. A lookup that times out or fails never blocks the
operation: the project falls back to a 1:1 rate and records the degradation.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from costcalc.core.config import settings
from costcalc.core.exceptions import InvalidInput, ProjectNotFound, RateUnavailable
from costcalc.db.repositories.project_repository import ProjectRepository
from costcalc.schemas.currency_rate import ExchangeRateSnapshot
from costcalc.schemas.project import (
    MissingRatePolicy,
    ProjectCalculateRequest,
    ProjectCalculateResponse,
    ProjectCalculations,
    ProjectCreate,
    ProjectResponse,
    ProjectSettings,
    ProjectUpdate,
)
from costcalc.schemas.role import RoleAssignment, RoleAssignmentCreate
from costcalc.services.base_service import BaseService
from costcalc.services.exchange_rate_service import ExchangeRateService
from costcalc.services.project_calculation_service import ProjectCalculationService
from costcalc.services.role_cost_service import RoleCostModel

logger = logging.getLogger(__name__)


class RateLookupStatus(str, enum.Enum):
    """Outcome of a timeout-bounded rate lookup."""
    OK = "ok"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True)
class RateLookupResult:
    status: RateLookupStatus
    snapshot: Optional[ExchangeRateSnapshot] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == RateLookupStatus.OK

    def rate_or(self, default: float) -> float:
        return self.snapshot.rate if self.snapshot is not None else default


@dataclass
class RateCollection:
    rates: Dict[str, float]
    snapshots: List[ExchangeRateSnapshot]
    failures: Dict[str, str]
    stale: Dict[str, str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _stale_reason(snapshot: ExchangeRateSnapshot) -> str:
    return f"using expired cached rate from {snapshot.timestamp.isoformat()}"


class ProjectService(BaseService):
    """Service for project calculation and persistence."""

    def __init__(
        self,
        exchange_rate_service: ExchangeRateService,
        project_repo: ProjectRepository,
        calculation_service: Optional[ProjectCalculationService] = None,
        rate_timeout: float = settings.PROJECT_RATE_TIMEOUT_SECONDS,
    ):
        self.exchange_rate_service = exchange_rate_service
        self.project_repo = project_repo
        self.calculation_service = calculation_service or ProjectCalculationService()
        self.rate_timeout = rate_timeout

    async def lookup_rate_with_timeout(
        self,
        from_currency: str,
        to_currency: str,
        timeout: Optional[float] = None,
    ) -> RateLookupResult:
        """Race a rate lookup against a timeout and tag the outcome."""
        timeout = self.rate_timeout if timeout is None else timeout
        try:
            snapshot = await asyncio.wait_for(
                self.exchange_rate_service.get_rate(from_currency, to_currency),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Exchange rate lookup {from_currency}->{to_currency} timed out after {timeout}s")
            return RateLookupResult(
                status=RateLookupStatus.TIMED_OUT,
                reason=f"Rate lookup timed out after {timeout}s",
            )
        except RateUnavailable as e:
            logger.warning(f"Exchange rate lookup {from_currency}->{to_currency} failed: {e.message}")
            return RateLookupResult(status=RateLookupStatus.FAILED, reason=e.message)
        return RateLookupResult(status=RateLookupStatus.OK, snapshot=snapshot)

    async def collect_role_rates(self, roles: List[RoleAssignment], target_currency: str) -> RateCollection:
        """Look up a rate to the target currency for every foreign role currency."""
        currencies = sorted({role.currency.upper() for role in roles} - {target_currency.upper()})
        results = await asyncio.gather(
            *(self.lookup_rate_with_timeout(code, target_currency) for code in currencies)
        )

        collection = RateCollection(rates={}, snapshots=[], failures={}, stale={})
        for code, result in zip(currencies, results):
            if result.ok:
                collection.rates[code] = result.snapshot.rate
                collection.snapshots.append(result.snapshot)
                if result.snapshot.stale:
                    collection.stale[code] = _stale_reason(result.snapshot)
            else:
                collection.failures[code] = result.reason or result.status.value
        return collection

    @staticmethod
    def _ensure_unique_ids(roles: List[RoleAssignment]) -> None:
        seen = set()
        for role in roles:
            if role.id in seen:
                raise InvalidInput(f"Duplicate role id {role.id}", details={"role_id": role.id})
            seen.add(role.id)

    def build_roles(self, roles: List[RoleAssignmentCreate], duration_months: int) -> List[RoleAssignment]:
        """Build role assignments with derived values; role ids must be unique."""
        built = [RoleCostModel.from_create(role, duration_months).role for role in roles]
        self._ensure_unique_ids(built)
        return built

    async def calculate(self, request: ProjectCalculateRequest) -> ProjectCalculateResponse:
        """Stateless calculation; rates are fetched only when the request omits them."""
        project_settings = request.project_settings
        roles = self.build_roles(request.roles, project_settings.duration_months)

        exchange_rates = request.exchange_rates
        if exchange_rates is None:
            collection = await self.collect_role_rates(roles, project_settings.target_currency)
            exchange_rates = collection.rates

        calculations = self.calculation_service.calculate(
            roles,
            project_settings,
            exchange_rates=exchange_rates,
            missing_rate_policy=request.missing_rate_policy,
        )
        return ProjectCalculateResponse(
            roles=roles,
            project_settings=project_settings,
            calculations=calculations,
            exchange_rates=exchange_rates,
        )

    async def _compute(
        self,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        policy: MissingRatePolicy,
    ) -> Tuple[ProjectCalculations, Dict]:
        """Fetch rates with degradation and compute aggregates for a project."""
        base = project_settings.exchange_rate_base_currency or project_settings.target_currency
        target = project_settings.target_currency

        project_rate = await self.lookup_rate_with_timeout(base, target)
        collection = await self.collect_role_rates(roles, target)

        notes = []
        if not project_rate.ok:
            notes.append(f"{base}->{target}: {project_rate.reason}; using 1:1")
        elif project_rate.snapshot.stale:
            notes.append(f"{base}->{target}: {_stale_reason(project_rate.snapshot)}")
        notes.extend(f"{code}->{target}: {reason}" for code, reason in collection.failures.items())
        notes.extend(f"{code}->{target}: {reason}" for code, reason in collection.stale.items())

        calculations = self.calculation_service.calculate(
            roles,
            project_settings,
            exchange_rates=collection.rates,
            missing_rate_policy=policy,
        )

        snapshots = list(collection.snapshots)
        if project_rate.snapshot is not None:
            snapshots.insert(0, project_rate.snapshot)

        rate_fields = {
            "exchange_rate": project_rate.rate_or(1.0),
            "exchange_rates": collection.rates,
            "rate_snapshots": snapshots,
            "exchange_rate_degraded": bool(notes),
            "exchange_rate_note": "; ".join(notes) or None,
        }
        if notes:
            logger.warning(f"Project computed with degraded exchange rates: {rate_fields['exchange_rate_note']}")
        return calculations, rate_fields

    async def create_project(self, project_data: ProjectCreate) -> ProjectResponse:
        """Compute and persist a new project."""
        project_settings = project_data.project_settings
        roles = self.build_roles(project_data.roles, project_settings.duration_months)
        calculations, rate_fields = await self._compute(roles, project_settings, project_data.missing_rate_policy)

        now = _now()
        project = ProjectResponse(
            id=uuid4().hex,
            name=project_data.name,
            description=project_data.description,
            roles=roles,
            project_settings=project_settings,
            calculations=calculations,
            missing_rate_policy=project_data.missing_rate_policy,
            created_at=now,
            updated_at=now,
            **rate_fields,
        )
        project = await self.project_repo.create(project)
        logger.info(
            f"Created project {project.id}",
            extra={"roles": len(roles), "total_cost": calculations.total_cost},
        )
        return project

    async def get_project(self, project_id: str) -> Optional[ProjectResponse]:
        """Get project by ID."""
        return await self.project_repo.get(project_id)

    async def list_projects(
        self,
        skip: int = 0,
        limit: int = 100,
        currency: Optional[str] = None,
    ) -> Tuple[List[ProjectResponse], int]:
        """List projects with pagination, optionally only those reported in one currency."""
        if currency:
            projects = await self.project_repo.list_by_currency(currency, skip=skip, limit=limit)
            total = await self.project_repo.count_by_currency(currency)
            return projects, total
        projects = await self.project_repo.list(skip=skip, limit=limit)
        total = await self.project_repo.count()
        return projects, total

    async def _recompute_and_save(
        self,
        project: ProjectResponse,
        roles: List[RoleAssignment],
        project_settings: ProjectSettings,
        policy: MissingRatePolicy,
        **changes,
    ) -> ProjectResponse:
        calculations, rate_fields = await self._compute(roles, project_settings, policy)
        updated = project.model_copy(
            update={
                "roles": roles,
                "project_settings": project_settings,
                "calculations": calculations,
                "missing_rate_policy": policy,
                "updated_at": _now(),
                **rate_fields,
                **changes,
            }
        )
        return await self.project_repo.update(updated)

    async def _require(self, project_id: str) -> ProjectResponse:
        project = await self.project_repo.get(project_id)
        if not project:
            raise ProjectNotFound(project_id)
        return project

    async def update_project(self, project_id: str, project_data: ProjectUpdate) -> ProjectResponse:
        """Apply edits and recompute every derived value."""
        project = await self._require(project_id)
        project_settings = project_data.project_settings or project.project_settings

        if project_data.roles is not None:
            roles = self.build_roles(project_data.roles, project_settings.duration_months)
        else:
            roles = [role.model_copy(deep=True) for role in project.roles]

        changes = project_data.model_dump(include={"name", "description"}, exclude_unset=True)
        return await self._recompute_and_save(
            project,
            roles,
            project_settings,
            project_data.missing_rate_policy,
            **changes,
        )

    async def add_role(self, project_id: str, role_data: RoleAssignmentCreate) -> ProjectResponse:
        """Add a role to a project and recompute."""
        project = await self._require(project_id)
        duration = project.project_settings.duration_months
        new_role = RoleCostModel.from_create(role_data, duration).role
        if any(role.id == new_role.id for role in project.roles):
            raise InvalidInput(f"Role {new_role.id} already exists on project", details={"role_id": new_role.id})

        roles = [role.model_copy(deep=True) for role in project.roles] + [new_role]
        return await self._recompute_and_save(
            project,
            roles,
            project.project_settings,
            project.missing_rate_policy,
        )

    async def remove_role(self, project_id: str, role_id: str) -> Optional[ProjectResponse]:
        """Delete a role by id and recompute; None when the role is unknown."""
        project = await self._require(project_id)
        roles = [role.model_copy(deep=True) for role in project.roles if role.id != role_id]
        if len(roles) == len(project.roles):
            return None
        return await self._recompute_and_save(
            project,
            roles,
            project.project_settings,
            project.missing_rate_policy,
        )

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project."""
        return await self.project_repo.delete(project_id)
