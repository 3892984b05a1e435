"""
Project controller.
"""

from typing import Optional

from costcalc.controllers.base_controller import BaseController
from costcalc.schemas.optimization import OptimizationRequest, OptimizationResponse
from costcalc.schemas.project import (
    ProjectCalculateRequest,
    ProjectCalculateResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from costcalc.schemas.role import RoleAssignmentCreate
from costcalc.services.optimization_service import OptimizationService
from costcalc.services.project_service import ProjectService


class ProjectController(BaseController):
    """Controller for project operations."""

    def __init__(self, project_service: ProjectService, optimization_service: OptimizationService):
        self.project_service = project_service
        self.optimization_service = optimization_service

    async def calculate(self, request: ProjectCalculateRequest) -> ProjectCalculateResponse:
        """Compute project financials without persisting anything."""
        return await self.project_service.calculate(request)

    async def create_project(self, project_data: ProjectCreate) -> ProjectResponse:
        """Create a new project."""
        return await self.project_service.create_project(project_data)

    async def get_project(self, project_id: str) -> Optional[ProjectResponse]:
        """Get project by ID."""
        return await self.project_service.get_project(project_id)

    async def list_projects(
        self,
        skip: int = 0,
        limit: int = 100,
        currency: Optional[str] = None,
    ) -> ProjectListResponse:
        """List projects with optional currency filter."""
        projects, total = await self.project_service.list_projects(
            skip=skip,
            limit=limit,
            currency=currency,
        )
        return ProjectListResponse(items=projects, total=total)

    async def update_project(self, project_id: str, project_data: ProjectUpdate) -> ProjectResponse:
        """Update a project."""
        return await self.project_service.update_project(project_id, project_data)

    async def add_role(self, project_id: str, role_data: RoleAssignmentCreate) -> ProjectResponse:
        """Add a role to a project."""
        return await self.project_service.add_role(project_id, role_data)

    async def remove_role(self, project_id: str, role_id: str) -> Optional[ProjectResponse]:
        """Remove a role from a project."""
        return await self.project_service.remove_role(project_id, role_id)

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project."""
        return await self.project_service.delete_project(project_id)

    async def optimize(self, request: OptimizationRequest) -> OptimizationResponse:
        """Rate analysis, cost-saving suggestions and currency impact for a set of roles."""
        project_settings = request.project_settings
        roles = self.project_service.build_roles(request.roles, project_settings.duration_months)

        exchange_rates = request.exchange_rates
        if exchange_rates is None:
            collection = await self.project_service.collect_role_rates(roles, project_settings.target_currency)
            exchange_rates = collection.rates

        suggestions = self.optimization_service.suggest(
            roles,
            project_settings,
            request.rate_basis,
            exchange_rates=exchange_rates,
            missing_rate_policy=request.missing_rate_policy,
        )
        return OptimizationResponse(
            suggestions=suggestions,
            rate_analysis=self.optimization_service.analyze_rates(
                roles,
                project_settings.monthly_hours_standard,
                request.rate_basis,
                target_currency=project_settings.target_currency,
                exchange_rates=exchange_rates,
                missing_rate_policy=request.missing_rate_policy,
            ),
            total_potential_savings=sum(s.potential_savings for s in suggestions),
            currency_impact=self.optimization_service.currency_impact(roles, project_settings, exchange_rates),
        )
