"""
Project API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from costcalc.controllers.project_controller import ProjectController
from costcalc.deps.di_container import get_project_controller
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

router = APIRouter()


@router.post("/calculate", response_model=ProjectCalculateResponse)
async def calculate_project(
    request: ProjectCalculateRequest,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectCalculateResponse:
    """Calculate project financials without saving."""
    return await controller.calculate(request)


@router.post("/optimize", response_model=OptimizationResponse)
async def optimize_project(
    request: OptimizationRequest,
    controller: ProjectController = Depends(get_project_controller),
) -> OptimizationResponse:
    """Analyze role rates and suggest cost savings."""
    return await controller.optimize(request)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectResponse:
    """Create a new project."""
    return await controller.create_project(project_data)


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    currency: Optional[str] = Query(None, min_length=3, max_length=3),
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectListResponse:
    """List projects with pagination."""
    return await controller.list_projects(
        skip=skip,
        limit=limit,
        currency=currency,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectResponse:
    """Get project by ID."""
    project = await controller.get_project(project_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectResponse:
    """Update a project and recompute its financials."""
    return await controller.update_project(project_id, project_data)


@router.post("/{project_id}/roles", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def add_project_role(
    project_id: str,
    role_data: RoleAssignmentCreate,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectResponse:
    """Add a role to a project."""
    return await controller.add_role(project_id, role_data)


@router.delete("/{project_id}/roles/{role_id}", response_model=ProjectResponse)
async def remove_project_role(
    project_id: str,
    role_id: str,
    controller: ProjectController = Depends(get_project_controller),
) -> ProjectResponse:
    """Remove a role from a project."""
    project = await controller.remove_role(project_id, role_id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Role not found",
        )
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    controller: ProjectController = Depends(get_project_controller),
):
    """Delete a project."""
    deleted = await controller.delete_project(project_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )
