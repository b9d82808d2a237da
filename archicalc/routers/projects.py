from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from .. import models
from ..auth import get_current_user
from ..schemas import ProjectCreate
from ..services import AppServices, get_services

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("/")
def create_project(
    project: ProjectCreate,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.projects.create_project(current_user.id, **project.model_dump())
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.data


@router.get("/")
def list_projects(
    status: Optional[str] = None,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Projects newest first, with calculations_count. Filter by status to pick a save target."""
    result = services.projects.list_projects(current_user.id, status=status)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.get("/{project_id}")
def get_project(
    project_id: str,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.projects.get_project(current_user.id, project_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error)
    return result.data


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.projects.delete_project(current_user.id, project_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error)
    return {"ok": True}
