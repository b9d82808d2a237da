from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from .. import models
from ..auth import get_current_user
from ..schemas import CalculationCreate, HistoryEntry
from ..services import AppServices, get_services

router = APIRouter(tags=["calculations"])


@router.post("/calculations/")
def save_calculation(
    calculation: CalculationCreate,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.calculations.save_calculation(
        current_user.id,
        calculation.calculator_type,
        calculation.input_data,
        calculation.result,
        name=calculation.name,
        project_id=calculation.project_id,
    )
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return result.data


@router.get("/calculations/")
def list_calculations(
    limit: int = 100,
    project_id: Optional[str] = None,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Saved calculations for the authenticated user, newest first."""
    result = services.calculations.list_calculations(current_user.id, limit=limit, project_id=project_id)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.get("/calculations/{calculation_id}")
def get_calculation(
    calculation_id: str,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.calculations.get_calculation(current_user.id, calculation_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error)
    return result.data


@router.delete("/calculations/{calculation_id}")
def delete_calculation(
    calculation_id: str,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Delete a saved calculation together with its share links."""
    result = services.calculations.delete_calculation(current_user.id, calculation_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error)
    return {"ok": True}


# --- Local history (offline view, not tied to an account) ---

@router.get("/history")
def get_history(services: AppServices = Depends(get_services)):
    return services.history.entries()


@router.post("/history")
def record_history(entry: HistoryEntry, services: AppServices = Depends(get_services)):
    return services.history.record(entry.model_dump(exclude_none=True))


@router.delete("/history")
def clear_history(services: AppServices = Depends(get_services)):
    services.history.clear()
    return {"ok": True}
