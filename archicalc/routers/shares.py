"""
Share links — create, list and deactivate (owner only), resolve (public).
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException

from .. import models
from ..auth import get_current_user
from ..schemas import ShareCreate
from ..services import AppServices, get_services

router = APIRouter(tags=["sharing"])


@router.post("/shares/")
def create_share(
    request: ShareCreate,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Issue a new link. expires_in_days wins over expires_at when both are sent."""
    expires_at = request.expires_at
    if request.expires_in_days is not None:
        expires_at = datetime.utcnow() + timedelta(days=request.expires_in_days)

    result = services.sharing.create_link(current_user.id, request.calculation_id, expires_at=expires_at)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return {
        "share_url": result.share_url,
        "token": result.token,
        "share": result.data,
    }


@router.get("/shares/")
def list_shares(
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.sharing.list_links(current_user.id)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return result.data


@router.delete("/shares/{share_id}")
def deactivate_share(
    share_id: str,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    result = services.sharing.deactivate_link(current_user.id, share_id)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error)
    return {"ok": True, "share": result.data}


@router.get("/shared/{token}")
def resolve_share(token: str, services: AppServices = Depends(get_services)):
    """Public — anyone holding the token can read the calculation."""
    result = services.sharing.resolve_link(token)
    if not result.success:
        raise HTTPException(status_code=404, detail=result.error or "Cálculo não encontrado")
    return result.data
