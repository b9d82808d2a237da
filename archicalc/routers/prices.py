from fastapi import APIRouter, Depends
from typing import List, Optional

from .. import models
from ..auth import get_current_user, get_optional_user
from ..catalog import MATERIALS
from ..notifications import Notification
from ..schemas import PriceState, PriceUpdate
from ..services import AppServices, Workspace, get_services

router = APIRouter(prefix="/prices", tags=["prices"])


def _workspace(user: Optional[models.User], services: AppServices) -> Workspace:
    return services.workspace(user.id if user else None)


def _state(
    workspace: Workspace,
    captured: Optional[List[Notification]] = None,
    saved: Optional[bool] = None,
) -> PriceState:
    # Anonymous viewers share one workspace; its queue is never handed to a caller
    queued = workspace.notifier.drain() if workspace.user_id is not None else []
    return PriceState(
        prices=dict(workspace.prices.prices),
        items=list(workspace.prices.price_items),
        saved=saved,
        notifications=queued + (captured or []),
    )


@router.get("/catalog")
def get_catalog():
    """Static material catalog with default prices."""
    return MATERIALS


@router.get("/", response_model=PriceState)
def get_prices(
    user: Optional[models.User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services),
):
    """Effective prices: defaults for anonymous viewers, overrides applied for users."""
    return _state(_workspace(user, services))


@router.post("/refresh", response_model=PriceState)
def refresh_prices(
    user: Optional[models.User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services),
):
    workspace = _workspace(user, services)
    with workspace.notifier.capture() as captured:
        workspace.prices.refresh(workspace.user_id)
    return _state(workspace, captured)


@router.put("/{material_key}/{composition_index}", response_model=PriceState)
def update_price(
    material_key: str,
    composition_index: int,
    update: PriceUpdate,
    user: Optional[models.User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services),
):
    """
    Save one override. Failures come back as notifications, not HTTP errors:
    `saved` tells whether the store accepted the write.
    """
    workspace = _workspace(user, services)
    with workspace.notifier.capture() as captured:
        saved = workspace.prices.update_price(
            workspace.user_id, material_key, composition_index, update.unit_price,
        )
    return _state(workspace, captured, saved=saved)


@router.delete("/", response_model=PriceState)
def reset_prices(
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Drop every override and go back to catalog defaults."""
    workspace = _workspace(current_user, services)
    with workspace.notifier.capture() as captured:
        saved = workspace.prices.reset_to_defaults(workspace.user_id)
    return _state(workspace, captured, saved=saved)
