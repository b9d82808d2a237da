from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from .. import models
from ..auth import get_current_user, get_optional_user
from ..errors import StoreError
from ..notifications import Notification
from ..preferences import PreferencesUpdate
from ..schemas import SettingsState
from ..services import AppServices, Workspace, get_services

router = APIRouter(prefix="/settings", tags=["settings"])


def _state(workspace: Workspace, captured: Optional[List[Notification]] = None) -> SettingsState:
    queued = workspace.notifier.drain() if workspace.user_id is not None else []
    return SettingsState(
        settings=workspace.settings.preferences,
        active_theme=workspace.theme.active_theme,
        notifications=queued + (captured or []),
    )


@router.get("/", response_model=SettingsState)
def get_settings(
    user: Optional[models.User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services),
):
    return _state(services.workspace(user.id if user else None))


@router.post("/refresh", response_model=SettingsState)
def refresh_settings(
    user: Optional[models.User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services),
):
    workspace = services.workspace(user.id if user else None)
    with workspace.notifier.capture() as captured:
        workspace.settings.refresh(workspace.user_id)
    return _state(workspace, captured)


@router.patch("/", response_model=SettingsState)
def update_settings(
    update: PreferencesUpdate,
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Partial update: only the fields sent are written."""
    workspace = services.workspace(current_user.id)
    with workspace.notifier.capture() as captured:
        try:
            workspace.settings.update(current_user.id, update)
        except StoreError as e:
            raise HTTPException(status_code=502, detail=f"Settings not saved: {e.message}")
    return _state(workspace, captured)


@router.post("/market-defaults", response_model=SettingsState)
def reset_market_defaults(
    current_user: models.User = Depends(get_current_user),
    services: AppServices = Depends(get_services),
):
    """Restore BDI, social charges, hourly rate and waste to market values."""
    workspace = services.workspace(current_user.id)
    with workspace.notifier.capture() as captured:
        try:
            workspace.settings.reset_market_defaults(current_user.id)
        except StoreError as e:
            raise HTTPException(status_code=502, detail=f"Settings not saved: {e.message}")
    return _state(workspace, captured)
