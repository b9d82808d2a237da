from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

from .catalog import PriceItem
from .notifications import Notification
from .preferences import Preferences


class ServiceResult(BaseModel):
    """Outcome of a sharing/calculation call — presentation is up to the caller."""
    success: bool
    error: Optional[str] = None
    data: Any = None
    share_url: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def ok(cls, **kwargs) -> "ServiceResult":
        return cls(success=True, **kwargs)

    @classmethod
    def fail(cls, error: str) -> "ServiceResult":
        return cls(success=False, error=error)


# --- Prices ---

class PriceUpdate(BaseModel):
    unit_price: float = Field(ge=0)


class PriceState(BaseModel):
    prices: Dict[str, float]
    items: List[PriceItem]
    saved: Optional[bool] = None
    notifications: List[Notification] = []


# --- Settings ---

class SettingsState(BaseModel):
    settings: Preferences
    active_theme: str
    notifications: List[Notification] = []


# --- Calculations ---

class CalculationCreate(BaseModel):
    calculator_type: str
    input_data: Dict[str, Any] = {}
    result: Dict[str, Any] = {}
    name: Optional[str] = None
    project_id: Optional[str] = None


# --- Projects ---

class ProjectCreate(BaseModel):
    name: str
    client_name: Optional[str] = None
    address: Optional[str] = None
    status: Literal["active", "completed", "archived"] = "active"


class HistoryEntry(BaseModel):
    calculator_type: str
    summary: str
    result: Dict[str, Any] = {}
    timestamp: Optional[str] = None


# --- Sharing ---

class ShareCreate(BaseModel):
    calculation_id: str
    expires_at: Optional[datetime] = None
    expires_in_days: Optional[int] = Field(default=None, ge=1)
