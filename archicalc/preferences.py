"""
Settings synchronization — one user_settings row merged over defaults.

Merge is field by field: a column that is NULL or missing in the row takes
the default, every other column keeps the stored value. `theme` must be one
of THEMES or it falls back to the default too.

Updates are optimistic: local state changes first, only the changed columns
are written, and a failed write rolls back the fields it changed and re-raises
so the caller can react.
"""

import logging
import threading
from typing import Callable, Literal, Optional

from pydantic import BaseModel

from .errors import AuthenticationRequired, StoreError
from .notifications import Notifier
from .optimistic import optimistic_update
from .store import DataStore

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "system")


class Preferences(BaseModel):
    theme: Literal["light", "dark", "system"] = "light"
    email_notifications: bool = True
    default_margin: float = 10
    auto_save_calculations: bool = True
    decimal_places: int = 2
    bdi_percent: float = 20
    social_charges_percent: float = 88
    technical_hour_rate: float = 150
    material_waste_percent: float = 5
    language: str = "pt-BR"
    unit_preference: str = "metric"


DEFAULT_PREFERENCES = Preferences()

# Engineering parameters restored by "reset to market defaults"
MARKET_DEFAULTS = {
    "bdi_percent": 20.0,
    "social_charges_percent": 88.0,
    "technical_hour_rate": 150.0,
    "material_waste_percent": 5.0,
}


class PreferencesUpdate(BaseModel):
    """Partial update — only fields explicitly set count as changes."""
    theme: Optional[Literal["light", "dark", "system"]] = None
    email_notifications: Optional[bool] = None
    default_margin: Optional[float] = None
    auto_save_calculations: Optional[bool] = None
    decimal_places: Optional[int] = None
    bdi_percent: Optional[float] = None
    social_charges_percent: Optional[float] = None
    technical_hour_rate: Optional[float] = None
    material_waste_percent: Optional[float] = None
    language: Optional[str] = None
    unit_preference: Optional[str] = None

    def changes(self) -> dict:
        # A field set to null is not a change: fields never go back to "default"
        return {
            field: value
            for field, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


def merge_preferences(row: Optional[dict]) -> Preferences:
    if not row:
        return Preferences()

    merged = {}
    for field, default in DEFAULT_PREFERENCES.model_dump().items():
        value = row.get(field)
        merged[field] = default if value is None else value

    if merged["theme"] not in THEMES:
        merged["theme"] = DEFAULT_PREFERENCES.theme
    return Preferences(**merged)


def apply_changes(current: Preferences, changes: dict) -> Preferences:
    return current.model_copy(update=changes)


def revert_changes(snapshot: Preferences, updated: Preferences, current: Preferences, changes: dict) -> Preferences:
    """
    Undo a failed update on top of `current`.

    Only the fields the update touched are reverted, and only where they still
    hold the failed value. Fields another update has written since are kept.
    """
    reverted = {
        field: getattr(snapshot, field)
        for field in changes
        if getattr(current, field) == getattr(updated, field)
    }
    return current.model_copy(update=reverted)


class ThemeApplier:
    """
    Holds the active display theme ('light' or 'dark').

    'system' is resolved through `system_preference` when apply() runs, not
    afterwards. A later change of the host preference is not picked up.
    """

    def __init__(self, system_preference: Callable[[], str]):
        self.system_preference = system_preference
        self.active_theme = "light"

    def apply(self, theme: str) -> str:
        if theme == "system":
            resolved = "dark" if self.system_preference() == "dark" else "light"
        else:
            resolved = "dark" if theme == "dark" else "light"
        self.active_theme = resolved
        logger.debug("Applied theme %s (requested %s)", resolved, theme)
        return resolved


class SettingsSync:
    def __init__(self, store: DataStore, notifier: Notifier, theme: ThemeApplier):
        self.store = store
        self.notifier = notifier
        self.theme = theme
        self.preferences = Preferences()
        self._lock = threading.RLock()

    def _read(self) -> Preferences:
        with self._lock:
            return self.preferences

    def _write(self, preferences: Preferences) -> None:
        with self._lock:
            self.preferences = preferences

    def load(self, user_id: Optional[int] = None) -> Preferences:
        if user_id is None:
            preferences = Preferences()
        else:
            try:
                preferences = merge_preferences(self.store.select_user_settings(user_id))
            except StoreError as e:
                logger.error("Error loading settings for user %s: %s", user_id, e)
                self.notifier.error("Erro ao carregar configurações", e.message)
                preferences = Preferences()
        self._write(preferences)
        self.theme.apply(preferences.theme)
        return preferences

    refresh = load

    def update(self, user_id: Optional[int], update: PreferencesUpdate) -> Preferences:
        """
        Optimistically apply `update` and persist the changed fields.

        Raises:
            AuthenticationRequired: no identity; nothing changed, no store call
            StoreError: the write failed; the fields it changed are rolled back
        """
        if user_id is None:
            self.notifier.error("Login necessário", "Faça login para salvar suas configurações")
            raise AuthenticationRequired("updating settings")

        changes = update.changes()
        if not changes:
            return self._read()

        try:
            optimistic_update(
                read=self._read,
                write=self._write,
                mutate=lambda current: apply_changes(current, changes),
                commit=lambda _: self.store.upsert_user_settings(user_id, changes),
                lock=self._lock,
                restore=lambda snapshot, updated, current: revert_changes(snapshot, updated, current, changes),
            )
        except StoreError as e:
            logger.error("Error updating settings for user %s: %s", user_id, e)
            self.notifier.error("Erro ao salvar configurações", e.message)
            raise

        if "theme" in changes:
            self.theme.apply(changes["theme"])
        return self._read()

    def reset_market_defaults(self, user_id: Optional[int]) -> Preferences:
        return self.update(user_id, PreferencesUpdate(**MARKET_DEFAULTS))
