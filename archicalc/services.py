"""
Application service container.

Built once at start-up, stored on app.state, closed at shutdown. Routers
receive it through the get_services dependency. There are no module-level
singletons for the sync layers.

Each identity (and the anonymous viewer, key None) gets one Workspace with
its own price and settings snapshots. Workspaces are loaded on first use and
kept in a least-recently-used registry of at most `max_workspaces` entries;
signing out evicts the user's workspace straight away. A workspace only sees
writes made through other workspaces or processes after an explicit refresh.
"""

import logging
import threading
from collections import OrderedDict
from typing import Callable, Dict, Optional

from fastapi import Request

from .calculations import CalculationService
from .config import settings
from .history import LocalHistory
from .notifications import Notifier
from .preferences import SettingsSync, ThemeApplier
from .prices import PriceSync
from .projects import ProjectService
from .sharing import SharingService
from .store import DataStore

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(self, user_id: Optional[int], store: DataStore, system_preference: Callable[[], str]):
        self.user_id = user_id
        self.notifier = Notifier()
        self.theme = ThemeApplier(system_preference)
        self.prices = PriceSync(store, self.notifier)
        self.settings = SettingsSync(store, self.notifier, self.theme)

    def load(self) -> None:
        self.prices.load(self.user_id)
        self.settings.load(self.user_id)


class AppServices:
    def __init__(
        self,
        store: DataStore,
        history: LocalHistory,
        base_url: Optional[str] = None,
        system_preference: Optional[Callable[[], str]] = None,
        max_workspaces: int = 1000,
    ):
        self.store = store
        self.history = history
        self.sharing = SharingService(store, base_url=base_url)
        self.calculations = CalculationService(store)
        self.projects = ProjectService(store)
        self.system_preference = system_preference or (lambda: settings.SYSTEM_COLOR_SCHEME)
        self.max_workspaces = max_workspaces
        self._workspaces: "OrderedDict[Optional[int], Workspace]" = OrderedDict()
        self._loading: Dict[Optional[int], threading.Lock] = {}
        self._lock = threading.Lock()
        self.closed = False

    @classmethod
    def create(cls) -> "AppServices":
        return cls(
            store=DataStore(),
            history=LocalHistory(settings.HISTORY_PATH, limit=settings.HISTORY_LIMIT),
            base_url=settings.PUBLIC_BASE_URL,
            max_workspaces=settings.WORKSPACE_LIMIT,
        )

    def _cached(self, user_id: Optional[int]) -> Optional[Workspace]:
        # caller holds self._lock
        workspace = self._workspaces.get(user_id)
        if workspace is not None:
            self._workspaces.move_to_end(user_id)
        return workspace

    def workspace(self, user_id: Optional[int]) -> Workspace:
        """
        The workspace for `user_id`, loaded on first use.

        Loading makes store calls, so it runs under a per-user lock: users
        never wait on each other's first load, and one user's concurrent
        first requests share a single load.
        """
        with self._lock:
            workspace = self._cached(user_id)
            if workspace is not None:
                return workspace
            user_lock = self._loading.setdefault(user_id, threading.Lock())

        with user_lock:
            with self._lock:
                workspace = self._cached(user_id)
                if workspace is not None:
                    return workspace

            logger.info("Loading workspace for user %s", user_id if user_id is not None else "anonymous")
            workspace = Workspace(user_id, self.store, self.system_preference)
            try:
                workspace.load()
                with self._lock:
                    self._workspaces[user_id] = workspace
                    while len(self._workspaces) > self.max_workspaces:
                        evicted, _ = self._workspaces.popitem(last=False)
                        logger.debug("Evicted workspace for user %s", evicted)
            finally:
                with self._lock:
                    self._loading.pop(user_id, None)
            return workspace

    def evict(self, user_id: Optional[int]) -> bool:
        """Drop a workspace; the next request for that user loads a fresh one."""
        with self._lock:
            return self._workspaces.pop(user_id, None) is not None

    def workspace_count(self) -> int:
        with self._lock:
            return len(self._workspaces)

    def close(self) -> None:
        with self._lock:
            self._workspaces.clear()
        self.closed = True
        logger.info("Application services closed")


def get_services(request: Request) -> AppServices:
    """FastAPI dependency: the container built at start-up."""
    return request.app.state.services
