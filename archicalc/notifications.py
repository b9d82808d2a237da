"""
User-visible notifications raised by the sync layers.

The price layer reports outcomes here instead of raising. Notifications go to
a queue the API drains into the next response for that workspace, unless the
current thread is inside capture(): then they belong to that call only.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    description: str = ""
    variant: str = DEFAULT  # 'default' | 'destructive'


class Notifier:
    def __init__(self):
        self._pending: List[Notification] = []
        self._lock = threading.Lock()
        self._local = threading.local()

    def notify(self, title: str, description: str = "", variant: str = DEFAULT) -> Notification:
        notification = Notification(title=title, description=description, variant=variant)
        if variant == DESTRUCTIVE:
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)

        captured = getattr(self._local, "captured", None)
        if captured is not None:
            captured.append(notification)
            return notification
        with self._lock:
            self._pending.append(notification)
        return notification

    def error(self, title: str, description: str = "") -> Notification:
        return self.notify(title, description, variant=DESTRUCTIVE)

    @contextmanager
    def capture(self) -> Iterator[List[Notification]]:
        """Collect this thread's notifications in a private list instead of the shared queue."""
        previous = getattr(self._local, "captured", None)
        captured: List[Notification] = []
        self._local.captured = captured
        try:
            yield captured
        finally:
            self._local.captured = previous

    def pending(self) -> List[Notification]:
        with self._lock:
            return list(self._pending)

    def drain(self) -> List[Notification]:
        """Return and clear everything queued so far."""
        with self._lock:
            drained, self._pending = self._pending, []
        return drained
