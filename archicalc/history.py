"""
Local calculation history — a JSON file, never synced with the store.

Structure:
{
  "archiCalc_history": [
    {"calculator_type": "area", "summary": "...", "result": {...}, "timestamp": "2026-10-19T12:34:56"},
    ...
  ]
}

Newest entry first, capped at `limit` entries.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

NAMESPACE = "archiCalc_history"


class LocalHistory:
    def __init__(self, path, limit: int = 50):
        self.path = Path(path)
        self.limit = limit
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            # Corrupt file reads as empty rather than breaking the history view
            logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def entries(self) -> List[dict]:
        with self._lock:
            entries = self._load().get(NAMESPACE, [])
        return [e for e in entries if isinstance(e, dict)]

    def record(self, entry: dict, now: Optional[datetime] = None) -> List[dict]:
        entry = dict(entry)
        entry.setdefault("timestamp", (now or datetime.utcnow()).isoformat())
        with self._lock:
            data = self._load()
            existing = [e for e in data.get(NAMESPACE, []) if isinstance(e, dict)]
            data[NAMESPACE] = ([entry] + existing)[: self.limit]
            self._save(data)
            return list(data[NAMESPACE])

    def clear(self) -> None:
        with self._lock:
            data = self._load()
            data[NAMESPACE] = []
            self._save(data)
