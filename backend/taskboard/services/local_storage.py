"""Durable key-value storage modelled on a browser's local storage.

Each entry holds a serialized text snapshot of one collection or scalar and
is rewritten in full whenever that collection changes. The whole map is
kept in a single JSON file; writes go through a temporary file and an
atomic rename so a crash never leaves a half-written file behind.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Dict, Optional

from taskboard.core.errors import PersistenceError

logger = logging.getLogger(__name__)

USERS_KEY = "users"
TASKS_KEY = "tasks"
COMMENTS_KEY = "comments"
CURRENT_USER_KEY = "currentUser"
NEXT_ID_KEY = "nextId"


class LocalStorage:
    """String-valued key/value map, optionally backed by a JSON file.

    ``lock`` is re-entrant; hold it across a read-modify-write of an entry.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = Path(path).expanduser() if path else None
        self.lock = RLock()
        self._items: Dict[str, str] = self._read_file() if self.path else {}

    def _read_file(self) -> Dict[str, str]:
        assert self.path is not None
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Unable to read local storage at {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed local storage file %s", self.path)
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _flush(self) -> None:
        if self.path is None:
            return
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._items, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write local storage at {self.path}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        with self.lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self.lock:
            self._items[key] = value
            self._flush()

    def remove_item(self, key: str) -> None:
        with self.lock:
            if self._items.pop(key, None) is not None:
                self._flush()

    def clear(self) -> None:
        with self.lock:
            self._items.clear()
            self._flush()

    def keys(self) -> list[str]:
        with self.lock:
            return list(self._items)

    # JSON convenience wrappers used by the local provider and adapter.

    def load_json(self, key: str, default: Any) -> Any:
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable local storage entry %r", key)
            return default

    def save_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))

    def allocate_id(self) -> int:
        """Return the next id from the shared ``nextId`` counter and advance it."""
        with self.lock:
            next_id = int(self.load_json(NEXT_ID_KEY, 1))
            self.save_json(NEXT_ID_KEY, next_id + 1)
            return next_id
