from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Keys
# token -> raw bearer token string
# user, business -> JSON documents returned by login/register
# businessSettings -> JSON copy of the last saved business settings

TOKEN_KEY = "token"
USER_KEY = "user"
BUSINESS_KEY = "business"
BUSINESS_SETTINGS_KEY = "businessSettings"

SESSION_KEYS = (TOKEN_KEY, USER_KEY, BUSINESS_KEY)


class LocalStorage:
    """String key/value store persisted as a plain JSON file.

    With ``path=None`` nothing is written to disk.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._items: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring storage file {self.path}: expected an object")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".storage-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._items, fh, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            self._flush()

    def remove_items(self, *keys: str) -> None:
        removed = [k for k in keys if self._items.pop(k, None) is not None]
        if removed:
            self._flush()

    def clear(self) -> None:
        self._items = {}
        self._flush()

    def get_json(self, key: str) -> Optional[Any]:
        data = self.get_item(key)
        if not data:
            return None
        try:
            return json.loads(data)
        except ValueError:
            logger.warning(f"Stored value for {key!r} is not valid JSON")
            return None

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value))

    def __contains__(self, key: str) -> bool:
        return key in self._items
