"""Best-effort JSON key-value store for user preferences.

Nothing read from here is trusted: a missing, unreadable or malformed file
loads as an empty store, and write failures are logged rather than raised.
"""
import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from maprates.utils.errors import PersistenceError
from maprates.utils.logging import get_logger

logger = get_logger(__name__)


class PreferenceStore:
    """Key-value preferences persisted to a JSON file (in memory when path is None)."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        self._data: Dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences at {self.path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences at {self.path}")
            return
        self._data = data

    def _write(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write preferences to {self.path}: {e}") from e

    def _save(self) -> bool:
        try:
            self._write()
        except PersistenceError as e:
            logger.error(str(e))
            return False
        return True

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> bool:
        self._data[key] = copy.deepcopy(value)
        return self._save()

    def delete(self, key: str) -> bool:
        if self._data.pop(key, None) is None:
            return False
        return self._save()

    def clear(self) -> None:
        self._data.clear()
        self._save()

    def keys(self):
        return list(self._data.keys())
