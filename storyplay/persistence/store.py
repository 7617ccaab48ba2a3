"""
Key-Value Store - Where save slots and persistent variables live.

The engine persists two keys:
- "saveData": list of save slots written by saveVnData
- "variables": values of variables declared with local persistence

Design decisions:
- Writes are synchronous and whole-value (no partial updates)
- Values must be JSON-compatible
- A missing key reads as the caller's default
"""

from __future__ import annotations
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SAVE_DATA_KEY = "saveData"
VARIABLES_KEY = "variables"


class KeyValueStore(ABC):
    """Base interface for engine persistence."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Stored value for key, or default when the key is missing."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any):
        pass

    @abstractmethod
    def delete(self, key: str):
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass


class MemoryStore(KeyValueStore):
    """
    In-process store.

    Values are copied on the way in and out, so callers can never
    mutate what is stored.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return deepcopy(self._data[key])

    def set(self, key: str, value: Any):
        self._data[key] = deepcopy(value)

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore(KeyValueStore):
    """
    One JSON file per key on local disk.

    Usage:
        store = FileStore("~/.storyplay/saves")
        store.set("saveData", [...])
        slots = store.get("saveData", [])
    """

    def __init__(self, directory: str | Path | None = None):
        if directory is None:
            directory = Path.home() / ".storyplay" / "saves"
        self.directory = Path(directory).expanduser()

        # Ensure store directory exists
        self.directory.mkdir(parents=True, exist_ok=True)

    def get(self, key: str, default: Any = None) -> Any:
        path = self._get_path(key)
        if not path.exists():
            return default

        try:
            with open(path) as f:
                return json.load(f)["value"]
        except (json.JSONDecodeError, KeyError, TypeError):
            # Corrupt entry, delete it
            logger.warning("Discarding unreadable store entry %s", path)
            path.unlink(missing_ok=True)
            return default

    def set(self, key: str, value: Any):
        path = self._get_path(key)
        with open(path, "w") as f:
            json.dump({"key": key, "value": value}, f, indent=2)

    def delete(self, key: str):
        self._get_path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        found = []
        for path in self.directory.glob("*.json"):
            try:
                with open(path) as f:
                    found.append(json.load(f)["key"])
            except (json.JSONDecodeError, KeyError, TypeError):
                continue
        return sorted(found)

    def clear(self):
        """Remove every entry."""
        for path in self.directory.glob("*.json"):
            path.unlink(missing_ok=True)

    def _get_path(self, key: str) -> Path:
        """
        Get file path for a key.

        Keys are hashed so any string is a safe file name.
        """
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
        return self.directory / f"{digest}.json"
