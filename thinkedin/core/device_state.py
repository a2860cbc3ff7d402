"""Per-device key-value storage (pseudonym, reaction flags).

Replaces browser localStorage. Components receive a DeviceState instance
explicitly instead of reaching for global state.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger("thinkedin")


class DeviceState(ABC):
    """Abstract key-value store local to one device/profile."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class InMemoryDeviceState(DeviceState):
    """Volatile device state, mainly for tests and one-off sessions."""

    def __init__(self, initial: dict = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class JsonFileDeviceState(DeviceState):
    """Device state persisted as a single JSON object on disk.

    The file is read once on construction and rewritten after every change.
    A missing or unreadable file behaves like empty storage.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.RLock()
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Device state file {self._path} is corrupt, starting empty: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Failed to read device state {self._path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Device state file {self._path} is not an object, starting empty")
            return {}
        return data

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                self._flush()

    def clear(self) -> None:
        with self._lock:
            self._data = {}
            self._flush()
