"""
Local key-value persistence. JSON codec at the boundary, one file on disk.

Plays the role browser localStorage plays for the web client: small opaque
blobs (schedule events, sebha totals, cached profile) keyed by string.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from minbar.utils.logger import get_logger

logger = get_logger()


class KeyValueStore(ABC):
    """Typed get/set/delete by key. Values are JSON-compatible objects."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    def get_dict(self, key: str) -> dict[str, Any]:
        """Return the value at key if it is a JSON object, else an empty dict."""
        val = self.get(key)
        return val if isinstance(val, dict) else {}


class MemoryStore(KeyValueStore):
    """In-process store. Values are round-tripped through JSON like the file store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, ensure_ascii=False)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    Key-value store persisted as one JSON object in a file.

    The whole file is re-read on every get so several stores (or processes)
    pointing at the same path observe each other's writes. A corrupt or
    unreadable file behaves like an empty store.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, Any]:
        if not self._path.is_file():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning("Local store read failed for %s: %s", self._path, e)
            return {}

    def _write_all(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        tmp.replace(self._path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        # Fail early on values that cannot be encoded instead of corrupting the file.
        json.dumps(value)
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)
