"""Opaque key-value blob stores.

The engine only ever needs ``get``/``set``/``keys`` on string blobs, which is
what browser local storage offers. Two backends are provided: a dict for
tests and short-lived processes, and a single JSON file on disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Protocol

from classroom_quiz.core.errors import StorageError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def keys(self) -> list[str]: ...


class InMemoryKeyValueStore:
    """Dict-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore:
    """Persists every key as one entry of a JSON object on disk."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path.resolve()
        self._lock = Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._read_all())

    def _read_all(self) -> dict[str, str]:
        if not self._file_path.exists():
            return {}
        try:
            raw = self._file_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not load data from {self._file_path}.") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Could not load data from {self._file_path}.") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Could not load data from {self._file_path}.")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        # Write to a sibling file first so a failed write never truncates the store.
        temp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            temp_path.replace(self._file_path)
        except OSError as exc:
            logger.error("Writing %s failed: %s", self._file_path, exc)
            raise StorageError(f"Could not save data to {self._file_path}.") from exc
