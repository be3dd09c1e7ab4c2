"""Helpers for JSON-list collections stored under a single key."""

from __future__ import annotations

import json
import logging
from typing import Any

from classroom_quiz.core.errors import StorageError
from classroom_quiz.storage.key_value import KeyValueStore

logger = logging.getLogger(__name__)


def load_records(store: KeyValueStore, key: str) -> list[dict[str, Any]]:
    """Read the list stored under ``key``.

    Store failures raise ``StorageError``. A value that is not valid JSON, or
    not a list, is treated as an empty collection so a corrupted entry never
    makes the application unusable. Non-object entries are dropped.
    """
    try:
        raw = store.get(key)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"Could not load '{key}'.") from exc

    if raw is None:
        return []
    if not isinstance(raw, str):
        logger.warning("Collection '%s' is corrupted; treating it as empty.", key)
        return []
    if not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Collection '%s' is corrupted; treating it as empty.", key)
        return []
    if not isinstance(data, list):
        logger.warning("Collection '%s' is not a list; treating it as empty.", key)
        return []

    records = [item for item in data if isinstance(item, dict)]
    if len(records) != len(data):
        logger.warning("Dropped %d non-object entries from '%s'.", len(data) - len(records), key)
    return records


def save_records(store: KeyValueStore, key: str, records: list[dict[str, Any]]) -> None:
    """Replace the list stored under ``key``."""
    try:
        payload = json.dumps(records, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"Could not save '{key}'.") from exc
    try:
        store.set(key, payload)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(f"Could not save '{key}'.") from exc
