"""Key-value persistence used by the quiz engine."""

from .records import load_records, save_records
from .key_value import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore

__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "load_records",
    "save_records",
]
