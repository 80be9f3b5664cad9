"""Key-value storage backends."""

from healthstore.store.kv import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    StoreError,
)

__all__ = ["FileKeyValueStore", "KeyValueStore", "MemoryKeyValueStore", "StoreError"]
