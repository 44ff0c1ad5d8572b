from lytspot_outbox.storage.key_value import (
    KeyValueStore,
    MemoryKeyValueStore,
    SQLiteKeyValueStore,
    StorageError,
)

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SQLiteKeyValueStore", "StorageError"]
