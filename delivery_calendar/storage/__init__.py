"""Storage package.

- kv.py: SQLite key-value store (local storage)
- local_configs.py: configurations as one JSON array in the key-value store
- remote_configs.py: configurations as Firestore documents per user
- base.py: ConfigStore protocol
"""

from .base import CONFIGS_KEY, ConfigStore
from .kv import DEFAULT_DB_PATH, KeyValueStore
from .local_configs import LocalConfigStore
from .remote_configs import FirestoreConfigStore, build_firestore_client

__all__ = [
    "CONFIGS_KEY",
    "ConfigStore",
    "DEFAULT_DB_PATH",
    "KeyValueStore",
    "LocalConfigStore",
    "FirestoreConfigStore",
    "build_firestore_client",
]
