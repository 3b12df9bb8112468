"""Services package."""

from ledgerbook.services.ai import (
    AIClientError,
    ConfigurationError,
    GeminiTextClient,
    RemoteError,
)
from ledgerbook.services.storage import (
    JsonSnapshotStorage,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    # AI services
    "AIClientError",
    "ConfigurationError",
    "GeminiTextClient",
    "RemoteError",
    # Storage services
    "JsonSnapshotStorage",
    "PersistenceError",
    "SnapshotStorageInterface",
    "StorageError",
]
