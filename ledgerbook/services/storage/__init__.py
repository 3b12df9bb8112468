"""
Storage Services Package

Provides the abstract snapshot interface and the JSON file implementation.
"""

from ledgerbook.services.storage.interface import (
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)
from ledgerbook.services.storage.json_file import JsonSnapshotStorage

__all__ = [
    # Interfaces
    "SnapshotStorageInterface",
    # Exceptions
    "PersistenceError",
    "StorageError",
    # JSON file implementation
    "JsonSnapshotStorage",
]
