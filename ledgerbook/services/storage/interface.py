"""
Abstract Snapshot Storage Interface

DESIGN DECISION: The ledger is persisted as whole snapshots, never as
incremental writes. Storage only has to do two things:
1. Load the full collection once at startup
2. Replace the stored collection with a new full snapshot

Keeping the interface this small means the store can be tested against
any backend (a temp directory, an in-memory fake, a failing stub).
"""

from abc import ABC, abstractmethod
from typing import Sequence

from ledgerbook.models.record import Record


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for ledger snapshot storage.

    Any storage implementation must implement these methods.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the snapshot (for logs)."""
        pass

    @abstractmethod
    async def load(self) -> list[Record]:
        """
        Load the stored collection.

        Returns:
            The stored records in stored order. An empty list if nothing
            has been saved yet.

        Raises:
            PersistenceError: If a snapshot exists but cannot be read or parsed
        """
        pass

    @abstractmethod
    async def save(self, records: Sequence[Record]) -> None:
        """
        Replace the stored collection with `records`.

        Args:
            records: The complete collection, in order

        Raises:
            PersistenceError: On any I/O or encoding failure
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """A snapshot could not be loaded or saved."""
    pass
