"""Shared fixtures: in-memory snapshot storage and a storage that always fails."""

from typing import Optional, Sequence

import pytest

from ledgerbook.ledger import LedgerStore
from ledgerbook.models.record import Record
from ledgerbook.services.storage import PersistenceError, SnapshotStorageInterface


class MemoryStorage(SnapshotStorageInterface):
    """Keeps every saved snapshot in a list."""

    def __init__(self, records: Optional[list[Record]] = None):
        self.records = list(records or [])
        self.saves: list[list[Record]] = []

    @property
    def location(self) -> str:
        return "memory://ledger"

    async def load(self) -> list[Record]:
        return [r.model_copy() for r in self.records]

    async def save(self, records: Sequence[Record]) -> None:
        self.records = [r.model_copy() for r in records]
        self.saves.append(self.records)


class FailingStorage(MemoryStorage):
    """Every save raises PersistenceError."""

    async def save(self, records: Sequence[Record]) -> None:
        raise PersistenceError("disk is read-only")


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def store(memory_storage):
    return LedgerStore(memory_storage)


@pytest.fixture
def failing_storage():
    return FailingStorage()


@pytest.fixture
def failing_store(failing_storage):
    return LedgerStore(failing_storage)
