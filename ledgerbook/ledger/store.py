"""
Ledger Store

The store owns the canonical, in-memory collection of records. It is the
only component that mutates records.

CONCURRENCY MODEL:
- One threading.Lock guards the whole collection. Callers may be asyncio
  tasks or plain threads (the Streamlit host runs one thread per session).
- The lock is held only for in-memory work: lookup, mutation and copying
  the snapshot. It is never held across an await.
- Persist-after-mutate: the snapshot is computed under the lock, the lock is
  released, then the snapshot is written. Two overlapping writes can land
  out of order; the later write wins. Memory is the authority, the file is
  a mirror that is only read at startup.

ERROR MODEL:
- InvalidInputError: raised before the lock is taken. No mutation, no I/O.
- NotFoundError: raised under the lock. No mutation, no I/O.
- PersistenceError: raised after the mutation. The mutation is kept.
"""

import threading
import uuid
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import ValidationError

from ledgerbook.models.record import (
    ALL_CATEGORIES,
    LedgerSummary,
    Record,
    RecordDraft,
    RecordKind,
    validate_category_name,
)
from ledgerbook.services.storage import PersistenceError, SnapshotStorageInterface


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidInputError(LedgerError):
    """Input failed validation. Nothing was changed."""
    pass


class NotFoundError(LedgerError):
    """The requested record or category does not exist."""
    pass


def _now_seconds() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def _validation_message(error: ValidationError) -> str:
    """Flatten a pydantic error into one line for the UI."""
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item.get("loc", ())) or "input"
        parts.append(f"{field}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_draft(
    kind: RecordKind,
    amount: Decimal,
    description: str,
    category: str,
) -> RecordDraft:
    """
    Validate the mutable fields of a record.

    Raises:
        InvalidInputError: If any field breaks a record invariant
    """
    try:
        return RecordDraft(
            kind=kind,
            amount=amount,
            description=description,
            category=category,
        )
    except ValidationError as e:
        raise InvalidInputError(_validation_message(e)) from e


def _clean_category_name(name: str) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidInputError("Category names cannot be empty.")
    return trimmed


class LedgerStore:
    """
    Thread-safe owner of the record collection.

    Every record returned from the store is a copy; callers can never
    mutate the collection except through these methods.
    """

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        records: Optional[list[Record]] = None,
    ):
        self._storage = storage
        self._records: list[Record] = [r.model_copy() for r in (records or [])]
        self._lock = threading.Lock()

        ids = [r.id for r in self._records]
        if len(ids) != len(set(ids)):
            raise ValueError("Initial records contain duplicate ids")

    @property
    def storage(self) -> SnapshotStorageInterface:
        return self._storage

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_all(self) -> list[Record]:
        """Copy of every record, in insertion order."""
        with self._lock:
            return [r.model_copy() for r in self._records]

    def get(self, record_id: str) -> Record:
        """Copy of one record."""
        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                raise NotFoundError(f"Transaction with ID {record_id} not found.")
            return self._records[index].model_copy()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records_for_category(self, category: Optional[str] = None) -> list[Record]:
        """
        Copies of the records in one category.

        None or the "All Categories" sentinel selects every record.
        """
        name = (category or "").strip()
        with self._lock:
            if not name or name == ALL_CATEGORIES:
                return [r.model_copy() for r in self._records]
            return [r.model_copy() for r in self._records if r.category == name]

    def list_categories(self) -> list[str]:
        """Distinct categories plus the sentinel, sorted."""
        with self._lock:
            names = {r.category for r in self._records}
        names.add(ALL_CATEGORIES)
        return sorted(names)

    def category_counts(self) -> dict[str, int]:
        """Number of records per category."""
        with self._lock:
            counts = Counter(r.category for r in self._records)
        return dict(sorted(counts.items()))

    def summarize(self, category: Optional[str] = None) -> LedgerSummary:
        """Income, expense and balance over one category (or all records)."""
        records = self.records_for_category(category)
        income = sum(
            (r.amount for r in records if r.kind == RecordKind.INCOME),
            Decimal("0"),
        )
        expense = sum(
            (r.amount for r in records if r.kind == RecordKind.EXPENSE),
            Decimal("0"),
        )
        name = (category or "").strip()
        return LedgerSummary(
            category=None if not name or name == ALL_CATEGORIES else name,
            record_count=len(records),
            total_income=income,
            total_expense=expense,
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(
        self,
        kind: RecordKind,
        amount: Decimal,
        description: str,
        category: str,
    ) -> Record:
        """
        Validate, append and persist a new record.

        Raises:
            InvalidInputError: Validation failed (nothing changed)
            PersistenceError: Saved in memory but not on disk
        """
        draft = build_draft(kind, amount, description, category)
        record = Record(
            id=str(uuid.uuid4()),
            kind=draft.kind,
            amount=draft.amount,
            description=draft.description,
            category=draft.category,
            created_at=_now_seconds(),
        )

        with self._lock:
            # ids stay unique even on a uuid4 collision
            while self._index_of(record.id) is not None:
                record.id = str(uuid.uuid4())
            self._records.append(record)
            created = record.model_copy()
            snapshot = self._snapshot()

        logger.debug("record_created", record_id=created.id, category=created.category)
        await self._persist(snapshot)
        return created

    async def update(
        self,
        record_id: str,
        kind: RecordKind,
        amount: Decimal,
        description: str,
        category: str,
    ) -> Record:
        """
        Replace every mutable field of an existing record.

        `id` and `created_at` are preserved.

        Raises:
            InvalidInputError: Validation failed (nothing changed)
            NotFoundError: No record has this id (nothing changed)
            PersistenceError: Updated in memory but not on disk
        """
        draft = build_draft(kind, amount, description, category)

        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                raise NotFoundError(f"Transaction with ID {record_id} not found.")
            record = self._records[index]
            record.apply(draft)
            updated = record.model_copy()
            snapshot = self._snapshot()

        logger.debug("record_updated", record_id=record_id)
        await self._persist(snapshot)
        return updated

    async def delete(self, record_id: str) -> None:
        """
        Remove one record.

        Raises:
            NotFoundError: No record has this id (nothing changed)
            PersistenceError: Removed in memory but not on disk
        """
        with self._lock:
            index = self._index_of(record_id)
            if index is None:
                raise NotFoundError(f"Transaction with ID {record_id} not found.")
            del self._records[index]
            snapshot = self._snapshot()

        logger.debug("record_deleted", record_id=record_id)
        await self._persist(snapshot)

    async def rename_category(self, old_name: str, new_name: str) -> int:
        """
        Move every record in `old_name` to `new_name`.

        Returns:
            Number of records renamed

        Raises:
            InvalidInputError: Empty name, the sentinel as either operand,
                or old and new are the same
            NotFoundError: No record is in `old_name`
            PersistenceError: Renamed in memory but not on disk
        """
        old = _clean_category_name(old_name)
        new = _clean_category_name(new_name)
        if old == ALL_CATEGORIES:
            raise InvalidInputError(f"'{ALL_CATEGORIES}' cannot be renamed.")
        if old == new:
            raise InvalidInputError("The new category name is the same as the old one.")
        try:
            new = validate_category_name(new)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        with self._lock:
            renamed = 0
            for record in self._records:
                if record.category == old:
                    record.category = new
                    renamed += 1
            if renamed == 0:
                raise NotFoundError(f"Category '{old}' not found or has no transactions to rename.")
            snapshot = self._snapshot()

        logger.debug("category_renamed", old=old, new=new, renamed=renamed)
        await self._persist(snapshot)
        return renamed

    async def delete_category(self, category: str) -> int:
        """
        Remove every record in `category`.

        Returns:
            Number of records removed

        Raises:
            InvalidInputError: Empty name or the sentinel
            NotFoundError: No record is in `category`
            PersistenceError: Removed in memory but not on disk
        """
        name = _clean_category_name(category)
        if name == ALL_CATEGORIES:
            raise InvalidInputError(f"'{ALL_CATEGORIES}' cannot be deleted.")

        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.category != name]
            removed = before - len(self._records)
            if removed == 0:
                raise NotFoundError(f"Category '{name}' not found or has no transactions to delete.")
            snapshot = self._snapshot()

        logger.debug("category_deleted", category=name, removed=removed)
        await self._persist(snapshot)
        return removed

    # -------------------------------------------------------------------------
    # Internals (callers of _index_of/_snapshot must hold the lock)
    # -------------------------------------------------------------------------

    def _index_of(self, record_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    def _snapshot(self) -> list[Record]:
        return [r.model_copy() for r in self._records]

    async def _persist(self, snapshot: list[Record]) -> None:
        try:
            await self._storage.save(snapshot)
        except PersistenceError:
            logger.error("ledger_persist_failed", record_count=len(snapshot))
            raise
