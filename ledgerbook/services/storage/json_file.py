"""
JSON File Snapshot Storage

DESIGN DECISION: The ledger is a single pretty-printed JSON array because:
1. Users can open and diff the file with any text editor
2. No database setup required for a personal ledger
3. The whole collection is small enough to rewrite on every change

TRADEOFFS:
- Every mutation rewrites the whole file (fine at personal scale)
- Concurrent saves are not ordered; the last write wins
- Writes go to a temp file first and are swapped in with os.replace,
  so a reader never sees a half-written snapshot
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledgerbook.config import LedgerSettings
from ledgerbook.models.record import Record
from ledgerbook.services.storage.interface import (
    PersistenceError,
    SnapshotStorageInterface,
)


logger = structlog.get_logger(__name__)


class JsonSnapshotStorage(SnapshotStorageInterface):
    """
    Snapshot storage backed by one JSON file.

    File layout: an array of objects with the keys
    id, type, amount, description, store_name, timestamp.
    """

    def __init__(
        self,
        path: Path,
        max_attempts: int = 3,
        retry_wait_seconds: float = 0.5,
    ):
        self._path = Path(path)
        self._max_attempts = max_attempts
        self._retry_wait_seconds = retry_wait_seconds

    @classmethod
    def from_settings(
        cls,
        settings: Optional[LedgerSettings] = None,
    ) -> "JsonSnapshotStorage":
        """Build storage at the configured (or platform default) location."""
        settings = settings or LedgerSettings()
        return cls(
            path=settings.data_file_path,
            max_attempts=settings.save_max_attempts,
            retry_wait_seconds=settings.save_retry_wait_seconds,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    # -------------------------------------------------------------------------
    # Load
    # -------------------------------------------------------------------------

    async def load(self) -> list[Record]:
        """Load the snapshot; a missing file is an empty ledger."""
        if not self._path.exists():
            logger.warning("snapshot_missing", path=self.location)
            return []

        try:
            text = await asyncio.to_thread(self._path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error("snapshot_read_failed", path=self.location, error=str(e))
            raise PersistenceError(f"Failed to read data file {self._path}: {e}") from e

        records = self._parse(text)
        logger.info("snapshot_loaded", path=self.location, record_count=len(records))
        return records

    def _parse(self, text: str) -> list[Record]:
        """Decode snapshot text into validated records."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("snapshot_parse_failed", path=self.location, error=str(e))
            raise PersistenceError(f"Failed to parse data file {self._path}: {e}") from e

        if not isinstance(data, list):
            raise PersistenceError(
                f"Failed to parse data file {self._path}: "
                f"expected a JSON array, got {type(data).__name__}"
            )

        records = []
        seen_ids = set()
        for index, item in enumerate(data):
            try:
                record = Record.model_validate(item)
            except ValidationError as e:
                logger.error(
                    "snapshot_record_invalid",
                    path=self.location,
                    index=index,
                    error=str(e),
                )
                raise PersistenceError(
                    f"Invalid record at position {index} in {self._path}: {e}"
                ) from e

            if record.id in seen_ids:
                raise PersistenceError(
                    f"Duplicate record id {record.id!r} in {self._path}"
                )
            seen_ids.add(record.id)
            records.append(record)

        return records

    # -------------------------------------------------------------------------
    # Save
    # -------------------------------------------------------------------------

    async def save(self, records: Sequence[Record]) -> None:
        """Serialize the full collection and replace the file."""
        try:
            payload = json.dumps(
                [record.to_snapshot() for record in records],
                indent=2,
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to serialize transactions: {e}") from e

        try:
            async for attempt in self._retrying():
                with attempt:
                    await asyncio.to_thread(self._write, payload)
        except OSError as e:
            logger.error("snapshot_save_failed", path=self.location, error=str(e))
            raise PersistenceError(f"Failed to save transactions to {self._path}: {e}") from e

        logger.info("snapshot_saved", path=self.location, record_count=len(records))

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_seconds, max=10),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )

    def _write(self, payload: str) -> None:
        """Write payload next to the target, then atomically swap it in."""
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=directory,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
