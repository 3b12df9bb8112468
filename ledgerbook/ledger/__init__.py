"""Ledger store package."""

from ledgerbook.ledger.store import (
    InvalidInputError,
    LedgerError,
    LedgerStore,
    NotFoundError,
    build_draft,
)

__all__ = [
    "InvalidInputError",
    "LedgerError",
    "LedgerStore",
    "NotFoundError",
    "build_draft",
]
