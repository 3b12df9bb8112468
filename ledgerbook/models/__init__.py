"""
Data Models Package

This package contains all Pydantic models used by Ledgerbook.
Every record that enters the ledger must conform to these schemas.
"""

from ledgerbook.models.record import (
    ALL_CATEGORIES,
    CommandResult,
    ErrorKind,
    LedgerSummary,
    Record,
    RecordDraft,
    RecordKind,
)
from ledgerbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ALL_CATEGORIES",
    "CommandResult",
    "ErrorKind",
    "LedgerSummary",
    "Record",
    "RecordDraft",
    "RecordKind",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
