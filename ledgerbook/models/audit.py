"""
Audit Models for Ledgerbook

Every command that reaches the ledger leaves an audit event behind.
This provides:
1. Traceability of every mutation (who changed what, and whether it reached disk)
2. Debugging information when a snapshot save or an AI call fails
3. A record of rejected inputs

DESIGN DECISION: Audit events are append-only. They are emitted, never edited.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


DESCRIPTION_LIMIT = 500


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Record lifecycle
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Category maintenance
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    NOT_FOUND = "not_found"

    # Snapshot persistence
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_LOAD_FAILED = "snapshot_load_failed"
    SNAPSHOT_SAVE_FAILED = "snapshot_save_failed"

    # AI assistant
    AI_REQUEST_COMPLETED = "ai_request_completed"
    AI_REQUEST_FAILED = "ai_request_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every command outcome creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'category', 'snapshot')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID or name of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one UI action)"
    )

    description: str = Field(
        ...,
        max_length=DESCRIPTION_LIMIT,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    @field_validator("description", mode="before")
    @classmethod
    def clip_description(cls, v: Any) -> Any:
        """Clip descriptions that embed long user input (ids, category names)."""
        if isinstance(v, str) and len(v) > DESCRIPTION_LIMIT:
            return v[: DESCRIPTION_LIMIT - 3] + "..."
        return v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record_id, "Cafe", "12.50")
        await audit_logger.log(event)
    """

    @staticmethod
    def record_created(
        record_id: str,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record created: {category} - {amount}",
            details={"category": category, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        record_id: str,
        category: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record updated: {category} - {amount}",
            details={"category": category, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record deleted: {record_id}",
            is_user_action=True,
        )

    @staticmethod
    def category_renamed(
        old_name: str,
        new_name: str,
        affected: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_RENAMED,
            entity_type="category",
            entity_id=old_name,
            correlation_id=correlation_id,
            description=f"Category renamed: '{old_name}' -> '{new_name}' ({affected} records)",
            details={"old_name": old_name, "new_name": new_name, "affected": affected},
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(
        name: str,
        affected: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=name,
            correlation_id=correlation_id,
            description=f"Category deleted: '{name}' ({affected} records)",
            details={"affected": affected},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        command: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Validation failed for {command}",
            error_message=message,
            details={"command": command},
            correlation_id=correlation_id,
            is_user_action=True,
        )

    @staticmethod
    def not_found(
        command: str,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{command}: {entity_type} '{entity_id}' not found",
            details={"command": command},
            correlation_id=correlation_id,
            is_user_action=True,
        )

    @staticmethod
    def snapshot_loaded(path: str, record_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            entity_type="snapshot",
            entity_id=path,
            description=f"Loaded {record_count} records",
            details={"record_count": record_count},
        )

    @staticmethod
    def snapshot_load_failed(path: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            entity_id=path,
            description="Snapshot could not be loaded, starting with an empty ledger",
            error_message=error_message,
        )

    @staticmethod
    def snapshot_save_failed(
        command: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            description=f"Snapshot save failed after {command}; in-memory change kept",
            error_message=error_message,
            details={"command": command},
            correlation_id=correlation_id,
        )

    @staticmethod
    def ai_request_completed(
        request_type: str,
        response_chars: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_COMPLETED,
            entity_type="ai_request",
            description=f"AI {request_type} request completed",
            details={
                "request_type": request_type,
                "response_chars": response_chars,
            },
            correlation_id=correlation_id,
            is_user_action=True,
        )

    @staticmethod
    def ai_request_failed(
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ai_request",
            description=f"AI request failed: {error_type}",
            error_message=error_message,
            details={"error_type": error_type},
            correlation_id=correlation_id,
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
