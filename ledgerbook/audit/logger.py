"""
Audit Logger

DESIGN DECISION: Every command outcome is logged.
This provides:
1. Complete traceability of ledger mutations
2. Visibility into snapshot save failures (memory kept, disk behind)
3. A short in-process history the UI can show

The audit logger:
- Is async so it composes with the command coroutines
- Accepts events built from any user input (long descriptions are clipped)
- Supports correlation IDs to trace related events
"""

import logging
import threading
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerbook.models.audit import AuditEvent, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (for debugging)
    2. A bounded in-memory history (newest last)
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("ledgerbook.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._history_lock = threading.Lock()

    async def log(self, event: AuditEvent) -> None:
        """Log an audit event and keep it in the recent history."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        with self._history_lock:
            self._history.append(event)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        with self._history_lock:
            events = list(self._history)
        events.reverse()
        return events[:limit]

    def events_for_correlation(self, correlation_id: UUID) -> list[AuditEvent]:
        """Events sharing a correlation ID, in the order they were logged."""
        with self._history_lock:
            return [e for e in self._history if e.correlation_id == correlation_id]


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action and pass it to every
    command that action triggers.
    """
    return uuid4()
