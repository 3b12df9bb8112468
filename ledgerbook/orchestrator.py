"""
Command Layer for Ledgerbook

This module is the boundary between the UI host and the ledger:
1. Converts raw UI values (kind tags, amount text) into typed values, once
2. Delegates every operation to the LedgerStore
3. Maps exceptions to CommandResult values; nothing raises past this layer
4. Writes an audit event for every outcome

DESIGN DECISION: There is no module-level ledger. create_app_components()
builds one LedgerStore at startup and injects it into LedgerCommands,
which the host keeps for the life of the process.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext
from typing import Optional, Union
from uuid import UUID

import structlog

from ledgerbook.agents import LedgerAnalysisAgent
from ledgerbook.audit import AuditLogger, configure_logging
from ledgerbook.config import Settings, get_settings
from ledgerbook.ledger import InvalidInputError, LedgerStore, NotFoundError
from ledgerbook.models.audit import AuditEventBuilder
from ledgerbook.models.record import (
    ALL_CATEGORIES,
    CommandResult,
    ErrorKind,
    RecordKind,
)
from ledgerbook.services.ai import ConfigurationError, GeminiTextClient, RemoteError
from ledgerbook.services.storage import JsonSnapshotStorage, PersistenceError


logger = structlog.get_logger(__name__)

AmountInput = Union[str, int, float, Decimal]

_CENT = Decimal("0.01")


def format_currency(amount: AmountInput) -> str:
    """
    Format an amount with '.' thousands separators and a ',' decimal mark.

    The absolute value is rounded half-even to two places; a '-' is
    prefixed for negative input.

    >>> format_currency(-1234.5)
    '-1.234,50'
    >>> format_currency(0)
    '0,00'
    """
    value = amount if isinstance(amount, Decimal) else Decimal(amount)
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two cents
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        text = format(abs(value).quantize(_CENT, rounding=ROUND_HALF_EVEN), "f")
    integer_part, _, fraction = text.partition(".")

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)

    formatted = f"{'.'.join(groups)},{fraction or '00'}"
    return f"-{formatted}" if value < 0 else formatted


def parse_kind(kind: Union[str, RecordKind]) -> RecordKind:
    """Convert a boundary kind tag ("Income"/"Expense") into a RecordKind."""
    if isinstance(kind, RecordKind):
        return kind
    try:
        return RecordKind(str(kind).strip())
    except ValueError as e:
        raise InvalidInputError(f"Invalid transaction type: {kind!r}") from e


def parse_amount(amount: AmountInput) -> Decimal:
    """Convert a boundary amount (text or number) into a Decimal."""
    if isinstance(amount, bool):
        raise InvalidInputError(f"Invalid amount: {amount!r}")
    if isinstance(amount, Decimal):
        return amount
    try:
        # str() keeps float inputs at their shortest repr (12.5, not 12.4999...)
        return Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f"Invalid amount: {amount!r}") from e


class LedgerCommands:
    """
    The command set exposed to the UI host.

    Every method returns a CommandResult. The store, the AI agent and
    the audit logger are injected.
    """

    def __init__(
        self,
        store: LedgerStore,
        agent: Optional[LedgerAnalysisAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = agent or LedgerAnalysisAgent(GeminiTextClient())
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # -------------------------------------------------------------------------
    # Record commands
    # -------------------------------------------------------------------------

    def list_all(self) -> CommandResult:
        """All records, in insertion order."""
        return CommandResult.ok(self._store.list_all())

    def list_by_category(self, category: Optional[str] = None) -> CommandResult:
        """Records in one category; None or "All Categories" means all."""
        return CommandResult.ok(self._store.records_for_category(category))

    async def create(
        self,
        kind: Union[str, RecordKind],
        amount: AmountInput,
        description: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Record a new transaction."""
        logger.debug("command_create", kind=str(kind), category=category)
        try:
            record = await self._store.create(
                parse_kind(kind),
                parse_amount(amount),
                description,
                category,
            )
        except (InvalidInputError, PersistenceError) as e:
            return await self._failure("create", e, correlation_id)

        await self._audit_logger.log(
            AuditEventBuilder.record_created(
                record_id=record.id,
                category=record.category,
                amount=str(record.amount),
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(record)

    async def update(
        self,
        record_id: str,
        kind: Union[str, RecordKind],
        amount: AmountInput,
        description: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Replace the editable fields of an existing transaction."""
        logger.debug("command_update", record_id=record_id)
        try:
            record = await self._store.update(
                record_id,
                parse_kind(kind),
                parse_amount(amount),
                description,
                category,
            )
        except (InvalidInputError, NotFoundError, PersistenceError) as e:
            return await self._failure(
                "update", e, correlation_id,
                entity_type="record", entity_id=record_id,
            )

        await self._audit_logger.log(
            AuditEventBuilder.record_updated(
                record_id=record.id,
                category=record.category,
                amount=str(record.amount),
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(record)

    async def delete(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Remove one transaction."""
        logger.debug("command_delete", record_id=record_id)
        try:
            await self._store.delete(record_id)
        except (NotFoundError, PersistenceError) as e:
            return await self._failure(
                "delete", e, correlation_id,
                entity_type="record", entity_id=record_id,
            )

        await self._audit_logger.log(
            AuditEventBuilder.record_deleted(record_id, correlation_id=correlation_id)
        )
        return CommandResult.ok()

    # -------------------------------------------------------------------------
    # Category commands
    # -------------------------------------------------------------------------

    def list_categories(self) -> CommandResult:
        """Sorted category names, including "All Categories"."""
        return CommandResult.ok(self._store.list_categories())

    def category_counts(self) -> CommandResult:
        """Number of transactions per category."""
        return CommandResult.ok(self._store.category_counts())

    async def rename_category(
        self,
        old_name: str,
        new_name: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Rename a category across every transaction that uses it."""
        logger.debug("command_rename_category", old=old_name, new=new_name)
        try:
            renamed = await self._store.rename_category(old_name, new_name)
        except (InvalidInputError, NotFoundError, PersistenceError) as e:
            return await self._failure(
                "rename_category", e, correlation_id,
                entity_type="category", entity_id=(old_name or "").strip(),
            )

        await self._audit_logger.log(
            AuditEventBuilder.category_renamed(
                old_name=old_name.strip(),
                new_name=new_name.strip(),
                affected=renamed,
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(renamed)

    async def delete_category(
        self,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Delete a category together with all of its transactions."""
        logger.debug("command_delete_category", category=category)
        try:
            removed = await self._store.delete_category(category)
        except (InvalidInputError, NotFoundError, PersistenceError) as e:
            return await self._failure(
                "delete_category", e, correlation_id,
                entity_type="category", entity_id=(category or "").strip(),
            )

        await self._audit_logger.log(
            AuditEventBuilder.category_deleted(
                name=category.strip(),
                affected=removed,
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(removed)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def summary(self, category: Optional[str] = None) -> CommandResult:
        """Income, expense and balance totals for a category (or everything)."""
        return CommandResult.ok(self._store.summarize(category))

    @staticmethod
    def format_currency(amount: AmountInput) -> CommandResult:
        """Format an amount as 1.234,50 (see format_currency)."""
        if isinstance(amount, bool):
            return CommandResult.fail(ErrorKind.INVALID_INPUT, f"Invalid amount: {amount!r}")
        try:
            return CommandResult.ok(format_currency(amount))
        except (InvalidOperation, TypeError, ValueError):
            return CommandResult.fail(ErrorKind.INVALID_INPUT, f"Invalid amount: {amount!r}")

    # -------------------------------------------------------------------------
    # AI assistant
    # -------------------------------------------------------------------------

    async def ask_ai(
        self,
        prompt: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Send a free-text question to the AI assistant."""
        if not (prompt or "").strip():
            return CommandResult.fail(
                ErrorKind.INVALID_INPUT,
                "Please write a question for the AI.",
            )
        try:
            answer = await self._agent.ask(prompt)
        except (ConfigurationError, RemoteError) as e:
            return await self._ai_failure(e, correlation_id)

        await self._audit_logger.log(
            AuditEventBuilder.ai_request_completed(
                request_type="question",
                response_chars=len(answer),
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(answer)

    async def analyze_with_ai(
        self,
        category: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """Ask the AI assistant for a report on the (filtered) ledger."""
        records = self._store.records_for_category(category)
        name = (category or "").strip()
        scope = name if name and name != ALL_CATEGORIES else None
        try:
            report = await self._agent.analyze(records, scope)
        except (ConfigurationError, RemoteError) as e:
            return await self._ai_failure(e, correlation_id)

        await self._audit_logger.log(
            AuditEventBuilder.ai_request_completed(
                request_type="analysis",
                response_chars=len(report),
                correlation_id=correlation_id,
            )
        )
        return CommandResult.ok(report)

    # -------------------------------------------------------------------------
    # Error mapping
    # -------------------------------------------------------------------------

    async def _failure(
        self,
        command: str,
        error: Exception,
        correlation_id: Optional[UUID],
        entity_type: str = "record",
        entity_id: str = "",
    ) -> CommandResult:
        message = str(error)

        if isinstance(error, InvalidInputError):
            await self._audit_logger.log(
                AuditEventBuilder.validation_failed(command, message, correlation_id)
            )
            return CommandResult.fail(ErrorKind.INVALID_INPUT, message)

        if isinstance(error, NotFoundError):
            await self._audit_logger.log(
                AuditEventBuilder.not_found(command, entity_type, entity_id, correlation_id)
            )
            return CommandResult.fail(ErrorKind.NOT_FOUND, message)

        # PersistenceError: the change is already in memory
        await self._audit_logger.log(
            AuditEventBuilder.snapshot_save_failed(command, message, correlation_id)
        )
        return CommandResult.fail(
            ErrorKind.PERSISTENCE_ERROR,
            f"The change was applied but could not be saved to disk: {message}",
        )

    async def _ai_failure(
        self,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> CommandResult:
        await self._audit_logger.log(
            AuditEventBuilder.ai_request_failed(
                error_type=type(error).__name__,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        )
        kind = (
            ErrorKind.CONFIGURATION_ERROR
            if isinstance(error, ConfigurationError)
            else ErrorKind.REMOTE_ERROR
        )
        return CommandResult.fail(kind, f"Error querying the AI: {error}")


async def create_app_components(
    settings: Optional[Settings] = None,
) -> LedgerCommands:
    """
    Factory function to create all application components.

    Loads the snapshot before returning, so the ledger is ready before the
    first command. Settings errors and an undeterminable data directory
    propagate and abort startup.

    Returns:
        The LedgerCommands instance the host should keep for its lifetime
    """
    settings = settings or get_settings()
    configure_logging(settings.app.effective_log_level)

    audit_logger = AuditLogger()
    storage = JsonSnapshotStorage.from_settings(settings.ledger)

    logger.info("ledger_starting", data_file=storage.location)
    try:
        records = await storage.load()
    except PersistenceError as e:
        await audit_logger.log(
            AuditEventBuilder.snapshot_load_failed(storage.location, str(e))
        )
        records = []
    else:
        await audit_logger.log(
            AuditEventBuilder.snapshot_loaded(storage.location, len(records))
        )

    store = LedgerStore(storage, records)
    agent = LedgerAnalysisAgent(GeminiTextClient())
    return LedgerCommands(store, agent=agent, audit_logger=audit_logger)
