"""
Core Data Models for Ledgerbook

These models define the strict schemas for every transaction the ledger holds.
They are designed to:
1. Enforce the record invariants at runtime (positive amount, non-empty labels)
2. Provide clear validation error messages to the command boundary
3. Serialize to the exact snapshot layout stored on disk

DESIGN DECISION: Validation lives in the models, not in the store.
The store builds a RecordDraft before it takes its lock, so a bad input
never mutates state and never touches disk.
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    computed_field,
    field_serializer,
)


# Reserved label used by the UI to mean "no category filter".
# It is never a real category.
ALL_CATEGORIES = "All Categories"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """
    Direction of a transaction.

    The string values are the literal tags stored in the snapshot file
    and sent across the command boundary.
    """
    INCOME = "Income"
    EXPENSE = "Expense"


class ErrorKind(str, Enum):
    """Error categories reported to the command boundary."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    PERSISTENCE_ERROR = "persistence_error"
    REMOTE_ERROR = "remote_error"
    CONFIGURATION_ERROR = "configuration_error"


# =============================================================================
# FIELD TYPES
# =============================================================================

def _float_to_decimal(value: Any) -> Any:
    # 0.1 becomes Decimal("0.1"), not its binary expansion
    if isinstance(value, float) and math.isfinite(value):
        return Decimal(repr(value))
    return value


def _fits_json_number(value: Decimal) -> Decimal:
    """Amounts are stored as JSON numbers, so they must survive a float round trip."""
    as_float = float(value)
    if not math.isfinite(as_float):
        raise ValueError("Amount is too large to be stored")
    if Decimal(repr(as_float)) != value:
        raise ValueError("Amount has more precision than can be stored")
    return value


def _reject_sentinel(value: str) -> str:
    if value == ALL_CATEGORIES:
        raise ValueError(f"'{ALL_CATEGORIES}' is reserved and cannot be used as a category")
    return value


Amount = Annotated[
    Decimal,
    BeforeValidator(_float_to_decimal),
    Field(gt=0, allow_inf_nan=False, description="Positive transaction amount"),
    AfterValidator(_fits_json_number),
]

Label = Annotated[str, Field(min_length=1)]

CategoryName = Annotated[
    str,
    Field(min_length=1, description="Category (store) name"),
    AfterValidator(_reject_sentinel),
]

_category_adapter = TypeAdapter(CategoryName)


def validate_category_name(value: str) -> str:
    """
    Check a bare category name against the same rules a record uses.

    Raises:
        ValueError: With a one-line message when the name is rejected
    """
    try:
        return _category_adapter.validate_python(value.strip())
    except ValidationError as e:
        raise ValueError("; ".join(err["msg"] for err in e.errors())) from e


# =============================================================================
# RECORD MODELS
# =============================================================================

class RecordDraft(BaseModel):
    """
    The mutable part of a record, as supplied by a caller.

    Used by create and update: if a draft validates, the store can apply it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: RecordKind
    amount: Amount
    description: Label
    category: CategoryName


class Record(BaseModel):
    """
    A single ledger transaction.

    CRITICAL: `id` and `created_at` are assigned once by the store and are
    never changed afterwards. Everything else may be replaced on update.

    Field aliases match the snapshot file layout:
    kind -> "type", category -> "store_name", created_at -> "timestamp".
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Unique record ID"
    )
    kind: RecordKind = Field(
        ...,
        alias="type",
        description="Income or Expense"
    )
    amount: Amount
    description: Label
    category: CategoryName = Field(alias="store_name")
    created_at: int = Field(
        ...,
        alias="timestamp",
        ge=0,
        description="Creation time in UTC seconds"
    )

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, amount: Decimal) -> float:
        """Snapshot files carry amounts as plain JSON numbers."""
        return float(amount)

    def apply(self, draft: RecordDraft) -> None:
        """Replace every mutable field with the draft's values."""
        self.kind = draft.kind
        self.amount = draft.amount
        self.description = draft.description
        self.category = draft.category

    def to_snapshot(self) -> dict:
        """Convert to the dictionary written to the snapshot file."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# AGGREGATE / BOUNDARY MODELS
# =============================================================================

class LedgerSummary(BaseModel):
    """
    Totals over a set of records.

    `category` is None when the summary covers every record.
    """

    category: Optional[str] = None
    record_count: int = Field(ge=0)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    @computed_field
    @property
    def balance(self) -> Decimal:
        """Income minus expenses."""
        return self.total_income - self.total_expense


class CommandResult(BaseModel):
    """
    Outcome of one command at the UI boundary.

    Commands never raise. On failure `error_kind` says what went wrong and
    `error_message` is safe to show to the user. `data` may still be set on
    a persistence failure, because the in-memory change was kept.
    """
    success: bool
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "CommandResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error_kind: ErrorKind,
        message: str,
        data: Any = None,
    ) -> "CommandResult":
        return cls(
            success=False,
            data=data,
            error_kind=error_kind,
            error_message=message,
        )
