"""Data models for the coffee balancing report."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import InvalidDateRangeError


class Preset(Enum):
    """Date range preset."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class TransactionStatus(Enum):
    """Finance transaction status."""
    PENDING = "pending"
    CONFIRMED = "confirmed"


class FinanceState(Enum):
    """Finance coverage of a purchase record."""
    MISSING = "missing"
    PENDING = "pending"
    CONFIRMED = "confirmed"


class AssessedFilter(Enum):
    ALL = "all"
    ASSESSED = "assessed"
    NOT_ASSESSED = "not_assessed"


class FinanceFilter(Enum):
    ALL = "all"
    MISSING = "missing"
    PENDING = "pending"
    CONFIRMED = "confirmed"


class BalancedFilter(Enum):
    ALL = "all"
    BALANCED = "balanced"
    UNBALANCED = "unbalanced"


def to_decimal(value: Any) -> Decimal:
    """Parse a backend numeric (number, string or None) into a Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).replace(",", ""))
    except InvalidOperation:
        return Decimal("0")


def to_date(value: Any) -> Optional[date]:
    """Parse YYYY-MM-DD (or an ISO timestamp) into a date."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class PurchaseRecord:
    """A coffee delivery intake entry (coffee_records)."""
    id: str
    batch_number: str = ""
    date: Optional[date] = None
    coffee_type: str = ""
    kilograms: Decimal = Decimal("0")
    bags: int = 0
    supplier_name: str = ""
    status: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PurchaseRecord":
        return cls(
            id=_text(row.get("id")),
            batch_number=_text(row.get("batch_number")),
            date=to_date(row.get("date")),
            coffee_type=_text(row.get("coffee_type")),
            kilograms=to_decimal(row.get("kilograms")),
            bags=int(to_decimal(row.get("bags"))),
            supplier_name=_text(row.get("supplier_name")),
            status=_text(row.get("status")),
        )


@dataclass(frozen=True)
class Assessment:
    """A quality assessment (quality_assessments)."""
    id: str
    source_record_id: Optional[str] = None
    batch_number: str = ""
    status: str = ""
    date_assessed: str = ""
    assessed_by: str = ""
    suggested_price: Decimal = Decimal("0")
    final_price: Optional[Decimal] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Assessment":
        final_price = row.get("final_price")
        return cls(
            id=_text(row.get("id")),
            source_record_id=_text(row.get("store_record_id")) or None,
            batch_number=_text(row.get("batch_number")),
            status=_text(row.get("status")),
            date_assessed=_text(row.get("date_assessed")),
            assessed_by=_text(row.get("assessed_by")),
            suggested_price=to_decimal(row.get("suggested_price")),
            final_price=None if final_price is None else to_decimal(final_price),
        )


@dataclass(frozen=True)
class FinanceTransaction:
    """A cash ledger movement (finance_cash_transactions)."""
    id: str
    transaction_type: str = ""
    amount: Decimal = Decimal("0")
    balance_after: Decimal = Decimal("0")
    reference: Optional[str] = None
    status: TransactionStatus = TransactionStatus.PENDING
    created_at: str = ""

    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FinanceTransaction":
        status = _text(row.get("status")).lower()
        return cls(
            id=_text(row.get("id")),
            transaction_type=_text(row.get("transaction_type")),
            amount=to_decimal(row.get("amount")),
            balance_after=to_decimal(row.get("balance_after")),
            reference=_text(row.get("reference")) or None,
            status=TransactionStatus.CONFIRMED if status == "confirmed" else TransactionStatus.PENDING,
            created_at=_text(row.get("created_at")),
        )


@dataclass(frozen=True)
class ReconciledRow:
    """One purchase record joined to its assessment and payments."""
    record: PurchaseRecord
    assessment: Optional[Assessment]
    transactions: Tuple[FinanceTransaction, ...]
    paid_total: Decimal
    confirmed_paid: Decimal
    has_assessment: bool
    finance_state: FinanceState
    is_balanced: bool

    @property
    def payment_count(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""
    from_date: date
    to_date: date

    def is_valid(self) -> bool:
        return self.from_date <= self.to_date

    def validate(self) -> "DateRange":
        if not self.is_valid():
            raise InvalidDateRangeError(self.from_date, self.to_date)
        return self

    def __str__(self) -> str:
        return f"{self.from_date.isoformat()} to {self.to_date.isoformat()}"


@dataclass(frozen=True)
class RowFilters:
    """Secondary filters applied to reconciled rows in memory."""
    assessed: AssessedFilter = AssessedFilter.ALL
    finance: FinanceFilter = FinanceFilter.ALL
    balanced: BalancedFilter = BalancedFilter.ALL
    coffee_type: str = "all"
    status: str = "all"
    search: str = ""


@dataclass
class ReportSummary:
    """Aggregate statistics over the filtered rows."""
    total_rows: int = 0
    total_kilograms: Decimal = Decimal("0")
    total_bags: int = 0
    total_paid: Decimal = Decimal("0")
    total_confirmed_paid: Decimal = Decimal("0")

    assessed_count: int = 0
    not_assessed_count: int = 0

    finance_missing_count: int = 0
    finance_pending_count: int = 0
    finance_confirmed_count: int = 0

    balanced_count: int = 0
    unbalanced_count: int = 0

    flow_health: int = 0

    @property
    def financed_count(self) -> int:
        return self.finance_pending_count + self.finance_confirmed_count


@dataclass
class FetchResult:
    """Raw collections retrieved for one date range."""
    records: List[PurchaseRecord] = field(default_factory=list)
    assessments: List[Assessment] = field(default_factory=list)
    transactions: List[FinanceTransaction] = field(default_factory=list)
    errors: list = field(default_factory=list)
    request_count: int = 0
