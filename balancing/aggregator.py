"""Summary statistics over the filtered rows."""
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Union

from .models import FinanceState, ReconciledRow, ReportSummary

Number = Union[int, float, Decimal]


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent(numerator: Number, denominator: Number) -> str:
    """Whole percentage string; "0%" when the denominator is zero."""
    if not denominator:
        return "0%"
    return f"{round_half_up(Decimal(str(numerator)) / Decimal(str(denominator)) * 100)}%"


def flow_health(total: int, assessed: int, finance_missing: int) -> int:
    """
    Blend of assessment coverage and finance coverage, 0-100.

    An empty row set scores 0.
    """
    if total <= 0:
        return 0
    t = Decimal(total)
    assessment_coverage = Decimal(assessed) / t
    finance_coverage = Decimal(total - finance_missing) / t
    return round_half_up((assessment_coverage + finance_coverage) / 2 * 100)


def summarize(rows: Sequence[ReconciledRow]) -> ReportSummary:
    """Compute the report statistics for the given (filtered) rows."""
    summary = ReportSummary(total_rows=len(rows))

    for row in rows:
        summary.total_kilograms += row.record.kilograms
        summary.total_bags += row.record.bags
        summary.total_paid += row.paid_total
        summary.total_confirmed_paid += row.confirmed_paid

        if row.has_assessment:
            summary.assessed_count += 1

        if row.finance_state == FinanceState.MISSING:
            summary.finance_missing_count += 1
        elif row.finance_state == FinanceState.PENDING:
            summary.finance_pending_count += 1
        else:
            summary.finance_confirmed_count += 1

        if row.is_balanced:
            summary.balanced_count += 1

    summary.not_assessed_count = summary.total_rows - summary.assessed_count
    summary.unbalanced_count = summary.total_rows - summary.balanced_count
    summary.flow_health = flow_health(
        summary.total_rows, summary.assessed_count, summary.finance_missing_count
    )
    return summary


def format_number(value: Number) -> str:
    """Thousands-separated number, trailing zeros dropped."""
    if isinstance(value, Decimal):
        value = value.normalize()
        if value == value.to_integral_value():
            value = value.quantize(Decimal("1"))
    return f"{value:,}"


def format_ugx(value: Number) -> str:
    return f"UGX {format_number(value)}"
