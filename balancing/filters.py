"""Row filters for reconciled rows.

Filters run over the rows already in memory; changing them never
triggers a re-fetch.
"""
from typing import Iterable, List

from .models import (
    AssessedFilter, BalancedFilter, DateRange, FinanceFilter, ReconciledRow, RowFilters
)

ALL = "all"


def search_text(row: ReconciledRow) -> str:
    """Lower-cased haystack for free-text search."""
    r = row.record
    return f"{r.batch_number} {r.supplier_name} {r.coffee_type} {r.status}".lower()


def matches(row: ReconciledRow, filters: RowFilters) -> bool:
    """True when the row passes every active predicate."""
    if filters.assessed == AssessedFilter.ASSESSED and not row.has_assessment:
        return False
    if filters.assessed == AssessedFilter.NOT_ASSESSED and row.has_assessment:
        return False

    if filters.finance != FinanceFilter.ALL and row.finance_state.value != filters.finance.value:
        return False

    if filters.balanced == BalancedFilter.BALANCED and not row.is_balanced:
        return False
    if filters.balanced == BalancedFilter.UNBALANCED and row.is_balanced:
        return False

    if filters.coffee_type != ALL and row.record.coffee_type != filters.coffee_type:
        return False
    if filters.status != ALL and row.record.status != filters.status:
        return False

    query = filters.search.strip().lower()
    if query and query not in search_text(row):
        return False

    return True


def apply_filters(rows: Iterable[ReconciledRow], filters: RowFilters) -> List[ReconciledRow]:
    return [row for row in rows if matches(row, filters)]


def _options(values: Iterable[str]) -> List[str]:
    return [ALL] + sorted({v for v in values if v})


def coffee_type_options(rows: Iterable[ReconciledRow]) -> List[str]:
    return _options(row.record.coffee_type for row in rows)


def status_options(rows: Iterable[ReconciledRow]) -> List[str]:
    return _options(row.record.status for row in rows)


def describe_filters(date_range: DateRange, filters: RowFilters) -> str:
    """Human readable description of the period and active filters."""
    parts = [f"Period: {date_range.from_date.isoformat()} to {date_range.to_date.isoformat()}"]
    if filters.assessed != AssessedFilter.ALL:
        parts.append(f"Assessment: {filters.assessed.value}")
    if filters.finance != FinanceFilter.ALL:
        parts.append(f"Finance: {filters.finance.value}")
    if filters.balanced != BalancedFilter.ALL:
        parts.append(f"Balance: {filters.balanced.value}")
    if filters.coffee_type != ALL:
        parts.append(f"Coffee: {filters.coffee_type}")
    if filters.status != ALL:
        parts.append(f"Status: {filters.status}")
    if filters.search.strip():
        parts.append(f'Search: "{filters.search.strip()}"')
    return " - ".join(parts)
