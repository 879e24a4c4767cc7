"""
Tests for row filters.
"""
import pytest
from datetime import date

from balancing.filters import (
    apply_filters, coffee_type_options, describe_filters, status_options
)
from balancing.matching_engine import ReconciliationEngine
from balancing.models import (
    AssessedFilter, BalancedFilter, DateRange, FinanceFilter, RowFilters
)


@pytest.fixture
def rows(sample_records, sample_assessments, sample_transactions):
    return ReconciliationEngine().reconcile(sample_records, sample_assessments, sample_transactions)


def ids(rows):
    return [r.record.id for r in rows]


class TestApplyFilters:
    """Tests for apply_filters()."""

    def test_no_filters(self, rows):
        assert ids(apply_filters(rows, RowFilters())) == ["R1", "R2", "R3", "R4"]

    def test_assessed(self, rows):
        assert ids(apply_filters(rows, RowFilters(assessed=AssessedFilter.ASSESSED))) == ["R1", "R3"]
        assert ids(apply_filters(rows, RowFilters(assessed=AssessedFilter.NOT_ASSESSED))) == ["R2", "R4"]

    def test_finance(self, rows):
        assert ids(apply_filters(rows, RowFilters(finance=FinanceFilter.MISSING))) == ["R3"]
        assert ids(apply_filters(rows, RowFilters(finance=FinanceFilter.PENDING))) == ["R2", "R4"]
        assert ids(apply_filters(rows, RowFilters(finance=FinanceFilter.CONFIRMED))) == ["R1"]

    def test_balanced(self, rows):
        assert ids(apply_filters(rows, RowFilters(balanced=BalancedFilter.BALANCED))) == ["R1"]
        assert ids(apply_filters(rows, RowFilters(balanced=BalancedFilter.UNBALANCED))) == ["R2", "R3", "R4"]

    def test_coffee_type_and_status(self, rows):
        assert ids(apply_filters(rows, RowFilters(coffee_type="Robusta"))) == ["R2", "R3"]
        assert ids(apply_filters(rows, RowFilters(coffee_type="Robusta", status="paid"))) == ["R3"]

    def test_search_case_insensitive(self, rows):
        assert ids(apply_filters(rows, RowFilters(search="  MASAKA "))) == ["R2"]

    def test_search_matches_batch(self, rows):
        assert ids(apply_filters(rows, RowFilters(search="b4"))) == ["R4"]

    def test_filters_are_conjunctive(self, rows):
        filters = RowFilters(assessed=AssessedFilter.NOT_ASSESSED, finance=FinanceFilter.PENDING,
                             search="rwenzori")
        assert ids(apply_filters(rows, filters)) == ["R4"]

    def test_no_match(self, rows):
        assert apply_filters(rows, RowFilters(search="nothing like this")) == []


class TestOptions:

    def test_coffee_type_options(self, rows):
        assert coffee_type_options(rows) == ["all", "Arabica", "Drugar", "Robusta"]

    def test_status_options(self, rows):
        assert status_options(rows) == ["all", "assessed", "paid", "pending"]


class TestDescribeFilters:
    """Tests for the filter description text."""

    def test_period_only(self):
        rng = DateRange(date(2024, 3, 1), date(2024, 3, 10))
        assert describe_filters(rng, RowFilters()) == "Period: 2024-03-01 to 2024-03-10"

    def test_active_filters(self):
        rng = DateRange(date(2024, 3, 1), date(2024, 3, 10))
        text = describe_filters(rng, RowFilters(finance=FinanceFilter.MISSING, search=" kawacom "))
        assert text == 'Period: 2024-03-01 to 2024-03-10 - Finance: missing - Search: "kawacom"'
