"""
Tests for data models.
"""
import pytest
from datetime import date
from decimal import Decimal

from balancing.exceptions import InvalidDateRangeError
from balancing.models import (
    Assessment, DateRange, FinanceFilter, FinanceState, FinanceTransaction,
    Preset, PurchaseRecord, ReportSummary, TransactionStatus, to_decimal
)


class TestPurchaseRecord:
    """Tests for PurchaseRecord parsing."""

    def test_from_row(self):
        """Test building a record from a backend row."""
        record = PurchaseRecord.from_row({
            "id": "R1",
            "batch_number": "B1",
            "date": "2024-03-10",
            "coffee_type": "Arabica",
            "kilograms": 1250.5,
            "bags": 21,
            "supplier_name": "Kawacom Growers",
            "status": "pending",
        })
        assert record.id == "R1"
        assert record.date == date(2024, 3, 10)
        assert record.kilograms == Decimal("1250.5")
        assert record.bags == 21

    def test_from_row_with_nulls(self):
        """Null numerics become zero, null strings become empty."""
        record = PurchaseRecord.from_row({"id": "R2", "kilograms": None, "bags": None, "batch_number": None})
        assert record.kilograms == Decimal("0")
        assert record.bags == 0
        assert record.batch_number == ""
        assert record.date is None


class TestAssessment:
    """Tests for Assessment parsing."""

    def test_store_record_id_maps_to_source_record_id(self):
        assessment = Assessment.from_row({
            "id": "A1",
            "store_record_id": "R1",
            "batch_number": "B1",
            "suggested_price": "7200",
            "final_price": None,
        })
        assert assessment.source_record_id == "R1"
        assert assessment.suggested_price == Decimal("7200")
        assert assessment.final_price is None

    def test_empty_store_record_id_is_none(self):
        assessment = Assessment.from_row({"id": "A2", "store_record_id": ""})
        assert assessment.source_record_id is None

    def test_numeric_ids_become_text(self):
        assessment = Assessment.from_row({"id": 7, "store_record_id": 42, "batch_number": 1001})
        assert assessment.id == "7"
        assert assessment.source_record_id == "42"
        assert assessment.batch_number == "1001"


class TestFinanceTransaction:
    """Tests for FinanceTransaction parsing."""

    def test_confirmed_status(self):
        tx = FinanceTransaction.from_row({"id": "T1", "amount": 500, "status": "confirmed", "reference": "R1"})
        assert tx.status == TransactionStatus.CONFIRMED
        assert tx.is_confirmed() is True
        assert tx.amount == Decimal("500")

    def test_unknown_status_is_pending(self):
        tx = FinanceTransaction.from_row({"id": "T2", "amount": "1,000", "status": "draft"})
        assert tx.status == TransactionStatus.PENDING
        assert tx.amount == Decimal("1000")

    def test_numeric_reference_becomes_text(self):
        tx = FinanceTransaction.from_row({"id": 3, "amount": 250, "reference": 42})
        assert tx.reference == "42"

    def test_missing_reference_is_none(self):
        tx = FinanceTransaction.from_row({"id": "T3", "amount": 250, "reference": None})
        assert tx.reference is None


class TestDateRange:
    """Tests for DateRange."""

    def test_valid_range(self):
        rng = DateRange(date(2024, 3, 1), date(2024, 3, 10))
        assert rng.validate() is rng
        assert str(rng) == "2024-03-01 to 2024-03-10"

    def test_single_day_is_valid(self):
        assert DateRange(date(2024, 3, 1), date(2024, 3, 1)).is_valid() is True

    def test_inverted_range(self):
        with pytest.raises(InvalidDateRangeError) as exc_info:
            DateRange(date(2024, 3, 10), date(2024, 3, 1)).validate()
        assert exc_info.value.code == "INVALID_DATE_RANGE"
        assert exc_info.value.details["from_date"] == "2024-03-10"


class TestEnums:
    """Tests for enum values."""

    def test_presets(self):
        assert [p.value for p in Preset] == ["daily", "weekly", "monthly", "custom"]

    def test_finance_filter_covers_states(self):
        """Every finance state has a matching filter value."""
        filter_values = {f.value for f in FinanceFilter}
        assert {s.value for s in FinanceState} <= filter_values
        assert "all" in filter_values


class TestHelpers:

    def test_to_decimal_bad_value(self):
        assert to_decimal("n/a") == Decimal("0")

    def test_summary_financed_count(self):
        summary = ReportSummary(finance_pending_count=2, finance_confirmed_count=3)
        assert summary.financed_count == 5
