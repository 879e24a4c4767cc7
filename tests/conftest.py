"""
Pytest fixtures for balancing report tests.
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from balancing.config import ReportConfig, SupabaseConfig
from balancing.models import (
    Assessment, FinanceTransaction, PurchaseRecord, TransactionStatus
)
from balancing.supabase_client import InMemoryDataSource

# Wednesday
TODAY = date(2024, 3, 13)


def make_record(id, batch="", days_ago=0, kilograms="100", bags=2,
                supplier="Bugisu Co-op", coffee_type="Arabica", status="pending"):
    """Helper to create purchase records."""
    return PurchaseRecord(
        id=id,
        batch_number=batch,
        date=TODAY - timedelta(days=days_ago),
        coffee_type=coffee_type,
        kilograms=Decimal(kilograms),
        bags=bags,
        supplier_name=supplier,
        status=status,
    )


def make_assessment(id, record_id=None, batch="", date_assessed="2024-03-12",
                    status="approved", suggested="7000", final=None):
    """Helper to create assessments."""
    return Assessment(
        id=id,
        source_record_id=record_id,
        batch_number=batch,
        status=status,
        date_assessed=date_assessed,
        assessed_by="Quality Officer",
        suggested_price=Decimal(suggested),
        final_price=Decimal(final) if final is not None else None,
    )


def make_txn(id, reference, amount="1000", confirmed=False,
             transaction_type="coffee_purchase", created_at="2024-03-12T10:00:00"):
    """Helper to create finance transactions."""
    return FinanceTransaction(
        id=id,
        transaction_type=transaction_type,
        amount=Decimal(amount),
        balance_after=Decimal("0"),
        reference=reference,
        status=TransactionStatus.CONFIRMED if confirmed else TransactionStatus.PENDING,
        created_at=created_at,
    )


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def report_config():
    """Report configuration independent of the environment."""
    return ReportConfig(
        chunk_size=50,
        finance_types=["coffee_purchase", "supplier_payment", "purchase_payment"],
        error_log_limit=12,
        page_size=25,
    )


@pytest.fixture
def supabase_config():
    """Well-formed backend configuration."""
    return SupabaseConfig(
        url="https://project.supabase.co",
        anon_key="a" * 40,
        access_token="session-token",
        timeout=5,
    )


@pytest.fixture
def sample_records():
    return [
        make_record("R1", batch="B1", days_ago=0, kilograms="600", bags=10,
                    supplier="Kawacom Growers", coffee_type="Arabica", status="assessed"),
        make_record("R2", batch="B2", days_ago=1, kilograms="300", bags=5,
                    supplier="Masaka Union", coffee_type="Robusta", status="pending"),
        make_record("R3", batch="B3", days_ago=2, kilograms="120", bags=2,
                    supplier="Bugisu Co-op", coffee_type="Robusta", status="paid"),
        make_record("R4", batch="B4", days_ago=3, kilograms="60", bags=1,
                    supplier="Rwenzori Farmers", coffee_type="Drugar", status="pending"),
    ]


@pytest.fixture
def sample_assessments():
    return [
        make_assessment("A1", record_id="R1", batch="B1"),
        make_assessment("A3", record_id=None, batch="B3"),
    ]


@pytest.fixture
def sample_transactions():
    return [
        make_txn("T1", "R1", amount="1000", confirmed=True),
        make_txn("T2", "B2", amount="400"),
        make_txn("T3", "R4", amount="250"),
    ]


@pytest.fixture
def sample_source(sample_records, sample_assessments, sample_transactions):
    """In-memory data source with the sample ledgers."""
    return InMemoryDataSource(sample_records, sample_assessments, sample_transactions)
