"""
Tests for the chunked multi-source fetcher.
"""
import pytest
from datetime import date

from balancing.error_log import ErrorKind
from balancing.exceptions import BackendAPIError, NetworkError
from balancing.fetcher import MultiSourceFetcher, chunked, unique_by_id
from balancing.models import DateRange
from balancing.supabase_client import BY_BATCH, BY_RECORD_ID, InMemoryDataSource

from conftest import TODAY, make_assessment, make_record, make_txn

RANGE = DateRange(date(2024, 3, 1), TODAY)


def many_records(count):
    return [make_record(f"R{i:03d}", batch=f"B{i:03d}", days_ago=i % 10) for i in range(count)]


class TestChunking:
    """Tests for key chunking."""

    def test_chunk_sizes(self):
        chunks = chunked(list(range(120)), 50)
        assert [len(c) for c in chunks] == [50, 50, 20]
        assert sum(chunks, []) == list(range(120))

    def test_empty(self):
        assert chunked([], 50) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunked([1, 2], 0)

    def test_unique_by_id_keeps_first(self):
        first = make_txn("T1", "R1", amount="10")
        dup = make_txn("T1", "B1", amount="99")
        assert unique_by_id([first, dup]) == [first]


class TestFetch:
    """Tests for MultiSourceFetcher.fetch."""

    def test_no_records_skips_lookups(self, report_config):
        source = InMemoryDataSource()
        result = MultiSourceFetcher(source, report_config).fetch(RANGE)
        assert result.records == []
        assert result.request_count == 1
        assert [c[0] for c in source.read_calls] == ["fetch_purchase_records"]

    def test_four_passes(self, sample_source, report_config):
        result = MultiSourceFetcher(sample_source, report_config).fetch(RANGE)
        calls = sample_source.read_calls
        assert [c[0] for c in calls] == [
            "fetch_purchase_records",
            "fetch_assessments",
            "fetch_assessments",
            "fetch_finance_transactions",
            "fetch_finance_transactions",
        ]
        assert calls[1][1][0] == BY_RECORD_ID
        assert calls[2][1][0] == BY_BATCH
        assert result.request_count == 5
        assert result.errors == []
        assert {a.id for a in result.assessments} == {"A1", "A3"}
        assert {t.id for t in result.transactions} == {"T1", "T2", "T3"}

    def test_records_newest_first(self, sample_source, report_config):
        result = MultiSourceFetcher(sample_source, report_config).fetch(RANGE)
        dates = [r.date for r in result.records]
        assert dates == sorted(dates, reverse=True)

    def test_chunked_requests(self, report_config):
        source = InMemoryDataSource(many_records(120))
        result = MultiSourceFetcher(source, report_config).fetch(RANGE)
        # 1 + 4 passes x 3 chunks
        assert result.request_count == 13
        id_chunks = [c[1][1] for c in source.read_calls
                     if c[0] == "fetch_assessments" and c[1][0] == BY_RECORD_ID]
        assert [len(c) for c in id_chunks] == [50, 50, 20]

    def test_assessment_found_by_both_passes_is_deduplicated(self, report_config):
        records = [make_record("R1", batch="B1")]
        assessments = [make_assessment("A1", record_id="R1", batch="B1")]
        source = InMemoryDataSource(records, assessments)
        result = MultiSourceFetcher(source, report_config).fetch(RANGE)
        assert [a.id for a in result.assessments] == ["A1"]

    def test_finance_type_whitelist(self, report_config):
        records = [make_record("R1", batch="B1")]
        txns = [make_txn("T1", "R1"), make_txn("T2", "R1", transaction_type="salary")]
        source = InMemoryDataSource(records, transactions=txns)
        result = MultiSourceFetcher(source, report_config).fetch(RANGE)
        assert [t.id for t in result.transactions] == ["T1"]

    def test_custom_chunk_size(self, report_config):
        source = InMemoryDataSource(many_records(5))
        result = MultiSourceFetcher(source, report_config, chunk_size=2).fetch(RANGE)
        assert result.request_count == 1 + 4 * 3


class TestPartialFailure:
    """A failing chunk stops its own pass only."""

    def test_failed_record_id_pass_keeps_other_passes(self, report_config):
        records = [make_record("R1", batch="B1"), make_record("R2", batch="B2")]
        assessments = [
            make_assessment("A1", record_id="R1", batch="X1"),
            make_assessment("A2", batch="B2"),
        ]
        txns = [make_txn("T1", "R1")]
        source = InMemoryDataSource(records, assessments, txns)
        # call 1 is the record-id assessment pass
        source.failures[1] = BackendAPIError("relation does not exist", status_code=500, error_code="42P01")

        result = MultiSourceFetcher(source, report_config).fetch(RANGE)

        assert [a.id for a in result.assessments] == ["A2"]
        assert [t.id for t in result.transactions] == ["T1"]
        assert len(result.errors) == 1
        error = result.errors[0]
        assert error.kind == ErrorKind.SERVICE
        assert error.title == "Loading quality_assessments (by store_record_id) failed"
        assert error.details["code"] == "42P01"

    def test_failure_skips_rest_of_pass(self, report_config):
        source = InMemoryDataSource(many_records(120))
        # calls: 0 records, 1-3 id pass; fail its second chunk
        source.failures[2] = NetworkError("Failed to fetch")

        result = MultiSourceFetcher(source, report_config).fetch(RANGE)

        id_calls = [c for c in source.read_calls
                    if c[0] == "fetch_assessments" and c[1][0] == BY_RECORD_ID]
        assert len(id_calls) == 2
        assert result.request_count == 1 + 2 + 3 + 3 + 3
        assert [e.kind for e in result.errors] == [ErrorKind.NETWORK]

    def test_failure_in_record_fetch_propagates(self, sample_source, report_config):
        sample_source.failures[0] = NetworkError("Failed to fetch")
        with pytest.raises(NetworkError):
            MultiSourceFetcher(sample_source, report_config).fetch(RANGE)
