"""
Multi-source fetcher.

Retrieves the three ledgers for one date range:

1. Purchase records dated in the range
2. Assessments by record id, then by batch number
3. Finance transactions by record id, then by batch number

Key lists are split into fixed-size chunks to keep IN-lists within the
backend's query limits. Chunks run one after another. A failing chunk
ends its own pass only; what was merged before it is kept and the next
pass still runs.
"""
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from .config import config, ReportConfig
from .error_log import classify_error
from .exceptions import BalancingError
from .logging_config import get_logger, log_chunk_failed
from .models import DateRange, FetchResult
from .supabase_client import BY_BATCH, BY_RECORD_ID, BalancingDataSource

logger = get_logger("fetcher")

T = TypeVar("T")


def chunked(keys: Sequence[T], size: int) -> List[List[T]]:
    """Split keys into consecutive slices of at most size items."""
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(keys[i:i + size]) for i in range(0, len(keys), size)]


def unique_by_id(items: Iterable[T]) -> List[T]:
    """Drop repeated ids, keeping the first occurrence."""
    seen = set()
    out = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def _distinct(values: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return out


class MultiSourceFetcher:
    """Fetches purchase records and everything that references them."""

    def __init__(
        self,
        data_source: BalancingDataSource,
        cfg: Optional[ReportConfig] = None,
        chunk_size: Optional[int] = None,
        finance_types: Optional[Sequence[str]] = None
    ):
        self.data_source = data_source
        self.config = cfg or config.report
        self.chunk_size = chunk_size or self.config.chunk_size
        self.finance_types = list(finance_types or self.config.finance_types)

    def fetch(self, date_range: DateRange) -> FetchResult:
        """
        Fetch all collections for the range.

        A failure while reading purchase records propagates to the caller;
        failures in later passes are recorded in FetchResult.errors.
        """
        result = FetchResult()

        result.records = self.data_source.fetch_purchase_records(
            date_range.from_date, date_range.to_date
        )
        result.request_count += 1

        if not result.records:
            logger.debug(f"No purchase records for {date_range}; skipping lookups")
            return result

        ids = _distinct(r.id for r in result.records)
        batches = _distinct(r.batch_number for r in result.records)

        # Assessments (by store_record_id, then batch_number)
        assessments = []
        assessments += self._run_pass(
            result, "quality_assessments (by store_record_id)", ids,
            lambda chunk: self.data_source.fetch_assessments(BY_RECORD_ID, chunk)
        )
        assessments += self._run_pass(
            result, "quality_assessments (by batch_number)", batches,
            lambda chunk: self.data_source.fetch_assessments(BY_BATCH, chunk)
        )
        result.assessments = unique_by_id(assessments)

        # Finance transactions (reference == record id or batch number)
        transactions = []
        transactions += self._run_pass(
            result, "finance_cash_transactions (by record id)", ids,
            lambda chunk: self.data_source.fetch_finance_transactions(self.finance_types, chunk)
        )
        transactions += self._run_pass(
            result, "finance_cash_transactions (by batch_number)", batches,
            lambda chunk: self.data_source.fetch_finance_transactions(self.finance_types, chunk)
        )
        result.transactions = unique_by_id(transactions)

        return result

    def _run_pass(
        self,
        result: FetchResult,
        pass_name: str,
        keys: List[str],
        read: Callable[[List[str]], list]
    ) -> list:
        """Run one chunked pass; stop at the first failing chunk."""
        out = []
        for index, chunk in enumerate(chunked(keys, self.chunk_size)):
            result.request_count += 1
            try:
                out.extend(read(chunk))
            except BalancingError as e:
                log_chunk_failed(logger, pass_name, index, len(chunk), e)
                result.errors.append(classify_error(
                    f"Loading {pass_name} failed",
                    e,
                    env=self.data_source.env,
                    online=self.data_source.is_online()
                ))
                break
        return out
