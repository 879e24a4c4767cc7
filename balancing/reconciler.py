"""
Balancing report orchestrator.

Coordinates all components:
1. Resolve the date range and check the session
2. Fetch purchase records, assessments and finance transactions
3. Reconcile rows
4. Filter, aggregate and paginate
5. Export

Errors are classified onto the report's error log; a load never raises.
Loads are serialized with a generation counter: a load whose generation
is no longer current when its data arrives is discarded.
"""
import random
import time
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .aggregator import summarize
from .config import config, ReportConfig
from .date_range import RangeSelection
from .error_log import DetailedError, ErrorKind, ErrorLog, classify_error, validation_error
from .exceptions import BalancingError, EmptyExportError, InvalidDateRangeError, ValidationError
from .fetcher import MultiSourceFetcher
from .filters import apply_filters, coffee_type_options, describe_filters, status_options
from .logging_config import (
    get_logger, log_error, log_load_complete, log_load_start, log_stale_load_discarded
)
from .matching_engine import ReconciliationEngine
from .models import (
    Assessment, DateRange, FetchResult, FinanceTransaction, Preset, PurchaseRecord,
    ReconciledRow, ReportSummary, RowFilters, TransactionStatus
)
from .reporting import (
    PAGE_SIZE_OPTIONS, ExportContext, Page, ReportGenerator, clamp_page, paginate
)
from .supabase_client import BalancingDataSource, InMemoryDataSource

logger = get_logger("report")


@dataclass
class ReportView:
    """Snapshot of the report as currently displayed."""
    date_range: DateRange
    preset: Preset
    filters: RowFilters
    rows: List[ReconciledRow]
    filtered_rows: List[ReconciledRow]
    summary: ReportSummary
    page: Page
    filters_text: str
    coffee_type_options: List[str]
    status_options: List[str]
    errors: List[DetailedError]
    generated_at: str
    last_updated: str
    finance_types: List[str] = field(default_factory=list)

    def export_context(self) -> ExportContext:
        return ExportContext(
            date_range=self.date_range,
            filters_text=self.filters_text,
            generated_at=self.generated_at,
            finance_types=list(self.finance_types),
        )


class BalancingReport:
    """
    The balancing report and its in-memory state.

    Usage:
        report = BalancingReport(SupabaseDataSource())
        report.choose_preset(Preset.WEEKLY)
        report.load()
        view = report.view()
    """

    def __init__(
        self,
        data_source: BalancingDataSource,
        cfg: Optional[ReportConfig] = None,
        preset: Preset = Preset.DAILY,
        today: Optional[Callable[[], date]] = None,
        report_generator: Optional[ReportGenerator] = None
    ):
        self.data_source = data_source
        self.config = cfg or config.report
        self.selection = RangeSelection(preset, today=today)
        self.fetcher = MultiSourceFetcher(data_source, self.config)
        self.engine = ReconciliationEngine()
        self.errors = ErrorLog(limit=self.config.error_log_limit)
        self._report_generator = report_generator

        self.filters = RowFilters()
        self.page = 1
        self.page_size = self.config.page_size

        self.records: List[PurchaseRecord] = []
        self.assessments: List[Assessment] = []
        self.transactions: List[FinanceTransaction] = []
        self.last_fetch: Optional[FetchResult] = None
        # range the current rows were fetched for
        self.loaded_range: Optional[DateRange] = None

        self._generation = 0
        self.generated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        self.last_updated = ""

    # ---------- range selection ----------

    @property
    def date_range(self) -> DateRange:
        return self.selection.date_range

    def _invalidate(self):
        """A newer range makes any in-flight load stale."""
        self._generation += 1

    def choose_preset(self, preset: Preset) -> DateRange:
        self._invalidate()
        return self.selection.choose_preset(preset)

    def set_from_date(self, value) -> DateRange:
        self._invalidate()
        return self.selection.set_from_date(value)

    def set_to_date(self, value) -> DateRange:
        self._invalidate()
        return self.selection.set_to_date(value)

    # ---------- loading ----------

    def push_error(self, error: DetailedError) -> DetailedError:
        return self.errors.push(error)

    def _classify(self, title: str, err: Exception) -> DetailedError:
        return classify_error(
            title, err, env=self.data_source.env, online=self.data_source.is_online()
        )

    def _reset_data(self):
        self.records = []
        self.assessments = []
        self.transactions = []
        self.loaded_range = None

    def ensure_auth(self) -> bool:
        """Check for a logged-in user; failures go to the error log."""
        try:
            user = self.data_source.get_current_user()
        except Exception as e:
            self.push_error(self._classify("Auth check failed", e))
            return False

        if not user:
            self.push_error(DetailedError(
                title="Not authenticated",
                kind=ErrorKind.AUTH,
                message="No logged-in user found. Please log in.",
                details={"note": "get_current_user() returned no user"},
                hints=["Sign in again.", "If you just logged in, refresh the report once."],
            ))
            return False
        return True

    def load(self) -> bool:
        """
        Run the fetch/reconcile pipeline for the selected range.

        Returns:
            True when fresh data was applied, False when the load was
            aborted (auth, validation, fetch failure) or went stale.
        """
        self._generation += 1
        generation = self._generation
        date_range = self.date_range
        start_time = time.time()

        if not self.ensure_auth():
            self._reset_data()
            return False

        try:
            date_range.validate()
        except InvalidDateRangeError as e:
            self.push_error(validation_error(
                "Invalid date range",
                e.message,
                details={"from_date": date_range.from_date.isoformat(),
                         "to_date": date_range.to_date.isoformat()},
                hints=["Choose a valid date range and try again."],
            ))
            return False

        log_load_start(logger, generation, date_range.from_date, date_range.to_date)

        try:
            result = self.fetcher.fetch(date_range)
        except Exception as e:
            log_error(logger, e, context="load", extra={"generation": generation})
            if generation != self._generation:
                log_stale_load_discarded(logger, generation, self._generation)
                return False
            if isinstance(e, BalancingError):
                title = "Loading coffee_records failed"
            else:
                title = "Unexpected fetch failure"
            self.push_error(self._classify(title, e))
            self._reset_data()
            self.last_updated = datetime.now().strftime("%H:%M:%S")
            return False

        if generation != self._generation:
            log_stale_load_discarded(logger, generation, self._generation)
            return False

        for error in result.errors:
            self.push_error(error)

        self.records = result.records
        self.assessments = result.assessments
        self.transactions = result.transactions
        self.last_fetch = result
        self.loaded_range = date_range
        self.page = 1
        self.last_updated = datetime.now().strftime("%H:%M:%S")

        log_load_complete(
            logger, generation,
            len(result.records), len(result.assessments), len(result.transactions),
            result.request_count, time.time() - start_time
        )
        return True

    def refresh(self) -> bool:
        return self.load()

    # ---------- filters / pages ----------

    def set_filters(self, **changes) -> RowFilters:
        """Update row filters; no re-fetch happens."""
        self.filters = replace(self.filters, **changes)
        return self.filters

    def set_page(self, page: int):
        self.page = page

    def set_page_size(self, page_size: int):
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValidationError("page_size", str(page_size), f"must be one of {PAGE_SIZE_OPTIONS}")
        self.page_size = page_size

    def rows(self) -> List[ReconciledRow]:
        return self.engine.reconcile(self.records, self.assessments, self.transactions)

    def view(self) -> ReportView:
        """
        Reconcile, filter, aggregate and paginate the current data.

        The view is labelled with the range the rows were loaded for, not
        a range selected since then.
        """
        rows = self.rows()
        filtered = apply_filters(rows, self.filters)
        self.page = clamp_page(self.page, len(filtered), self.page_size)
        page = paginate(filtered, self.page, self.page_size)
        date_range = self.loaded_range or self.date_range

        return ReportView(
            date_range=date_range,
            preset=self.selection.preset,
            filters=self.filters,
            rows=rows,
            filtered_rows=filtered,
            summary=summarize(filtered),
            page=page,
            filters_text=describe_filters(date_range, self.filters),
            coffee_type_options=coffee_type_options(rows),
            status_options=status_options(rows),
            errors=self.errors.entries,
            generated_at=self.generated_at,
            last_updated=self.last_updated,
            finance_types=list(self.fetcher.finance_types),
        )

    # ---------- export ----------

    @property
    def report_generator(self) -> ReportGenerator:
        if self._report_generator is None:
            self._report_generator = ReportGenerator()
        return self._report_generator

    def export(self, formats: Optional[List[str]] = None, summary: bool = True) -> Dict[str, Path]:
        """
        Write the requested exports for the current view.

        An empty filtered set is reported as a validation error and no
        detail file is written in any format; the summary is still produced.
        """
        formats = ["csv"] if formats is None else formats
        view = self.view()
        context = view.export_context()
        generator = self.report_generator
        paths: Dict[str, Path] = {}

        if formats and not view.filtered_rows:
            self.push_error(validation_error(
                "No data to export",
                EmptyExportError(formats[0]).message,
                details={"filtered_rows": 0, "formats": list(formats)},
                hints=["Apply different filters to get some data to export."],
            ))
            formats = []

        try:
            if "csv" in formats:
                paths["csv"] = generator.export_full_csv(view.filtered_rows, view.date_range)
            if "json" in formats:
                paths["json"] = generator.generate_json_report(
                    view.filtered_rows, view.summary, context
                )
            if "excel" in formats:
                paths["excel"] = generator.generate_excel_report(
                    view.filtered_rows, view.summary, context
                )
        except OSError as e:
            self.push_error(self._classify("Export failed", e))

        if summary:
            try:
                paths["summary"] = generator.export_summary_csv(view.summary, context)
            except OSError as e:
                self.push_error(self._classify("Summary CSV export failed", e))

        return paths


def create_sample_data(
    today: Optional[date] = None,
    count: int = 40,
    seed: int = 7
) -> Tuple[List[PurchaseRecord], List[Assessment], List[FinanceTransaction]]:
    """Create sample ledgers for the demo (some joined by id, some by batch, some missing)."""
    today = today or date.today()
    rng = random.Random(seed)
    suppliers = ["Kawacom Growers", "Bugisu Co-op", "Rwenzori Farmers", "Mt. Elgon Estates", "Masaka Union"]
    coffee_types = ["Arabica", "Robusta", "Drugar", "Kiboko"]
    statuses = ["pending", "assessed", "submitted_to_finance", "paid"]

    records: List[PurchaseRecord] = []
    assessments: List[Assessment] = []
    transactions: List[FinanceTransaction] = []

    for i in range(count):
        record_date = today - timedelta(days=rng.randint(0, 27))
        # every fifth record shares its batch with the previous one
        batch = f"B{(i - 1 if i % 5 == 4 else i) + 1000}"
        kilograms = Decimal(rng.randint(60, 1800))
        record = PurchaseRecord(
            id=f"rec-{i + 1:04d}",
            batch_number=batch,
            date=record_date,
            coffee_type=rng.choice(coffee_types),
            kilograms=kilograms,
            bags=max(1, int(kilograms // 60)),
            supplier_name=rng.choice(suppliers),
            status=rng.choice(statuses),
        )
        records.append(record)

        roll = rng.random()
        if roll < 0.55:
            link_by_id = rng.random() < 0.7
            price = Decimal(rng.choice([6800, 7200, 7500, 8000]))
            assessments.append(Assessment(
                id=f"qa-{i + 1:04d}",
                source_record_id=record.id if link_by_id else None,
                batch_number=record.batch_number,
                status=rng.choice(["approved", "submitted_to_finance"]),
                date_assessed=(record_date + timedelta(days=1)).isoformat(),
                assessed_by=rng.choice(["Quality Officer", "Lab Lead"]),
                suggested_price=price,
                final_price=price if rng.random() < 0.6 else None,
            ))

        if rng.random() < 0.6:
            reference = record.id if rng.random() < 0.75 else record.batch_number
            for n in range(rng.randint(1, 2)):
                transactions.append(FinanceTransaction(
                    id=f"fin-{i + 1:04d}-{n}",
                    transaction_type=rng.choice(config.report.finance_types or ["coffee_purchase"]),
                    amount=kilograms * Decimal(rng.choice([3000, 3500, 4000])) / 2,
                    balance_after=Decimal(rng.randint(1, 50)) * 100000,
                    reference=reference,
                    status=rng.choice([TransactionStatus.PENDING, TransactionStatus.CONFIRMED]),
                    created_at=(datetime.combine(record_date, datetime.min.time())
                                + timedelta(hours=rng.randint(8, 40))).isoformat(),
                ))

    return records, assessments, transactions


def create_demo_source(today: Optional[date] = None) -> InMemoryDataSource:
    records, assessments, transactions = create_sample_data(today)
    return InMemoryDataSource(records, assessments, transactions)
