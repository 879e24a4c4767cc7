"""
Balancing report presentation and export.

Generates:
- Paginated row pages for display
- Full detail CSV (one line per filtered row)
- Summary CSV (audit trail of statistics, filters and matching rules)
- JSON and Excel reports
"""
import csv
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side

from .aggregator import format_number, format_ugx, percent
from .config import PAGE_SIZE_OPTIONS, config
from .exceptions import EmptyExportError, ValidationError
from .logging_config import get_logger, log_export
from .models import DateRange, FinanceState, ReconciledRow, ReportSummary

logger = get_logger("reporting")


FULL_CSV_COLUMNS = [
    "Date",
    "Supplier Name",
    "Coffee Type",
    "Status",
    "Kilograms",
    "Bags",
    "Batch Number",
    "Assessment Status",
    "Assessment Date",
    "Assessed By",
    "Suggested Price",
    "Final Price",
    "Finance Status",
    "Total Paid (UGX)",
    "Confirmed Paid (UGX)",
    "Number of Payments",
    "Balance Status",
    "Record ID",
]

MATCHING_LOGIC = "Assessment by store_record_id or batch_number, Finance by reference"


@dataclass
class Page:
    """One page of filtered rows."""
    items: List[ReconciledRow]
    page: int
    page_size: int
    total_rows: int
    total_pages: int

    @property
    def first_index(self) -> int:
        """1-based index of the first row shown (0 when empty)."""
        return (self.page - 1) * self.page_size + 1 if self.total_rows else 0

    @property
    def last_index(self) -> int:
        return min(self.page * self.page_size, self.total_rows)


@dataclass
class ExportContext:
    """What the exported numbers describe."""
    date_range: DateRange
    filters_text: str
    generated_at: str
    finance_types: List[str] = field(default_factory=list)


def total_pages(total_rows: int, page_size: int) -> int:
    return max(1, math.ceil(total_rows / page_size))


def clamp_page(page: int, total_rows: int, page_size: int) -> int:
    return min(max(page, 1), total_pages(total_rows, page_size))


def paginate(rows: Sequence[ReconciledRow], page: int, page_size: int) -> Page:
    """Slice rows into the requested page, clamping the page number."""
    if page_size not in PAGE_SIZE_OPTIONS:
        raise ValidationError("page_size", str(page_size), f"must be one of {PAGE_SIZE_OPTIONS}")
    safe_page = clamp_page(page, len(rows), page_size)
    start = (safe_page - 1) * page_size
    return Page(
        items=list(rows[start:start + page_size]),
        page=safe_page,
        page_size=page_size,
        total_rows=len(rows),
        total_pages=total_pages(len(rows), page_size),
    )


def export_timestamp(now: Optional[datetime] = None) -> str:
    """Filesystem-safe ISO timestamp (seconds, colons replaced)."""
    now = now or datetime.now(timezone.utc)
    return now.isoformat()[:19].replace(":", "-")


def export_filename(kind: str, date_range: DateRange, timestamp: str, ext: str = "csv") -> str:
    prefix = "balancing_report" if kind == "full" else f"balancing_report_{kind}"
    return (
        f"{prefix}_{date_range.from_date.isoformat()}_to_{date_range.to_date.isoformat()}"
        f"_{timestamp}.{ext}"
    )


def row_to_record(row: ReconciledRow) -> Dict[str, Any]:
    """Flatten a reconciled row into the full-export columns."""
    record = row.record
    assessment = row.assessment
    return {
        "Date": record.date.isoformat() if record.date else "",
        "Supplier Name": record.supplier_name or "",
        "Coffee Type": record.coffee_type or "",
        "Status": record.status or "",
        "Kilograms": record.kilograms,
        "Bags": record.bags,
        "Batch Number": record.batch_number or "",
        "Assessment Status": (assessment.status or "Missing") if assessment else "Missing",
        "Assessment Date": assessment.date_assessed if assessment else "",
        "Assessed By": assessment.assessed_by if assessment else "",
        "Suggested Price": assessment.suggested_price if assessment else 0,
        "Final Price": assessment.final_price if assessment and assessment.final_price is not None else 0,
        "Finance Status": row.finance_state.value,
        "Total Paid (UGX)": row.paid_total,
        "Confirmed Paid (UGX)": row.confirmed_paid,
        "Number of Payments": row.payment_count,
        "Balance Status": "Balanced" if row.is_balanced else "Unbalanced",
        "Record ID": record.id,
    }


def summary_rows(summary: ReportSummary, context: ExportContext) -> List[List[Any]]:
    """Label/value/detail triples for the summary export."""
    total = summary.total_rows
    return [
        ["Balancing Report Summary", "", ""],
        ["Generated", context.generated_at, ""],
        ["Period", str(context.date_range), ""],
        ["Filters Applied", context.filters_text, ""],
        ["", "", ""],
        ["Metric", "Value", "Details"],
        ["Total Records", total, ""],
        ["Total Weight", f"{format_number(summary.total_kilograms)} kg", f"{format_number(summary.total_bags)} bags"],
        ["Total Payments", format_ugx(summary.total_paid), f"Confirmed: {format_ugx(summary.total_confirmed_paid)}"],
        ["Assessment Coverage", f"{summary.assessed_count} of {total}", percent(summary.assessed_count, total)],
        ["Finance Coverage", f"{summary.financed_count} of {total}", percent(summary.financed_count, total)],
        ["Missing Finance", summary.finance_missing_count, percent(summary.finance_missing_count, total)],
        ["Balanced Records", summary.balanced_count, percent(summary.balanced_count, total)],
        ["Unbalanced Records", summary.unbalanced_count, percent(summary.unbalanced_count, total)],
        ["Flow Health Score", f"{summary.flow_health}%", ""],
        ["", "", ""],
        ["Finance Types Used", ", ".join(context.finance_types), ""],
        ["Matching Logic", MATCHING_LOGIC, ""],
    ]


class ReportGenerator:
    """Generates balancing report exports in various formats."""

    # Excel styling
    HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    HEADER_FONT = Font(bold=True, color="FFFFFF")
    BALANCED_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
    UNBALANCED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
    PENDING_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
    BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir or config.reports_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ---------- CSV ----------

    def render_full_csv(self, rows: Sequence[ReconciledRow]) -> str:
        """
        Header plus one line per row.

        Text fields are quoted and embedded quotes doubled; numbers are
        written bare.
        """
        df = pd.DataFrame([row_to_record(r) for r in rows], columns=FULL_CSV_COLUMNS)
        return df.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    def render_summary_csv(self, summary: ReportSummary, context: ExportContext) -> str:
        df = pd.DataFrame(summary_rows(summary, context))
        return df.to_csv(index=False, header=False, quoting=csv.QUOTE_ALL, lineterminator="\n")

    def export_full_csv(
        self,
        rows: Sequence[ReconciledRow],
        date_range: DateRange,
        filename: Optional[str] = None
    ) -> Path:
        """Write the detail CSV; raises EmptyExportError for zero rows."""
        if not rows:
            raise EmptyExportError("csv")

        filename = filename or export_filename("full", date_range, export_timestamp())
        output_path = self.output_dir / filename
        output_path.write_text(self.render_full_csv(rows), encoding="utf-8")

        log_export(logger, "csv", output_path, len(rows))
        return output_path

    def export_summary_csv(
        self,
        summary: ReportSummary,
        context: ExportContext,
        filename: Optional[str] = None
    ) -> Path:
        filename = filename or export_filename("summary", context.date_range, export_timestamp())
        output_path = self.output_dir / filename
        output_path.write_text(self.render_summary_csv(summary, context), encoding="utf-8")

        log_export(logger, "summary_csv", output_path, summary.total_rows)
        return output_path

    # ---------- JSON ----------

    def generate_json_report(
        self,
        rows: Sequence[ReconciledRow],
        summary: ReportSummary,
        context: ExportContext,
        filename: Optional[str] = None
    ) -> Path:
        """Generate JSON report for API consumption or further processing."""
        report_data = {
            "generated_at": context.generated_at,
            "period": {
                "from_date": context.date_range.from_date.isoformat(),
                "to_date": context.date_range.to_date.isoformat(),
            },
            "filters": context.filters_text,
            "finance_types": list(context.finance_types),
            "summary": {
                "total_rows": summary.total_rows,
                "total_kilograms": str(summary.total_kilograms),
                "total_bags": summary.total_bags,
                "total_paid": str(summary.total_paid),
                "total_confirmed_paid": str(summary.total_confirmed_paid),
                "assessed_count": summary.assessed_count,
                "not_assessed_count": summary.not_assessed_count,
                "finance_missing_count": summary.finance_missing_count,
                "finance_pending_count": summary.finance_pending_count,
                "finance_confirmed_count": summary.finance_confirmed_count,
                "balanced_count": summary.balanced_count,
                "unbalanced_count": summary.unbalanced_count,
                "flow_health": summary.flow_health,
            },
            "rows": [self._row_to_dict(r) for r in rows],
        }

        filename = filename or export_filename("full", context.date_range, export_timestamp(), ext="json")
        output_path = self.output_dir / filename
        with open(output_path, 'w') as f:
            json.dump(report_data, f, indent=2, default=str)

        log_export(logger, "json", output_path, len(rows))
        return output_path

    def _row_to_dict(self, row: ReconciledRow) -> Dict[str, Any]:
        """Convert row to dictionary."""
        record = row.record
        return {
            "record_id": record.id,
            "date": record.date.isoformat() if record.date else None,
            "batch_number": record.batch_number,
            "supplier_name": record.supplier_name,
            "coffee_type": record.coffee_type,
            "status": record.status,
            "kilograms": str(record.kilograms),
            "bags": record.bags,
            "assessment": {
                "id": row.assessment.id,
                "status": row.assessment.status,
                "date_assessed": row.assessment.date_assessed,
                "assessed_by": row.assessment.assessed_by,
                "suggested_price": str(row.assessment.suggested_price),
                "final_price": None if row.assessment.final_price is None else str(row.assessment.final_price),
            } if row.assessment else None,
            "transactions": [
                {
                    "id": tx.id,
                    "type": tx.transaction_type,
                    "amount": str(tx.amount),
                    "status": tx.status.value,
                    "reference": tx.reference,
                    "created_at": tx.created_at,
                }
                for tx in row.transactions
            ],
            "paid_total": str(row.paid_total),
            "confirmed_paid": str(row.confirmed_paid),
            "finance_state": row.finance_state.value,
            "has_assessment": row.has_assessment,
            "is_balanced": row.is_balanced,
        }

    # ---------- Excel ----------

    def generate_excel_report(
        self,
        rows: Sequence[ReconciledRow],
        summary: ReportSummary,
        context: ExportContext,
        filename: Optional[str] = None
    ) -> Path:
        """Generate Excel workbook with Summary and Rows sheets."""
        wb = Workbook()

        # Remove default sheet
        wb.remove(wb.active)

        self._create_summary_sheet(wb, summary, context)
        self._create_rows_sheet(wb, rows)

        filename = filename or export_filename("full", context.date_range, export_timestamp(), ext="xlsx")
        output_path = self.output_dir / filename
        wb.save(output_path)

        log_export(logger, "excel", output_path, len(rows))
        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReportSummary, context: ExportContext):
        """Create summary dashboard sheet."""
        ws = wb.create_sheet("Summary", 0)

        for row_num, triple in enumerate(summary_rows(summary, context), start=1):
            for col, value in enumerate(triple, start=1):
                ws.cell(row=row_num, column=col, value=value)

        ws["A1"].font = Font(bold=True, size=16)
        ws["A6"].font = Font(bold=True)
        ws["B6"].font = Font(bold=True)
        ws["C6"].font = Font(bold=True)

        ws.column_dimensions["A"].width = 25
        ws.column_dimensions["B"].width = 45
        ws.column_dimensions["C"].width = 30

    def _create_rows_sheet(self, wb: Workbook, rows: Sequence[ReconciledRow]):
        """Create reconciled rows sheet."""
        ws = wb.create_sheet("Rows")

        for col, header in enumerate(FULL_CSV_COLUMNS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = self.HEADER_FILL
            cell.font = self.HEADER_FONT
            cell.border = self.BORDER

        finance_col = FULL_CSV_COLUMNS.index("Finance Status") + 1
        balance_col = FULL_CSV_COLUMNS.index("Balance Status") + 1
        money_cols = [
            FULL_CSV_COLUMNS.index(name) + 1
            for name in ("Suggested Price", "Final Price", "Total Paid (UGX)", "Confirmed Paid (UGX)")
        ]

        for row_num, row in enumerate(rows, start=2):
            record = row_to_record(row)
            for col, header in enumerate(FULL_CSV_COLUMNS, start=1):
                value = record[header]
                if header in ("Kilograms", "Suggested Price", "Final Price",
                              "Total Paid (UGX)", "Confirmed Paid (UGX)"):
                    value = float(value)
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = self.BORDER

                if col == balance_col:
                    cell.fill = self.BALANCED_FILL if row.is_balanced else self.UNBALANCED_FILL
                elif col == finance_col:
                    if row.finance_state == FinanceState.MISSING:
                        cell.fill = self.UNBALANCED_FILL
                    elif row.finance_state == FinanceState.PENDING:
                        cell.fill = self.PENDING_FILL

            for col in money_cols:
                ws.cell(row=row_num, column=col).number_format = '#,##0'

        for col in range(1, len(FULL_CSV_COLUMNS) + 1):
            ws.column_dimensions[chr(64 + col)].width = 15
