"""
Join/reconciliation engine for the balancing report.

Purchase records, assessments and finance transactions share no foreign
key. Each record is joined with priority-ordered keys:

1. Assessment: exact store_record_id link first, batch number fallback.
   Batch numbers can be reused across re-batched records, so the fallback
   is only consulted when no assessment points at the record id.
2. Finance: transactions whose reference equals the record id, otherwise
   those whose reference equals the batch number. Never both.
3. Classification: assessment presence, finance state, balance.
"""
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    Assessment, FinanceState, FinanceTransaction, PurchaseRecord, ReconciledRow
)

AssessmentIndex = Tuple[Dict[str, Assessment], Dict[str, Assessment]]


def build_assessment_index(assessments: Iterable[Assessment]) -> AssessmentIndex:
    """
    Index the most recent assessment per record id and per batch number.

    Assessments are sorted once by date_assessed descending (stable, so
    ties keep their fetched order); the first one seen per key wins.
    """
    by_record_id: Dict[str, Assessment] = {}
    by_batch: Dict[str, Assessment] = {}

    ordered = sorted(assessments, key=lambda a: a.date_assessed or "", reverse=True)
    for assessment in ordered:
        if assessment.source_record_id and assessment.source_record_id not in by_record_id:
            by_record_id[assessment.source_record_id] = assessment
        if assessment.batch_number and assessment.batch_number not in by_batch:
            by_batch[assessment.batch_number] = assessment

    return by_record_id, by_batch


def build_finance_index(
    transactions: Iterable[FinanceTransaction]
) -> Dict[str, List[FinanceTransaction]]:
    """Group transactions by trimmed reference; blank references are skipped."""
    index = defaultdict(list)
    for tx in transactions:
        key = (tx.reference or "").strip()
        if not key:
            continue
        index[key].append(tx)
    return dict(index)


def classify(
    record: PurchaseRecord,
    assessment: Optional[Assessment],
    transactions: Sequence[FinanceTransaction]
) -> ReconciledRow:
    """Compute totals and states for one record's matched sets."""
    paid_total = sum((tx.amount for tx in transactions), Decimal("0"))
    confirmed_paid = sum(
        (tx.amount for tx in transactions if tx.is_confirmed()), Decimal("0")
    )

    if not transactions:
        finance_state = FinanceState.MISSING
    elif any(tx.is_confirmed() for tx in transactions):
        finance_state = FinanceState.CONFIRMED
    else:
        finance_state = FinanceState.PENDING

    has_assessment = assessment is not None

    return ReconciledRow(
        record=record,
        assessment=assessment,
        transactions=tuple(transactions),
        paid_total=paid_total,
        confirmed_paid=confirmed_paid,
        has_assessment=has_assessment,
        finance_state=finance_state,
        is_balanced=has_assessment and finance_state != FinanceState.MISSING,
    )


def describe_state(row: ReconciledRow) -> str:
    """Combined assessment/finance label for a row."""
    assessed = "assessed" if row.has_assessment else "unassessed"
    if row.finance_state == FinanceState.MISSING:
        return f"{assessed}+unpaid"
    if row.has_assessment:
        return "assessed+financed"
    return "unassessed+partially-financed"


class ReconciliationEngine:
    """
    Joins purchase records to assessments and finance transactions.

    Stateless: reconcile() is a pure function of its inputs and builds
    fresh rows on every call.
    """

    def reconcile(
        self,
        records: Sequence[PurchaseRecord],
        assessments: Sequence[Assessment],
        transactions: Sequence[FinanceTransaction]
    ) -> List[ReconciledRow]:
        """
        Reconcile each record, preserving record order.

        Returns:
            One ReconciledRow per purchase record
        """
        by_record_id, by_batch = build_assessment_index(assessments)
        by_reference = build_finance_index(transactions)

        return [
            classify(
                record,
                self._match_assessment(record, by_record_id, by_batch),
                self._match_transactions(record, by_reference),
            )
            for record in records
        ]

    def _match_assessment(
        self,
        record: PurchaseRecord,
        by_record_id: Dict[str, Assessment],
        by_batch: Dict[str, Assessment]
    ) -> Optional[Assessment]:
        assessment = by_record_id.get(record.id)
        if assessment is None and record.batch_number:
            assessment = by_batch.get(record.batch_number)
        return assessment

    def _match_transactions(
        self,
        record: PurchaseRecord,
        by_reference: Dict[str, List[FinanceTransaction]]
    ) -> List[FinanceTransaction]:
        by_id = by_reference.get(record.id)
        if by_id:
            return list(by_id)
        if record.batch_number:
            by_batch = by_reference.get(record.batch_number)
            if by_batch:
                return list(by_batch)
        return []
