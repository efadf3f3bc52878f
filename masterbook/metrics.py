"""Pure aggregation helpers turning a sheets snapshot into business metrics.

Every function here takes the snapshot (and, where the answer depends on the
calendar, an explicit ``now``) and returns a frozen dataclass. Missing sheets,
columns or cells contribute zero; nothing raises on bad data.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Sequence, Set, Tuple

import pandas as pd

from .classify import sheets_with
from .models import (
    ActivityWindow,
    FinancialBreakdown,
    FinancialMetrics,
    OperationalMetrics,
    ProductionMetrics,
    QualityMetrics,
    Record,
    SheetClassification,
    SheetsSnapshot,
)
from .normalize import (
    normalize_amount,
    normalize_date,
    normalize_flag,
    normalize_text,
    resolve,
    resolve_amount,
    resolve_date,
    resolve_text,
)
from .rules import (
    ACCEPTED_FIELDS,
    AMOUNT_KEYWORDS,
    CATEGORY_FIELDS,
    CURRENCY_SYMBOLS,
    DATE_FIELDS,
    EXPECTED_HARVEST_DATE_FIELDS,
    EXPECTED_YIELD_FIELDS,
    EXPENSE_KEYWORDS,
    HARVESTED_FIELDS,
    ON_TIME_FIELDS,
    QC_SCORE_FIELDS,
    REJECTED_FIELDS,
    REVENUE_KEYWORDS,
    REVISED_YIELD_FIELDS,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_FIELDS,
    STATUS_PENDING,
)

LOGGER = logging.getLogger(__name__)

PRODUCTION_CLASSES = (SheetClassification.PRODUCTION_BATCHES, SheetClassification.HARVEST_TRACKING)
QUALITY_CLASSES = (SheetClassification.HARVEST_TRACKING,)
DELIVERY_CLASSES = (SheetClassification.POST_HARVEST_LOGISTICS,)
ACTIVITY_WINDOWS: Tuple[Tuple[str, int], ...] = (("Today", 1), ("This Week", 7), ("This Month", 30))

REVENUE = "revenue"
EXPENSE = "expense"


def _rows(snapshot: SheetsSnapshot, classes: Sequence[SheetClassification]) -> Iterator[Record]:
    for _name, sheet in sheets_with(snapshot, classes):
        yield from sheet.rows


def _pct(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def _today(now: pd.Timestamp | None) -> pd.Timestamp:
    stamp = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp


def _row_yield(row: Record) -> float:
    revised = resolve_amount(row, REVISED_YIELD_FIELDS)
    if revised != 0:
        return revised
    return resolve_amount(row, EXPECTED_YIELD_FIELDS)


def aggregate_production(snapshot: SheetsSnapshot, now: pd.Timestamp | None = None) -> ProductionMetrics:
    """Batch counts and yield totals from production and harvest sheets.

    A batch is active while its expected harvest date is today or later.
    """

    today = _today(now).normalize()
    active = 0
    expected_total = 0.0
    harvested_total = 0.0
    for row in _rows(snapshot, PRODUCTION_CLASSES):
        harvest_date = resolve_date(row, EXPECTED_HARVEST_DATE_FIELDS)
        if harvest_date is not None and harvest_date.normalize() >= today:
            active += 1
        expected_total += _row_yield(row)
        harvested_total += resolve_amount(row, HARVESTED_FIELDS)

    metrics = ProductionMetrics(
        active_batches=active,
        total_expected_yield=expected_total,
        total_harvested=harvested_total,
        harvest_efficiency=_pct(harvested_total, expected_total),
    )
    LOGGER.debug("Production metrics: %s", metrics)
    return metrics


def aggregate_quality(snapshot: SheetsSnapshot) -> QualityMetrics:
    """Rejection rate and QC score from harvest logs, on-time share from logistics sheets."""

    harvested = rejected = accepted = 0.0
    scores: List[float] = []
    for row in _rows(snapshot, QUALITY_CLASSES):
        harvested += resolve_amount(row, HARVESTED_FIELDS)
        rejected += resolve_amount(row, REJECTED_FIELDS)
        accepted += resolve_amount(row, ACCEPTED_FIELDS)
        score = resolve_amount(row, QC_SCORE_FIELDS)
        if score != 0:
            scores.append(score)

    deliveries = 0
    on_time = 0
    for row in _rows(snapshot, DELIVERY_CLASSES):
        flag = resolve(row, ON_TIME_FIELDS, normalize_text, None)
        if not flag:
            continue
        deliveries += 1
        if normalize_flag(flag):
            on_time += 1

    denominator = harvested if harvested > 0 else accepted + rejected
    metrics = QualityMetrics(
        rejection_rate=_pct(rejected, denominator),
        avg_quality_score=sum(scores) / len(scores) if scores else 0.0,
        on_time_percentage=_pct(on_time, deliveries),
        total_deliveries=deliveries,
        on_time_deliveries=on_time,
        total_harvested=harvested,
    )
    LOGGER.debug("Quality metrics: %s", metrics)
    return metrics

def amount_column_kind(header: str) -> str | None:
    """Classify a header as a revenue column, an expense column or neither.

    Revenue keywords take precedence; a bare currency symbol marks an expense.
    """

    lowered = str(header).lower()
    if any(keyword in lowered for keyword in REVENUE_KEYWORDS):
        return REVENUE
    if any(keyword in lowered for keyword in EXPENSE_KEYWORDS):
        return EXPENSE
    if any(symbol in header for symbol in CURRENCY_SYMBOLS):
        return EXPENSE
    return None


def _breakdown(snapshot: SheetsSnapshot, kind: str) -> FinancialBreakdown:
    total = 0.0
    records = 0
    sources: Set[str] = set()
    categories: Dict[str, None] = {}
    for name, sheet in snapshot.items():
        columns = [col for col in sheet.columns if amount_column_kind(col) == kind]
        if not columns:
            continue
        for row in sheet.rows:
            row_total = sum(normalize_amount(row.get(col)) for col in columns)
            if row_total == 0:
                continue
            total += row_total
            records += 1
            sources.add(name)
            category = resolve_text(row, CATEGORY_FIELDS)
            if category:
                categories.setdefault(category, None)
    return FinancialBreakdown(
        total=total,
        sources=len(sources),
        categories=len(categories),
        records=records,
        category_names=tuple(categories),
    )


def aggregate_revenue(snapshot: SheetsSnapshot) -> FinancialBreakdown:
    return _breakdown(snapshot, REVENUE)


def aggregate_expenses(snapshot: SheetsSnapshot) -> FinancialBreakdown:
    return _breakdown(snapshot, EXPENSE)


def aggregate_financial(
    snapshot: SheetsSnapshot,
    revenue: FinancialBreakdown | None = None,
    expenses: FinancialBreakdown | None = None,
) -> FinancialMetrics:
    """Combine revenue and expense breakdowns into profitability figures."""

    revenue = revenue if revenue is not None else aggregate_revenue(snapshot)
    expenses = expenses if expenses is not None else aggregate_expenses(snapshot)
    profit = revenue.total - expenses.total
    return FinancialMetrics(
        revenue=revenue.total,
        expenses=expenses.total,
        profit=profit,
        profit_margin=_pct(profit, revenue.total) if revenue.total > 0 else 0.0,
        revenue_streams=revenue.categories,
        expense_categories=expenses.categories,
    )


def _status_bucket(status: str) -> str | None:
    lowered = status.strip().lower()
    if not lowered:
        return None
    for bucket, tokens in (("completed", STATUS_COMPLETED), ("active", STATUS_ACTIVE), ("pending", STATUS_PENDING)):
        if lowered in tokens:
            return bucket
    return None


def aggregate_operational(snapshot: SheetsSnapshot) -> OperationalMetrics:
    """Bucket every row with a status field into active, completed or pending."""

    counts = {"active": 0, "completed": 0, "pending": 0}
    total = 0
    for sheet in snapshot.values():
        for row in sheet.rows:
            status = resolve_text(row, STATUS_FIELDS)
            if not status:
                continue
            total += 1
            bucket = _status_bucket(status)
            if bucket:
                counts[bucket] += 1
    return OperationalMetrics(
        total=total,
        active=counts["active"],
        completed=counts["completed"],
        pending=counts["pending"],
        completion_rate=_pct(counts["completed"], total),
    )


def _row_date(row: Record) -> pd.Timestamp | None:
    stamp = resolve_date(row, DATE_FIELDS)
    if stamp is not None:
        return stamp
    for key, value in row.items():
        if "date" in key.lower():
            stamp = normalize_date(value)
            if stamp is not None:
                return stamp
    return None


def _row_amount(row: Record) -> float:
    return sum(
        normalize_amount(value)
        for key, value in row.items()
        if any(keyword in key.lower() for keyword in AMOUNT_KEYWORDS)
    )


def aggregate_activity(snapshot: SheetsSnapshot, now: pd.Timestamp | None = None) -> Tuple[ActivityWindow, ...]:
    """Rows dated within the last 1, 7 and 30 days, with their amount totals."""

    current = _today(now)
    dated = []
    for sheet in snapshot.values():
        for row in sheet.rows:
            stamp = _row_date(row)
            if stamp is not None:
                dated.append((stamp, row))
    total_rows = sum(len(sheet.rows) for sheet in snapshot.values())
    windows = []
    for label, days in ACTIVITY_WINDOWS:
        start = current - pd.Timedelta(days=days)
        inside = [row for stamp, row in dated if start <= stamp <= current]
        windows.append(
            ActivityWindow(
                label=label,
                days=days,
                count=len(inside),
                percentage=_pct(len(inside), total_rows),
                total_amount=sum(_row_amount(row) for row in inside),
            )
        )
    return tuple(windows)


__all__ = [
    "ACTIVITY_WINDOWS",
    "aggregate_activity",
    "aggregate_expenses",
    "aggregate_financial",
    "aggregate_operational",
    "aggregate_production",
    "aggregate_quality",
    "aggregate_revenue",
    "amount_column_kind",
]
