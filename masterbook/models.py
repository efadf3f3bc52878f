"""Typed containers passed between the fetch, aggregation and rendering layers."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple

import pandas as pd

Record = Dict[str, str]


class SheetClassification(str, Enum):
    PRODUCTION_BATCHES = "production-batches"
    HARVEST_TRACKING = "harvest-tracking"
    SOURCING_PROCUREMENT = "sourcing-procurement"
    POST_HARVEST_LOGISTICS = "post-harvest-logistics"
    FINANCIAL_REVENUE = "financial-revenue"
    FINANCIAL_EXPENSE = "financial-expense"
    PRODUCTION_SETTINGS = "production-settings"
    GENERAL = "general"


class Trend(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def _fallback_header(header: object, position: int) -> str:
    text = "" if header is None else str(header).strip()
    return text or f"col_{position + 1}"


@dataclass(frozen=True)
class RawSheet:
    """One spreadsheet tab: its header row and the data rows keyed by header."""

    headers: Tuple[str, ...] = ()
    rows: Tuple[Record, ...] = ()

    @property
    def columns(self) -> Tuple[str, ...]:
        """Header names as used in the row mappings (blank headers become ``col_<n>``)."""
        return tuple(_fallback_header(h, i) for i, h in enumerate(self.headers))

    @classmethod
    def from_grid(cls, headers: Sequence[object], rows: Iterable[Sequence[object]]) -> "RawSheet":
        """Build a sheet from a header list and positional rows."""

        header_tuple = tuple("" if h is None else str(h).strip() for h in headers)
        keys = [_fallback_header(h, i) for i, h in enumerate(header_tuple)]
        records = []
        for row in rows:
            record: Record = {}
            for idx, key in enumerate(keys):
                value = row[idx] if idx < len(row) else ""
                record[key] = "" if value is None else str(value)
            records.append(record)
        return cls(headers=header_tuple, rows=tuple(records))

    def __len__(self) -> int:
        return len(self.rows)


SheetsSnapshot = Dict[str, RawSheet]


def snapshot_from_payload(payload: Mapping[str, Any]) -> SheetsSnapshot:
    """Convert ``{name: {"headers": [...], "rows": [...]}}`` into a snapshot.

    Rows may be mappings (already keyed by header) or positional lists.
    """

    snapshot: SheetsSnapshot = {}
    for name, body in payload.items():
        if isinstance(body, RawSheet):
            snapshot[str(name)] = body
            continue
        headers = list(body.get("headers") or [])
        rows = list(body.get("rows") or [])
        if rows and isinstance(rows[0], Mapping):
            if not headers:
                headers = list(rows[0].keys())
            records = tuple(
                {str(k): "" if v is None else str(v) for k, v in row.items()} for row in rows
            )
            snapshot[str(name)] = RawSheet(
                headers=tuple(str(h) for h in headers), rows=records
            )
        else:
            snapshot[str(name)] = RawSheet.from_grid(headers, rows)
    return snapshot


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return _plain(asdict(self))  # type: ignore[arg-type]


@dataclass(frozen=True)
class ProductionMetrics(_Serializable):
    active_batches: int = 0
    total_expected_yield: float = 0.0
    total_harvested: float = 0.0
    harvest_efficiency: float = 0.0


@dataclass(frozen=True)
class QualityMetrics(_Serializable):
    rejection_rate: float = 0.0
    avg_quality_score: float = 0.0
    on_time_percentage: float = 0.0
    total_deliveries: int = 0
    on_time_deliveries: int = 0
    total_harvested: float = 0.0


@dataclass(frozen=True)
class FinancialBreakdown(_Serializable):
    """Totals for one side of the ledger (revenue or expenses)."""

    total: float = 0.0
    sources: int = 0
    categories: int = 0
    records: int = 0
    category_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FinancialMetrics(_Serializable):
    revenue: float = 0.0
    expenses: float = 0.0
    profit: float = 0.0
    profit_margin: float = 0.0
    revenue_streams: int = 0
    expense_categories: int = 0


@dataclass(frozen=True)
class OperationalMetrics(_Serializable):
    total: int = 0
    active: int = 0
    completed: int = 0
    pending: int = 0
    completion_rate: float = 0.0


@dataclass(frozen=True)
class ActivityWindow(_Serializable):
    label: str
    days: int
    count: int = 0
    percentage: float = 0.0
    total_amount: float = 0.0


@dataclass(frozen=True)
class SummaryCard(_Serializable):
    key: str
    title: str
    value: str
    subtitle: str
    trend: Trend = Trend.NEUTRAL
    color: str = "blue"
    icon: str = "chart"


@dataclass(frozen=True)
class SheetDescriptor(_Serializable):
    name: str
    slug: str
    classification: SheetClassification
    record_count: int
    display_count: int
    color: str
    icon: str
    columns: Tuple[str, ...] = ()
    last_record: Record | None = None
    records: Tuple[Record, ...] = ()


@dataclass(frozen=True)
class DashboardMetadata(_Serializable):
    title: str = "Triton Food Works Masterbook"
    business_type: str = "Agriculture & Food Processing"
    total_sheets: int = 0
    total_records: int = 0
    last_updated: pd.Timestamp | None = None
    connection_status: str = "connecting"


@dataclass(frozen=True)
class DashboardSnapshot(_Serializable):
    """Everything the UI renders for one refresh; always fully populated."""

    metadata: DashboardMetadata = field(default_factory=DashboardMetadata)
    production: ProductionMetrics = field(default_factory=ProductionMetrics)
    quality: QualityMetrics = field(default_factory=QualityMetrics)
    revenue: FinancialBreakdown = field(default_factory=FinancialBreakdown)
    expenses: FinancialBreakdown = field(default_factory=FinancialBreakdown)
    financial: FinancialMetrics = field(default_factory=FinancialMetrics)
    operational: OperationalMetrics = field(default_factory=OperationalMetrics)
    activity: Tuple[ActivityWindow, ...] = ()
    summary_cards: Tuple[SummaryCard, ...] = ()
    sheets: Tuple[SheetDescriptor, ...] = ()

    def card(self, key: str) -> SummaryCard | None:
        for card in self.summary_cards:
            if card.key == key:
                return card
        return None


__all__ = [
    "ActivityWindow",
    "DashboardMetadata",
    "DashboardSnapshot",
    "FinancialBreakdown",
    "FinancialMetrics",
    "OperationalMetrics",
    "ProductionMetrics",
    "QualityMetrics",
    "RawSheet",
    "Record",
    "SheetClassification",
    "SheetDescriptor",
    "SheetsSnapshot",
    "SummaryCard",
    "Trend",
    "snapshot_from_payload",
]
