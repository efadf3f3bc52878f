"""Summary card construction: ordering, trend thresholds, colours and icons."""
from __future__ import annotations

from typing import List, Tuple

from .formatting import format_amount, format_number, format_percent
from .models import (
    FinancialMetrics,
    ProductionMetrics,
    QualityMetrics,
    SummaryCard,
    Trend,
)

EFFICIENCY_TARGET = 80.0
REJECTION_LIMIT = 10.0
QUALITY_TARGET = 7.0
ON_TIME_TARGET = 90.0
ON_TIME_WARNING = 75.0


def revenue_trend(financial: FinancialMetrics) -> Trend:
    return Trend.POSITIVE if financial.revenue > 0 else Trend.NEUTRAL


def expenses_trend(financial: FinancialMetrics) -> Trend:
    return Trend.NEGATIVE if financial.expenses > financial.revenue else Trend.NEUTRAL


def profit_trend(financial: FinancialMetrics) -> Trend:
    return Trend.POSITIVE if financial.profit >= 0 else Trend.NEGATIVE


def batches_trend(production: ProductionMetrics) -> Trend:
    return Trend.POSITIVE if production.harvest_efficiency >= EFFICIENCY_TARGET else Trend.NEUTRAL


def harvested_trend(production: ProductionMetrics, quality: QualityMetrics) -> Trend:
    if quality.rejection_rate > REJECTION_LIMIT:
        return Trend.NEGATIVE
    if production.total_harvested > 0:
        return Trend.POSITIVE
    return Trend.NEUTRAL


def quality_trend(quality: QualityMetrics) -> Trend:
    if quality.avg_quality_score >= QUALITY_TARGET:
        return Trend.POSITIVE
    if quality.avg_quality_score == 0:
        return Trend.NEUTRAL
    return Trend.NEGATIVE


def on_time_trend(quality: QualityMetrics) -> Trend:
    if quality.on_time_percentage >= ON_TIME_TARGET:
        return Trend.POSITIVE
    if quality.on_time_percentage >= ON_TIME_WARNING:
        return Trend.NEUTRAL
    return Trend.NEGATIVE


def _plural(count: int, word: str, plural: str | None = None) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {plural or word + 's'}"


def build_summary_cards(
    production: ProductionMetrics,
    quality: QualityMetrics,
    financial: FinancialMetrics,
    total_records: int,
    total_sheets: int,
) -> Tuple[SummaryCard, ...]:
    """Cards in display order; the on-time card only appears once deliveries exist."""

    cards: List[SummaryCard] = [
        SummaryCard(
            key="revenue",
            title="Total Revenue",
            value=format_amount(financial.revenue),
            subtitle=_plural(financial.revenue_streams, "revenue stream"),
            trend=revenue_trend(financial),
            color="green",
            icon="rupee",
        ),
        SummaryCard(
            key="expenses",
            title="Total Expenses",
            value=format_amount(financial.expenses),
            subtitle=_plural(financial.expense_categories, "expense category", "expense categories"),
            trend=expenses_trend(financial),
            color="orange",
            icon="receipt",
        ),
        SummaryCard(
            key="net_profit",
            title="Net Profit",
            value=format_amount(financial.profit),
            subtitle=f"{format_percent(financial.profit_margin)} margin",
            trend=profit_trend(financial),
            color="green" if financial.profit >= 0 else "red",
            icon="trend",
        ),
        SummaryCard(
            key="active_batches",
            title="Active Batches",
            value=format_number(production.active_batches),
            subtitle=f"{format_percent(production.harvest_efficiency)} harvest efficiency",
            trend=batches_trend(production),
            color="blue",
            icon="sprout",
        ),
        SummaryCard(
            key="harvested",
            title="Harvested Total",
            value=format_number(production.total_harvested),
            subtitle=f"{format_percent(quality.rejection_rate)} rejection rate",
            trend=harvested_trend(production, quality),
            color="lime",
            icon="basket",
        ),
        SummaryCard(
            key="quality_score",
            title="Quality Score",
            value=f"{quality.avg_quality_score:.1f}",
            subtitle="average QC score",
            trend=quality_trend(quality),
            color="purple",
            icon="star",
        ),
    ]
    if quality.total_deliveries > 0:
        cards.append(
            SummaryCard(
                key="on_time",
                title="On-Time Delivery",
                value=format_percent(quality.on_time_percentage),
                subtitle=f"{quality.on_time_deliveries} of {quality.total_deliveries} deliveries",
                trend=on_time_trend(quality),
                color="cyan",
                icon="truck",
            )
        )
    cards.append(
        SummaryCard(
            key="total_records",
            title="Total Records",
            value=format_number(total_records),
            subtitle=f"across {_plural(total_sheets, 'sheet')}",
            trend=Trend.NEUTRAL,
            color="slate",
            icon="table",
        )
    )
    return tuple(cards)


__all__ = [
    "batches_trend",
    "build_summary_cards",
    "expenses_trend",
    "harvested_trend",
    "on_time_trend",
    "profit_trend",
    "quality_trend",
    "revenue_trend",
]
