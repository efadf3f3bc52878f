"""Combine classification, filtering and aggregation into one dashboard snapshot."""
from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import List

import pandas as pd

from .cards import build_summary_cards
from .classify import classify
from .config import AppConfig
from .filters import rank
from .metrics import (
    aggregate_activity,
    aggregate_expenses,
    aggregate_financial,
    aggregate_operational,
    aggregate_production,
    aggregate_quality,
    aggregate_revenue,
)
from .models import DashboardMetadata, DashboardSnapshot, SheetDescriptor, SheetsSnapshot
from .rules import style_for

LOGGER = logging.getLogger(__name__)

CONNECTED = "connected"
DISCONNECTED = "disconnected"
CONNECTING = "connecting"
DEMO = "demo"


def sheet_slug(name: str) -> str:
    return re.sub(r"\s+", "_", name.strip().lower())


def _describe_sheets(snapshot: SheetsSnapshot, config: AppConfig) -> List[SheetDescriptor]:
    descriptors = []
    for name, sheet in snapshot.items():
        if config.is_excluded_sheet(name):
            continue
        classification = classify(name, sheet.headers)
        style = style_for(classification)
        ranked = tuple(dict(record) for record in rank(sheet.rows))
        descriptors.append(
            SheetDescriptor(
                name=name,
                slug=sheet_slug(name),
                classification=classification,
                record_count=len(sheet.rows),
                display_count=len(ranked),
                color=style.color,
                icon=style.icon,
                columns=sheet.columns,
                last_record=dict(sheet.rows[-1]) if sheet.rows else None,
                records=ranked,
            )
        )
    return descriptors


def assemble(
    snapshot: SheetsSnapshot | None,
    *,
    now: pd.Timestamp | None = None,
    connection_status: str = CONNECTED,
    config: AppConfig | None = None,
) -> DashboardSnapshot:
    """Build the full dashboard for ``snapshot``.

    ``now`` pins every calendar-dependent figure (active batches, activity
    windows, ``last_updated``) so repeated calls on the same input agree.
    """

    cfg = config or AppConfig()
    if not snapshot:
        return empty_dashboard(connection_status, now=now, config=cfg)

    stamp = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    production = aggregate_production(snapshot, stamp)
    quality = aggregate_quality(snapshot)
    revenue = aggregate_revenue(snapshot)
    expenses = aggregate_expenses(snapshot)
    financial = aggregate_financial(snapshot, revenue, expenses)
    operational = aggregate_operational(snapshot)
    activity = aggregate_activity(snapshot, stamp)

    total_records = sum(len(sheet.rows) for sheet in snapshot.values())
    metadata = DashboardMetadata(
        title=cfg.dashboard_title,
        business_type=cfg.business_type,
        total_sheets=len(snapshot),
        total_records=total_records,
        last_updated=stamp,
        connection_status=connection_status,
    )
    cards = build_summary_cards(production, quality, financial, total_records, len(snapshot))

    LOGGER.info(
        "Assembled dashboard | sheets=%d | records=%d | revenue=%.2f | expenses=%.2f",
        len(snapshot),
        total_records,
        financial.revenue,
        financial.expenses,
    )
    return DashboardSnapshot(
        metadata=metadata,
        production=production,
        quality=quality,
        revenue=revenue,
        expenses=expenses,
        financial=financial,
        operational=operational,
        activity=activity,
        summary_cards=cards,
        sheets=tuple(_describe_sheets(snapshot, cfg)),
    )


def empty_dashboard(
    connection_status: str = CONNECTING,
    *,
    now: pd.Timestamp | None = None,
    config: AppConfig | None = None,
) -> DashboardSnapshot:
    """The zero-valued dashboard shown before any data has arrived."""

    cfg = config or AppConfig()
    empty: SheetsSnapshot = {}
    metadata = DashboardMetadata(
        title=cfg.dashboard_title,
        business_type=cfg.business_type,
        last_updated=None if now is None else pd.Timestamp(now),
        connection_status=connection_status,
    )
    base = DashboardSnapshot(metadata=metadata)
    return replace(
        base,
        activity=aggregate_activity(empty, now),
        summary_cards=build_summary_cards(base.production, base.quality, base.financial, 0, 0),
    )


__all__ = ["CONNECTED", "CONNECTING", "DEMO", "DISCONNECTED", "assemble", "empty_dashboard", "sheet_slug"]
