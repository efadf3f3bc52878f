"""Plotly chart builders."""
from __future__ import annotations

import logging

import numpy as np
import plotly.graph_objects as go

from .formatting import format_amount, format_compact_amount
from .models import DashboardSnapshot

LOGGER = logging.getLogger(__name__)

EXEC_GREEN = "#2E7D32"
EXEC_RED = "#C62828"
EXEC_ORANGE = "#EF6C00"
GRID_GRAY = "#e9ecef"

# Hex values for the colour names used by sheet styles and cards.
PALETTE = {
    "green": "#2E7D32",
    "emerald": "#059669",
    "lime": "#65A30D",
    "orange": "#EF6C00",
    "red": "#C62828",
    "purple": "#7C3AED",
    "cyan": "#0891B2",
    "blue": "#2563EB",
    "slate": "#475569",
}


def _empty_figure(height: int = 300) -> go.Figure:
    """Return an empty figure placeholder."""

    return go.Figure().update_layout(height=height, margin=dict(l=40, r=20, t=30, b=50))


def _base_layout(figure: go.Figure, height: int, yaxis_title: str = "") -> go.Figure:
    figure.update_yaxes(gridcolor=GRID_GRAY, zeroline=False, showspikes=False)
    figure.update_xaxes(showspikes=False)
    figure.update_layout(
        yaxis_title=yaxis_title,
        height=height,
        margin=dict(l=40, r=16, t=10, b=30),
        bargap=0.3,
        plot_bgcolor="#f8f9fa",
        paper_bgcolor="#ffffff",
        dragmode=False,
        hovermode="closest",
        showlegend=False,
    )
    return figure


def create_financial_chart(dashboard: DashboardSnapshot, height: int = 280) -> go.Figure:
    """Revenue, expenses and net profit side by side."""

    financial = dashboard.financial
    if financial.revenue == 0 and financial.expenses == 0:
        LOGGER.debug("Financial chart requested without financial data")
        return _empty_figure(height)

    labels = ["Revenue", "Expenses", "Net Profit"]
    values = [financial.revenue, financial.expenses, financial.profit]
    colors = [EXEC_GREEN, EXEC_ORANGE, EXEC_GREEN if financial.profit >= 0 else EXEC_RED]
    counts = [dashboard.revenue.records, dashboard.expenses.records, dashboard.revenue.records + dashboard.expenses.records]
    figure = go.Figure(
        data=[
            go.Bar(
                x=labels,
                y=values,
                marker_color=colors,
                marker_line_width=0,
                text=[format_compact_amount(v) for v in values],
                textposition="outside",
                customdata=np.array(counts).reshape(-1, 1),
                hovertemplate="%{x}<br>%{text}<br>Records: %{customdata[0]}<extra></extra>",
            )
        ]
    )
    return _base_layout(figure, height, "Amount (₹)")


def create_category_chart(dashboard: DashboardSnapshot, height: int = 280) -> go.Figure:
    """Revenue streams and expense categories counted per side."""

    revenue = dashboard.revenue
    expenses = dashboard.expenses
    if not revenue.category_names and not expenses.category_names:
        return _empty_figure(height)

    figure = go.Figure(
        data=[
            go.Bar(
                x=["Revenue streams", "Expense categories"],
                y=[revenue.categories, expenses.categories],
                marker_color=[PALETTE["emerald"], PALETTE["orange"]],
                marker_line_width=0,
                text=[", ".join(revenue.category_names), ", ".join(expenses.category_names)],
                textposition="none",
                hovertemplate="%{x}: %{y}<br>%{text}<extra></extra>",
            )
        ]
    )
    return _base_layout(figure, height, "Count")


def create_sheet_volume_chart(dashboard: DashboardSnapshot, height: int = 280) -> go.Figure:
    """Records per sheet, coloured by the sheet's classification."""

    sheets = dashboard.sheets
    if not sheets:
        return _empty_figure(height)

    figure = go.Figure(
        data=[
            go.Bar(
                y=[sheet.name for sheet in sheets],
                x=[sheet.record_count for sheet in sheets],
                orientation="h",
                marker_color=[PALETTE.get(sheet.color, PALETTE["blue"]) for sheet in sheets],
                marker_line_width=0,
                customdata=np.array(
                    [[sheet.classification.value, sheet.display_count] for sheet in sheets], dtype=object
                ),
                hovertemplate=(
                    "%{y}<br>Records: %{x}<br>Type: %{customdata[0]}<br>"
                    "Substantive: %{customdata[1]}<extra></extra>"
                ),
            )
        ]
    )
    figure = _base_layout(figure, height)
    figure.update_yaxes(autorange="reversed")
    return figure


def create_activity_chart(dashboard: DashboardSnapshot, height: int = 240) -> go.Figure:
    """Dated records in the 1, 7 and 30 day windows."""

    windows = dashboard.activity
    if not windows or all(window.count == 0 for window in windows):
        return _empty_figure(height)

    figure = go.Figure(
        data=[
            go.Bar(
                x=[window.label for window in windows],
                y=[window.count for window in windows],
                marker_color=PALETTE["blue"],
                marker_line_width=0,
                text=[format_amount(window.total_amount) for window in windows],
                textposition="outside",
                hovertemplate="%{x}<br>Records: %{y}<br>Amount: %{text}<extra></extra>",
            )
        ]
    )
    return _base_layout(figure, height, "Records")


__all__ = [
    "create_activity_chart",
    "create_category_chart",
    "create_financial_chart",
    "create_sheet_volume_chart",
]
