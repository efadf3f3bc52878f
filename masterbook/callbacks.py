"""Dash callbacks: periodic/manual refresh and rendering of the current dashboard."""
from __future__ import annotations

import logging
from typing import Callable, List

import dash
from dash import Dash
from dash.dependencies import ALL, Input, Output, State
from dash.exceptions import PreventUpdate

from .charts import (
    create_activity_chart,
    create_category_chart,
    create_financial_chart,
    create_sheet_volume_chart,
)
from .config import AppConfig
from .layout import (
    render_connection_badge,
    render_last_updated,
    render_operational,
    render_sheet_sections,
    render_summary_cards,
)
from .models import DashboardSnapshot

LOGGER = logging.getLogger(__name__)


def toggle_expanded(expanded: List[str] | None, slug: str) -> List[str]:
    """Add ``slug`` to the expanded list, or remove it when already present."""
    current = list(expanded or [])
    if slug in current:
        current.remove(slug)
    else:
        current.append(slug)
    return current


def register_callbacks(
    app: Dash,
    dashboard_provider: Callable[[], DashboardSnapshot],
    config: AppConfig,
    *,
    refresh_handler: Callable[[bool], object],
    version_provider: Callable[[], int],
) -> None:

    LOGGER.debug("Registering callbacks")

    @app.callback(
        Output("data-version", "data"),
        Input("refresh-interval", "n_intervals"),
        Input("refresh-button", "n_clicks"),
        State("data-version", "data"),
    )
    def refresh_data(_n_intervals, _n_clicks, current_version):
        manual = dash.ctx.triggered_id == "refresh-button"
        refresh_handler(manual)
        version = version_provider()
        if version == current_version:
            raise PreventUpdate
        LOGGER.debug("Dashboard version %s -> %s (manual=%s)", current_version, version, manual)
        return version

    @app.callback(
        Output("summary-cards", "children"),
        Output("financial-chart", "figure"),
        Output("category-chart", "figure"),
        Output("sheet-volume-chart", "figure"),
        Output("activity-chart", "figure"),
        Output("operational-summary", "children"),
        Output("sheet-sections", "children"),
        Output("connection-badge", "children"),
        Output("last-updated-text", "children"),
        Input("data-version", "data"),
        Input("expanded-sheets", "data"),
    )
    def render_dashboard(_version, expanded):
        dashboard = dashboard_provider()
        return (
            render_summary_cards(dashboard.summary_cards),
            create_financial_chart(dashboard),
            create_category_chart(dashboard),
            create_sheet_volume_chart(dashboard),
            create_activity_chart(dashboard),
            render_operational(dashboard),
            render_sheet_sections(dashboard, config.initial_records_limit, expanded or []),
            render_connection_badge(dashboard.metadata),
            render_last_updated(dashboard.metadata),
        )

    @app.callback(
        Output("expanded-sheets", "data"),
        Input({"type": "sheet-show-all", "index": ALL}, "n_clicks"),
        State("expanded-sheets", "data"),
        prevent_initial_call=True,
    )
    def toggle_sheet(_clicks, expanded):
        triggered = dash.ctx.triggered_id
        # Re-rendered buttons fire with n_clicks=0; only real clicks count.
        if not isinstance(triggered, dict) or not dash.ctx.triggered or not dash.ctx.triggered[0].get("value"):
            raise PreventUpdate
        return toggle_expanded(expanded, triggered["index"])


__all__ = ["register_callbacks", "toggle_expanded"]
