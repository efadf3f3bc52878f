"""Dash layout composition."""
from __future__ import annotations

import urllib.parse
from typing import Iterable, List, Sequence

import dash_bootstrap_components as dbc
from dash import dash_table, dcc, html

from .charts import (
    create_activity_chart,
    create_category_chart,
    create_financial_chart,
    create_sheet_volume_chart,
)
from .config import AppConfig
from .filters import limit_records
from .formatting import format_amount, format_cell, format_date, format_percent
from .models import DashboardMetadata, DashboardSnapshot, SheetDescriptor, SummaryCard

CLICK_GRAPH_CONFIG = {
    "displayModeBar": False,
    "doubleClick": False,
    "scrollZoom": False,
}

# Inline SVG fragments for simple icons (white strokes)
_STROKE = 'stroke="white" stroke-width="2" fill="none" stroke-linecap="round" stroke-linejoin="round"'
_ICON_SHAPES = {
    "rupee": f'<path d="M6 4h12M6 9h12M9 4c5 0 5 10 0 10H6l9 7" {_STROKE}/>',
    "receipt": f'<path d="M6 3h12v18l-3-2-3 2-3-2-3 2zM9 8h6M9 12h6" {_STROKE}/>',
    "trend": f'<polyline points="4,16 10,10 13,13 20,6" {_STROKE}/>',
    "sprout": f'<path d="M12 21v-9M12 12c0-4 3-6 7-6 0 4-3 6-7 6zM12 14c0-3-2-5-6-5 0 3 2 5 6 5" {_STROKE}/>',
    "basket": f'<path d="M3 10h18l-2 10H5zM8 10l4-6 4 6" {_STROKE}/>',
    "star": f'<polygon points="12,3 15,9 21,10 16.5,14.5 18,21 12,17.5 6,21 7.5,14.5 3,10 9,9" {_STROKE}/>',
    "truck": (
        f'<path d="M3 6h11v10H3zM14 10h4l3 3v3h-7" {_STROKE}/>'
        f'<circle cx="7" cy="18" r="2" {_STROKE}/><circle cx="17" cy="18" r="2" {_STROKE}/>'
    ),
    "table": f'<path d="M4 5h16v14H4zM4 10h16M4 15h16M10 5v14" {_STROKE}/>',
    "gear": f'<circle cx="12" cy="12" r="3" {_STROKE}/><path d="M12 3v3M12 18v3M3 12h3M18 12h3" {_STROKE}/>',
    "cart": f'<path d="M3 4h3l2 11h10l2-8H7" {_STROKE}/><circle cx="10" cy="19" r="1.5" {_STROKE}/>',
    "chart": f'<path d="M4 20V10M10 20V4M16 20v-7M22 20H2" {_STROKE}/>',
}

_TREND_ARROWS = {"positive": "▲", "negative": "▼", "neutral": "■"}
_STATUS_BADGES = {
    "connected": ("Live", "success"),
    "connecting": ("Connecting", "secondary"),
    "disconnected": ("Offline", "danger"),
    "demo": ("Demo data", "warning"),
}


def _icon(name: str, size: int = 18) -> html.Img:
    """Return a small white SVG icon as <img src='data:image/svg+xml;utf8,...'>"""
    inner = _ICON_SHAPES.get(name, _ICON_SHAPES["chart"])
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
        f'viewBox="0 0 24 24">{inner}</svg>'
    )
    uri = "data:image/svg+xml;utf8," + urllib.parse.quote(svg)
    return html.Img(src=uri, style={"width": f"{size}px", "height": f"{size}px"})


def render_connection_badge(metadata: DashboardMetadata) -> dbc.Badge:
    label, color = _STATUS_BADGES.get(metadata.connection_status, (metadata.connection_status.title(), "secondary"))
    return dbc.Badge(label, color=color, pill=True, className="connection-badge")


def render_last_updated(metadata: DashboardMetadata) -> str:
    return f"Last Updated On: {format_date(metadata.last_updated, with_time=True)}"


def build_header(title: str, business_type: str, metadata: DashboardMetadata) -> html.Div:
    """Top section: title, business line, freshness, connection state and refresh button."""

    return html.Div(
        [
            html.Div(html.Div(_icon("sprout", 22), className="brand-badge"), className="topbar__icon"),
            html.Div(
                [
                    html.Div(title, className="topbar__title"),
                    html.Div(business_type, className="topbar__sub"),
                    html.Div(
                        html.Span(render_last_updated(metadata), id="last-updated-text"),
                        className="topbar__meta",
                    ),
                ],
                className="topbar__text",
            ),
            html.Div(
                [
                    html.Div(render_connection_badge(metadata), id="connection-badge"),
                    dbc.Button("Refresh", id="refresh-button", color="primary", size="sm", n_clicks=0),
                ],
                className="topbar__actions",
                style={"marginLeft": "auto", "display": "flex", "gap": "10px", "alignItems": "center"},
            ),
        ],
        className="topbar",
    )


def _summary_card(card: SummaryCard) -> dbc.Col:
    return dbc.Col(
        dbc.Card(
            dbc.CardBody(
                [
                    html.Div(
                        [html.Div(_icon(card.icon), className="kpi-icon"), html.Div(card.title, className="kpi-label")],
                        className="kpi-head",
                    ),
                    html.Div(
                        [
                            html.Span(card.value, className="kpi-value"),
                            html.Span(
                                _TREND_ARROWS.get(card.trend.value, ""),
                                className=f"kpi-trend kpi-trend--{card.trend.value}",
                            ),
                        ],
                        className="kpi-row",
                    ),
                    html.Div(card.subtitle, className="kpi-sub"),
                ]
            ),
            className=f"kpi kpi--{card.color}",
            id={"type": "summary-card", "index": card.key},
        ),
        xs=12,
        sm=6,
        lg=3,
        className="mb-3",
    )


def render_summary_cards(cards: Iterable[SummaryCard]) -> List[dbc.Col]:
    return [_summary_card(card) for card in cards]


def render_operational(dashboard: DashboardSnapshot) -> html.Div:
    ops = dashboard.operational
    financial = dashboard.financial
    items = [
        ("Tracked statuses", str(ops.total)),
        ("Active", str(ops.active)),
        ("Completed", str(ops.completed)),
        ("Pending", str(ops.pending)),
        ("Completion rate", format_percent(ops.completion_rate)),
        ("Profit margin", format_percent(financial.profit_margin)),
        ("Expected yield", format_amount(dashboard.production.total_expected_yield, symbol="")),
        ("On-time deliveries", f"{dashboard.quality.on_time_deliveries}/{dashboard.quality.total_deliveries}"),
    ]
    return html.Div(
        [
            html.Div([html.Div(label, className="ops-label"), html.Div(value, className="ops-value")], className="ops-item")
            for label, value in items
        ],
        className="ops-grid",
    )


def _sheet_table(sheet: SheetDescriptor, rows: Sequence[dict]) -> dash_table.DataTable:
    columns = list(sheet.columns)
    data = [{col: format_cell(col, row.get(col)) for col in columns} for row in rows]
    return dash_table.DataTable(
        id={"type": "sheet-table", "index": sheet.slug},
        columns=[{"name": col, "id": col} for col in columns],
        data=data,
        page_size=25,
        style_table={"overflowX": "auto"},
        style_cell={"fontFamily": "Inter, system-ui", "fontSize": 13, "textAlign": "left"},
        style_header={"fontWeight": "600", "backgroundColor": "#F1F5F9"},
    )


def build_sheet_section(sheet: SheetDescriptor, limit: int, show_all: bool = False) -> dbc.Card:
    """One card per sheet with its substantive records, capped unless expanded."""

    rows = limit_records(sheet.records, limit, show_all)
    hidden = sheet.display_count - len(rows)
    toggle_label = "Show fewer" if show_all else f"Show all {sheet.display_count}"
    footer = []
    if sheet.display_count > limit:
        footer.append(
            dbc.Button(
                toggle_label,
                id={"type": "sheet-show-all", "index": sheet.slug},
                color="link",
                size="sm",
                n_clicks=0,
            )
        )
    subtitle = f"{sheet.record_count} rows · {sheet.display_count} substantive"
    if hidden > 0:
        subtitle += f" · {hidden} hidden"
    return dbc.Card(
        [
            dbc.CardHeader(
                [
                    html.Div([_icon(sheet.icon, 16), html.Span(sheet.name)], className=f"section-title sheet--{sheet.color}"),
                    html.Div(subtitle, className="section-sub"),
                    dbc.Badge(sheet.classification.value, color="light", text_color="dark", className="ms-auto"),
                ],
                className="d-flex align-items-center gap-2",
            ),
            dbc.CardBody(_sheet_table(sheet, rows) if rows else html.Div("No substantive records.", className="text-muted")),
            dbc.CardFooter(footer) if footer else None,
        ],
        className="mb-3 sheet-card",
        id={"type": "sheet-card", "index": sheet.slug},
    )


def render_sheet_sections(dashboard: DashboardSnapshot, limit: int, expanded: Iterable[str] = ()) -> List[dbc.Card]:
    expanded_set = set(expanded or ())
    return [build_sheet_section(sheet, limit, sheet.slug in expanded_set) for sheet in dashboard.sheets]


def _chart_card(title: str, subtitle: str, graph_id: str, figure) -> dbc.Col:
    return dbc.Col(
        dbc.Card(
            [
                dbc.CardHeader([html.Div(title, className="section-title"), html.Div(subtitle, className="section-sub")]),
                dbc.CardBody(dcc.Graph(id=graph_id, figure=figure, config=CLICK_GRAPH_CONFIG)),
            ],
            className="mb-3",
        ),
        lg=6,
    )


def build_layout(config: AppConfig, dashboard: DashboardSnapshot) -> dbc.Container:
    """Assemble the full Dash layout from the dashboard currently held in memory."""

    return dbc.Container(
        [
            build_header(config.dashboard_title, config.business_type, dashboard.metadata),
            dcc.Interval(id="refresh-interval", interval=config.refresh_interval_seconds * 1000, n_intervals=0),
            dcc.Store(id="data-version", data=0),
            dcc.Store(id="expanded-sheets", data=[]),
            dbc.Row(render_summary_cards(dashboard.summary_cards), id="summary-cards", className="g-3 mb-2"),
            dbc.Row(
                [
                    _chart_card("Financial Overview", "Revenue, expenses and net profit", "financial-chart", create_financial_chart(dashboard)),
                    _chart_card("Diversification", "Revenue streams and expense categories", "category-chart", create_category_chart(dashboard)),
                ]
            ),
            dbc.Row(
                [
                    _chart_card("Sheets", "Records per sheet by type", "sheet-volume-chart", create_sheet_volume_chart(dashboard)),
                    _chart_card("Recent Activity", "Dated records in the last 1, 7 and 30 days", "activity-chart", create_activity_chart(dashboard)),
                ]
            ),
            dbc.Card(
                [
                    dbc.CardHeader(html.Div("Operations", className="section-title")),
                    dbc.CardBody(render_operational(dashboard), id="operational-summary"),
                ],
                className="mb-3",
            ),
            html.Div(
                render_sheet_sections(dashboard, config.initial_records_limit),
                id="sheet-sections",
            ),
        ],
        fluid=True,
        className="dashboard-container",
    )


__all__ = [
    "build_header",
    "build_layout",
    "build_sheet_section",
    "render_connection_badge",
    "render_last_updated",
    "render_operational",
    "render_sheet_sections",
    "render_summary_cards",
]
