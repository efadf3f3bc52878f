"""Fetch the spreadsheet once, assemble the dashboard and report it, optionally serving the UI."""
import argparse
import json
import logging
import os
from dataclasses import replace
from importlib import import_module
from pathlib import Path
from typing import Callable, Iterable, Optional

from masterbook.assembler import CONNECTED, DEMO, assemble
from masterbook.config import AppConfig, configure_logging
from masterbook.data_loader import SheetsFetchError, fetch_sheets, load_workbook_file
from masterbook.demo_data import demo_snapshot
from masterbook.formatting import format_amount, format_percent
from masterbook.models import DashboardSnapshot, SheetsSnapshot

BASE_DIR = Path(__file__).resolve().parent


def _resolve_path(value: Optional[str], base: Path) -> Optional[Path]:
    if value in (None, ""):
        return None
    candidate = Path(value)
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


def _select_source(args: argparse.Namespace, config: AppConfig) -> tuple[str, Callable[[], SheetsSnapshot]]:
    if args.demo:
        return "demo", demo_snapshot
    workbook = _resolve_path(args.workbook, Path.cwd())
    if workbook is not None:
        return f"workbook {workbook}", lambda: load_workbook_file(workbook, config)
    return f"spreadsheet {config.spreadsheet_id}", lambda: fetch_sheets(config)


def summarize(dashboard: DashboardSnapshot) -> list[str]:
    """Human-readable report lines for a dashboard snapshot."""

    meta = dashboard.metadata
    lines = [
        f"[dashboard] {meta.title} ({meta.business_type})",
        f"[dashboard] status={meta.connection_status} sheets={meta.total_sheets} records={meta.total_records}",
    ]
    for card in dashboard.summary_cards:
        lines.append(f"[card] {card.title}: {card.value} | {card.subtitle} | {card.trend.value}")
    financial = dashboard.financial
    lines.append(
        f"[financial] revenue={format_amount(financial.revenue)} expenses={format_amount(financial.expenses)} "
        f"margin={format_percent(financial.profit_margin)}"
    )
    for sheet in dashboard.sheets:
        lines.append(
            f"[sheet] {sheet.name}: {sheet.classification.value} "
            f"rows={sheet.record_count} substantive={sheet.display_count}"
        )
    return lines


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Fetch the business spreadsheet, assemble the dashboard and print a summary."
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--workbook", help="Local .xlsx export to read instead of Google Sheets.")
    source.add_argument("--demo", action="store_true", help="Use the built-in demo dataset.")
    source.add_argument("--spreadsheet-id", help="Override GOOGLE_SHEETS_SPREADSHEET_ID.")
    parser.add_argument("--json", action="store_true", help="Print the full dashboard snapshot as JSON.")
    parser.add_argument("--output", help="Also write the JSON snapshot to this file.")
    parser.add_argument("--serve", action="store_true", help="Start the Dash server with the selected source.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = AppConfig()
    if args.spreadsheet_id:
        config = replace(config, spreadsheet_id=args.spreadsheet_id)
    config.validate()

    label, fetcher = _select_source(args, config)
    print(f"[pipeline] Reading {label}")
    try:
        sheets = fetcher()
    except SheetsFetchError as exc:
        raise SystemExit(f"[pipeline] Fetch failed: {exc}") from exc

    status = DEMO if args.demo else CONNECTED
    dashboard = assemble(sheets, connection_status=status, config=config)

    if args.json:
        print(json.dumps(dashboard.to_dict(), indent=2, ensure_ascii=False))
    else:
        for line in summarize(dashboard):
            print(line)

    output_path = _resolve_path(args.output, Path.cwd())
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(dashboard.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"[pipeline] Snapshot written to {output_path}")

    if not args.serve:
        return

    dash_host = os.getenv("DASH_HOST", "0.0.0.0")
    dash_port = int(os.getenv("DASH_PORT", "8050"))
    print("[dashboard] Loading Dash app...")
    dashboard_module = import_module("app")
    store = dashboard_module.AppDataStore(config, fetcher=fetcher)
    dash_app = dashboard_module.create_app(config, store=store)
    print(f"[dashboard] Starting server on http://{dash_host}:{dash_port}")
    dash_app.run(host=dash_host, port=dash_port, debug=False)


if __name__ == "__main__":
    main()
