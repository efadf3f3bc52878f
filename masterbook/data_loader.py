"""Fetch spreadsheet tabs from Google Sheets or a local workbook.

Two upstream modes are supported:

* published-to-web spreadsheets (IDs starting with ``2PACX``), downloaded as an
  XLSX export and parsed with pandas/openpyxl;
* private spreadsheets read through the Sheets API with a service account.

Both produce a :data:`~masterbook.models.SheetsSnapshot` using the same
grid-to-rows conversion.
"""
from __future__ import annotations

import logging
import math
import time
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Any, List, Sequence

import gspread
import pandas as pd
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.exceptions import GSpreadException

from .config import AppConfig
from .models import RawSheet, SheetsSnapshot

LOGGER = logging.getLogger(__name__)

PUBLISHED_PREFIX = "2PACX"
PUBLISHED_EXPORT_URL = "https://docs.google.com/spreadsheets/d/e/{sheet_id}/pub?output=xlsx"
SHEETS_SCOPES = ("https://www.googleapis.com/auth/spreadsheets.readonly",)
TOKEN_URI = "https://oauth2.googleapis.com/token"


class SheetsFetchError(RuntimeError):
    """Upstream fetch failed; the refresh loop may retry."""


class SheetsConfigError(SheetsFetchError):
    """The data source is not configured; retrying cannot help."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, pd.Timestamp):
        return "" if pd.isna(value) else value.isoformat()
    return str(value)


def _row_has_data(row: Sequence[Any]) -> bool:
    for value in row:
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if isinstance(value, float) and math.isnan(value):
                continue
            if value != 0:
                return True
            continue
        if str(value).strip():
            return True
    return False


def rows_to_raw_sheet(values: Sequence[Sequence[Any]], max_consecutive_empty: int = 5) -> RawSheet:
    """Convert a value grid (first row = headers) into a :class:`RawSheet`.

    Rows with no data are skipped and the tab is considered finished after
    ``max_consecutive_empty`` empty rows in a row.
    """

    if not values:
        return RawSheet()
    headers = [_cell_text(h).strip() for h in values[0]]
    kept: List[List[str]] = []
    empty_run = 0
    for row in values[1:]:
        if not _row_has_data(row):
            empty_run += 1
            if empty_run >= max_consecutive_empty:
                break
            continue
        empty_run = 0
        kept.append([_cell_text(v) for v in row])
    return RawSheet.from_grid(headers, kept)


def _frame_to_grid(frame: pd.DataFrame) -> List[List[Any]]:
    grid = frame.astype(object).where(pd.notna(frame), None).values.tolist()
    # Trailing all-blank columns come from formatting, not data.
    while grid and grid[0] and all(not _cell_text(row[-1]).strip() for row in grid if row):
        grid = [row[:-1] for row in grid]
    return grid


def parse_workbook(source: bytes | str | Path, max_consecutive_empty: int = 5) -> SheetsSnapshot:
    """Parse every tab of an XLSX workbook (bytes or path) into a snapshot."""

    handle: Any = BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        frames = pd.read_excel(handle, sheet_name=None, header=None, dtype=object, engine="openpyxl")
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as exc:
        raise SheetsFetchError(f"Could not parse workbook: {exc}") from exc

    snapshot: SheetsSnapshot = {}
    for name, frame in frames.items():
        snapshot[str(name)] = rows_to_raw_sheet(_frame_to_grid(frame), max_consecutive_empty)
    return snapshot


def fetch_published(config: AppConfig, session: requests.Session | None = None) -> SheetsSnapshot:
    """Download the published XLSX export of a ``2PACX`` spreadsheet."""

    url = PUBLISHED_EXPORT_URL.format(sheet_id=config.spreadsheet_id)
    if session is None:
        with requests.Session() as owned:
            return fetch_published(config, session=owned)
    try:
        response = session.get(url, timeout=config.fetch_timeout_seconds)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SheetsFetchError(f"Published export download failed: {exc}") from exc
    return parse_workbook(response.content, config.max_consecutive_empty_rows)


def _credentials(config: AppConfig) -> Credentials:
    info = {
        "type": "service_account",
        "client_email": config.client_email,
        "private_key": config.private_key,
        "token_uri": TOKEN_URI,
    }
    try:
        return Credentials.from_service_account_info(info, scopes=list(SHEETS_SCOPES))
    except (ValueError, GoogleAuthError) as exc:
        raise SheetsConfigError(f"Invalid service account credentials: {exc}") from exc


def _quote_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def fetch_authenticated(config: AppConfig, client: gspread.Client | None = None) -> SheetsSnapshot:
    """Read every tab through the Sheets API in a single batch request."""

    try:
        gc = client or gspread.authorize(_credentials(config))
        spreadsheet = gc.open_by_key(config.spreadsheet_id)
        titles = [ws.title for ws in spreadsheet.worksheets()]
        if not titles:
            return {}
        response = spreadsheet.values_batch_get(
            [_quote_title(t) for t in titles],
            params={
                "valueRenderOption": "UNFORMATTED_VALUE",
                "dateTimeRenderOption": "FORMATTED_STRING",
            },
        )
    except (GSpreadException, GoogleAuthError, requests.RequestException) as exc:
        raise SheetsFetchError(f"Sheets API request failed: {exc}") from exc

    snapshot: SheetsSnapshot = {}
    value_ranges = response.get("valueRanges", [])
    for title, value_range in zip(titles, value_ranges):
        snapshot[title] = rows_to_raw_sheet(value_range.get("values", []), config.max_consecutive_empty_rows)
    return snapshot


def fetch_sheets(config: AppConfig) -> SheetsSnapshot:
    """Fetch all tabs of the configured spreadsheet."""

    if not config.spreadsheet_id:
        raise SheetsConfigError("GOOGLE_SHEETS_SPREADSHEET_ID is not set.")

    started = time.perf_counter()
    if config.uses_published_export:
        mode = "published"
        snapshot = fetch_published(config)
    elif config.has_service_account:
        mode = "service-account"
        snapshot = fetch_authenticated(config)
    else:
        raise SheetsConfigError(
            "Spreadsheet is not published (2PACX id) and no service account credentials are set."
        )

    LOGGER.info(
        "Fetched spreadsheet | mode=%s | sheets=%d | records=%d | elapsed=%.2fs",
        mode,
        len(snapshot),
        sum(len(sheet.rows) for sheet in snapshot.values()),
        time.perf_counter() - started,
    )
    return snapshot


def load_workbook_file(path: str | Path, config: AppConfig | None = None) -> SheetsSnapshot:
    """Read a local XLSX export with the same parsing rules as the published download."""

    workbook = Path(path).expanduser()
    if not workbook.exists():
        raise SheetsConfigError(f"Workbook not found: {workbook}")
    cfg = config or AppConfig()
    return parse_workbook(workbook, cfg.max_consecutive_empty_rows)


__all__ = [
    "SheetsConfigError",
    "SheetsFetchError",
    "fetch_authenticated",
    "fetch_published",
    "fetch_sheets",
    "load_workbook_file",
    "parse_workbook",
    "rows_to_raw_sheet",
]
