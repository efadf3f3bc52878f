from dataclasses import replace
from io import BytesIO
from unittest.mock import MagicMock

import pytest
import requests
from openpyxl import Workbook

from masterbook.data_loader import (
    SheetsConfigError,
    SheetsFetchError,
    fetch_authenticated,
    fetch_published,
    fetch_sheets,
    load_workbook_file,
    parse_workbook,
    rows_to_raw_sheet,
)


def _xlsx_bytes():
    workbook = Workbook()
    batches = workbook.active
    batches.title = "Crop Batches"
    batches.append(["BatchID", "ExpectedYield", None])
    batches.append(["B1", 1000, None])
    batches.append([None, None, None])
    batches.append(["B2", 250.5, None])
    expenses = workbook.create_sheet("Farm Expenses")
    expenses.append(["Vendor", "Cost"])
    expenses.append(["FuelCo", "₹20,000"])
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_rows_to_raw_sheet_skips_blank_rows():
    sheet = rows_to_raw_sheet(
        [["Batch", "Qty"], ["B1", 5.0], [None, ""], ["B2", 2.5], [0, " "]]
    )
    assert sheet.headers == ("Batch", "Qty")
    assert sheet.rows == ({"Batch": "B1", "Qty": "5"}, {"Batch": "B2", "Qty": "2.5"})


def test_rows_to_raw_sheet_stops_after_consecutive_blank_rows():
    values = [["Batch"], ["B1"], [""], [""], ["B9"]]
    assert len(rows_to_raw_sheet(values, max_consecutive_empty=2)) == 1
    assert len(rows_to_raw_sheet(values, max_consecutive_empty=3)) == 2


def test_rows_to_raw_sheet_pads_short_rows_and_names_blank_headers():
    sheet = rows_to_raw_sheet([["Batch", "", "Qty"], ["B1", "x"]])
    assert sheet.columns == ("Batch", "col_2", "Qty")
    assert sheet.rows[0] == {"Batch": "B1", "col_2": "x", "Qty": ""}


def test_rows_to_raw_sheet_empty_grid():
    assert len(rows_to_raw_sheet([])) == 0


def test_parse_workbook_reads_every_tab():
    snapshot = parse_workbook(_xlsx_bytes())
    assert list(snapshot) == ["Crop Batches", "Farm Expenses"]
    batches = snapshot["Crop Batches"]
    assert batches.headers == ("BatchID", "ExpectedYield")
    assert [row["ExpectedYield"] for row in batches.rows] == ["1000", "250.5"]
    assert snapshot["Farm Expenses"].rows[0]["Cost"] == "₹20,000"


def test_parse_workbook_rejects_garbage():
    with pytest.raises(SheetsFetchError):
        parse_workbook(b"not a workbook")


def test_load_workbook_file(tmp_path, config):
    path = tmp_path / "export.xlsx"
    path.write_bytes(_xlsx_bytes())
    assert set(load_workbook_file(path, config)) == {"Crop Batches", "Farm Expenses"}
    with pytest.raises(SheetsConfigError):
        load_workbook_file(tmp_path / "missing.xlsx", config)


def test_fetch_published_downloads_export(config):
    session = MagicMock()
    session.get.return_value.content = _xlsx_bytes()
    cfg = replace(config, spreadsheet_id="2PACX-abc")

    snapshot = fetch_published(cfg, session=session)

    url = session.get.call_args.args[0]
    assert url == "https://docs.google.com/spreadsheets/d/e/2PACX-abc/pub?output=xlsx"
    assert session.get.call_args.kwargs["timeout"] == cfg.fetch_timeout_seconds
    assert "Crop Batches" in snapshot


def test_fetch_published_wraps_http_errors(config):
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("offline")
    with pytest.raises(SheetsFetchError):
        fetch_published(replace(config, spreadsheet_id="2PACX-abc"), session=session)


def test_fetch_authenticated_batches_all_tabs(config):
    client = MagicMock()
    spreadsheet = client.open_by_key.return_value
    first, second = MagicMock(), MagicMock()
    first.title = "Harvest Log"
    second.title = "Owner's Notes"
    spreadsheet.worksheets.return_value = [first, second]
    spreadsheet.values_batch_get.return_value = {
        "valueRanges": [
            {"values": [["HarvestID", "QtyHarvested"], ["H1", 900]]},
            {"values": [["Note"]]},
        ]
    }
    cfg = replace(config, spreadsheet_id="sheet-key")

    snapshot = fetch_authenticated(cfg, client=client)

    client.open_by_key.assert_called_once_with("sheet-key")
    ranges = spreadsheet.values_batch_get.call_args.args[0]
    assert ranges == ["'Harvest Log'", "'Owner''s Notes'"]
    assert snapshot["Harvest Log"].rows == ({"HarvestID": "H1", "QtyHarvested": "900"},)
    assert len(snapshot["Owner's Notes"]) == 0


def test_fetch_sheets_requires_spreadsheet_id(config):
    with pytest.raises(SheetsConfigError):
        fetch_sheets(config)


def test_fetch_sheets_requires_credentials_for_private_sheets(config):
    with pytest.raises(SheetsConfigError):
        fetch_sheets(replace(config, spreadsheet_id="private-key"))


def test_fetch_published_closes_its_own_session(config, monkeypatch):
    session = MagicMock()
    session.__enter__.return_value = session
    session.get.return_value.content = _xlsx_bytes()
    monkeypatch.setattr(requests, "Session", lambda: session)

    fetch_published(replace(config, spreadsheet_id="2PACX-abc"))

    session.__exit__.assert_called_once()
