from dataclasses import replace

import pandas as pd

from masterbook.assembler import CONNECTED, DEMO, DISCONNECTED
from masterbook.data_loader import SheetsConfigError
from masterbook.refresh import RefreshPhase
from masterbook.state import AppDataStore, DatasetMetadata


def _clock():
    return pd.Timestamp("2025-09-10 06:30:00")


def test_bootstrap_loads_live_data(config, farm_snapshot):
    store = AppDataStore(config, fetcher=lambda: farm_snapshot, clock=_clock)
    try:
        dashboard = store.bootstrap()
    finally:
        store.shutdown()

    assert dashboard.metadata.connection_status == CONNECTED
    assert dashboard.metadata.total_records == 17
    assert store.source == "live"
    assert store.has_data
    assert store.version == 1
    assert store.refresh_state.phase is RefreshPhase.SUCCEEDED
    assert store.metadata.last_loaded_text == "10-09-2025 06:30:00"
    assert set(store.get_sheets()) == set(farm_snapshot)


def test_failure_without_data_falls_back_to_demo(config):
    def broken():
        raise ConnectionError("network unreachable")

    store = AppDataStore(config, fetcher=broken, clock=_clock)
    try:
        dashboard = store.bootstrap()
    finally:
        store.shutdown()

    assert dashboard.metadata.connection_status == DEMO
    assert dashboard.financial.revenue == 360000
    assert store.source == "demo"
    assert store.refresh_state.phase is RefreshPhase.FAILED
    assert store.refresh_state.attempt == config.retry_attempts
    assert store.metadata.last_error == "network unreachable"


def test_failure_without_fallback_serves_empty_dashboard(config):
    def unconfigured():
        raise SheetsConfigError("GOOGLE_SHEETS_SPREADSHEET_ID is not set.")

    store = AppDataStore(replace(config, demo_fallback=False), fetcher=unconfigured, clock=_clock)
    try:
        dashboard = store.bootstrap()
    finally:
        store.shutdown()

    assert dashboard.metadata.connection_status == DISCONNECTED
    assert dashboard.metadata.total_sheets == 0
    assert not store.has_data
    assert store.refresh_state.attempt == 1
    assert store.metadata.last_error == "GOOGLE_SHEETS_SPREADSHEET_ID is not set."


def test_failure_after_success_keeps_last_good_snapshot(config, farm_snapshot):
    responses = [farm_snapshot]

    def fetcher():
        if responses:
            return responses.pop()
        raise ConnectionError("timeout")

    store = AppDataStore(config, fetcher=fetcher, clock=_clock)
    try:
        store.bootstrap()
        store.refresh(manual=True, background=False)
    finally:
        store.shutdown()

    dashboard = store.get_dashboard()
    assert dashboard.metadata.connection_status == DISCONNECTED
    assert dashboard.metadata.total_records == 17
    assert store.source == "live"
    assert store.metadata.last_error == "timeout"
    assert store.version == 2


def test_mark_failed_keeps_demo_status(config):
    store = AppDataStore(config, fetcher=lambda: {}, clock=_clock)
    try:
        store.mark_failed("first")
        version = store.version
        dashboard = store.mark_failed("second")
    finally:
        store.shutdown()

    assert dashboard.metadata.connection_status == DEMO
    assert store.version == version


def test_metadata_localises_load_time():
    metadata = DatasetMetadata()
    metadata.mark_loaded(pd.Timestamp("2025-09-10 06:30:00"), "Asia/Kolkata")
    assert metadata.last_loaded_text == "10-09-2025 12:00:00"
