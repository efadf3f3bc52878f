"""Centralized runtime data store for the Dash server."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass, replace
from threading import RLock
from typing import Callable

import pandas as pd

from .assembler import CONNECTED, CONNECTING, DEMO, DISCONNECTED, assemble, empty_dashboard
from .config import AppConfig
from .data_loader import SheetsConfigError, fetch_sheets
from .demo_data import demo_snapshot
from .models import DashboardSnapshot, SheetsSnapshot
from .refresh import RefreshCoordinator, RefreshState

LOGGER = logging.getLogger(__name__)


@dataclass
class DatasetMetadata:
    """Human-readable metadata for the currently loaded snapshot."""

    last_loaded: pd.Timestamp | None = None
    last_loaded_text: str = "N/A"
    last_error: str | None = None

    def mark_loaded(self, stamp: pd.Timestamp, timezone: str | None) -> None:
        self.last_loaded = stamp
        self.last_error = None
        try:
            shown = stamp.tz_localize("UTC").tz_convert(timezone) if timezone else stamp
            self.last_loaded_text = shown.strftime("%d-%m-%Y %H:%M:%S")
        except (TypeError, ValueError) as exc:
            LOGGER.debug("Could not localise load time: %s", exc)
            self.last_loaded_text = stamp.strftime("%d-%m-%Y %H:%M:%S")


class AppDataStore:
    """Application-wide mutable state guarded by a re-entrant lock.

    Holds the current sheets snapshot and the dashboard assembled from it.
    Both are swapped together; readers never see a half-updated pair.
    """

    def __init__(
        self,
        config: AppConfig,
        fetcher: Callable[[], SheetsSnapshot] | None = None,
        clock: Callable[[], pd.Timestamp] | None = None,
    ):
        self._config = config
        self._lock = RLock()
        self._clock = clock or (lambda: pd.Timestamp.now(tz="UTC").tz_localize(None))
        self._sheets: SheetsSnapshot | None = None
        self._dashboard: DashboardSnapshot = empty_dashboard(CONNECTING, config=config)
        self._source = "none"
        self._version = 0
        self.metadata = DatasetMetadata()
        self._coordinator: RefreshCoordinator[SheetsSnapshot] = RefreshCoordinator(
            fetcher or (lambda: fetch_sheets(config)),
            on_success=self._handle_success,
            on_failure=self._handle_failure,
            timeout=config.fetch_timeout_seconds,
            max_attempts=config.retry_attempts,
            base_delay=config.retry_base_delay_seconds,
            non_retryable=(SheetsConfigError,),
        )

    def bootstrap(self) -> DashboardSnapshot:
        """Run the first refresh synchronously so the first page load has data."""

        state = self._coordinator.run_cycle(manual=True)
        LOGGER.info(
            "Bootstrap refresh finished | phase=%s | attempts=%d | source=%s",
            state.phase.value,
            state.attempt,
            self._source,
        )
        return self.get_dashboard()

    def refresh(self, manual: bool = False, background: bool = True) -> Future | RefreshState | None:
        """Kick off a refresh; timer ticks are coalesced while one is running."""

        if background:
            return self._coordinator.trigger(manual=manual)
        return self._coordinator.run_cycle(manual=manual)

    def apply_sheets(self, sheets: SheetsSnapshot, status: str = CONNECTED, source: str = "live") -> DashboardSnapshot:
        now = self._clock()
        dashboard = assemble(sheets, now=now, connection_status=status, config=self._config)
        with self._lock:
            self._sheets = sheets
            self._dashboard = dashboard
            self._source = source
            self._version += 1
            self.metadata.mark_loaded(now, self._config.display_timezone)
        return dashboard

    def mark_failed(self, error: BaseException | str) -> DashboardSnapshot:
        """Keep the last good snapshot, or fall back to demo data, after a failed refresh."""

        message = str(error)
        with self._lock:
            self.metadata.last_error = message
            if self._sheets is not None:
                if self._source == "live":
                    metadata = replace(self._dashboard.metadata, connection_status=DISCONNECTED)
                    self._dashboard = replace(self._dashboard, metadata=metadata)
                    self._version += 1
                LOGGER.warning("Refresh failed; keeping %s snapshot: %s", self._source, message)
                return self._dashboard

        if self._config.demo_fallback:
            LOGGER.warning("Refresh failed with no prior data; serving demo dataset: %s", message)
            dashboard = self.apply_sheets(demo_snapshot(), status=DEMO, source="demo")
            with self._lock:
                self.metadata.last_error = message
            return dashboard

        with self._lock:
            self._dashboard = empty_dashboard(DISCONNECTED, config=self._config)
            self._version += 1
            LOGGER.error("Refresh failed with no prior data: %s", message)
            return self._dashboard

    def _handle_success(self, sheets: SheetsSnapshot) -> None:
        self.apply_sheets(sheets)

    def _handle_failure(self, error: BaseException) -> None:
        self.mark_failed(error)

    def get_dashboard(self) -> DashboardSnapshot:
        with self._lock:
            return self._dashboard

    def get_sheets(self) -> SheetsSnapshot:
        with self._lock:
            return dict(self._sheets) if self._sheets is not None else {}

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def source(self) -> str:
        with self._lock:
            return self._source

    @property
    def has_data(self) -> bool:
        with self._lock:
            return self._sheets is not None

    @property
    def refresh_state(self) -> RefreshState:
        return self._coordinator.state

    @property
    def last_fetch_seconds(self) -> float | None:
        return self._coordinator.last_fetch_seconds

    def shutdown(self) -> None:
        self._coordinator.shutdown()


__all__ = ["AppDataStore", "DatasetMetadata"]
