"""Application configuration and logging utilities."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass


def _parse_csv_env(name: str, default: str = "") -> tuple[str, ...]:
    """Parse a comma-separated environment variable into a tuple of values."""

    raw = os.getenv(name, default)
    if not raw:
        return ()
    parts: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value:
            parts.append(value)
    return tuple(parts)


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_private_key() -> str | None:
    # Keys pasted into .env files usually carry literal "\n" sequences.
    raw = os.getenv("GOOGLE_SHEETS_PRIVATE_KEY") or None
    if raw is None:
        return None
    return raw.replace("\\n", "\n")


_DEFAULT_CSP_SCRIPT_SRC = ("https://unpkg.com", "https://cdn.plot.ly")
_DEFAULT_CSP_STYLE_SRC = ("https://fonts.googleapis.com", "https://cdn.jsdelivr.net")
_DEFAULT_CSP_FONT_SRC = ("https://fonts.gstatic.com",)


@dataclass(frozen=True)
class AppConfig:
    """Immutable configuration sourced from environment variables or defaults."""

    # Security
    secret_key: str = os.getenv("SECRET_KEY", "change-me")

    # Runtime environment
    app_env: str = os.getenv("APP_ENV", "development")
    enable_https: bool = _env_flag("ENABLE_HTTPS")
    behind_proxy: bool = _env_flag("BEHIND_PROXY")

    # Data source
    spreadsheet_id: str | None = os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID") or None
    client_email: str | None = os.getenv("GOOGLE_SHEETS_CLIENT_EMAIL") or None
    private_key: str | None = _env_private_key()
    max_consecutive_empty_rows: int = int(os.getenv("MAX_CONSECUTIVE_EMPTY_ROWS", "5"))

    # Refresh cadence
    refresh_interval_seconds: int = int(os.getenv("REFRESH_INTERVAL_SECONDS", "30"))
    fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "15"))
    retry_attempts: int = int(os.getenv("FETCH_RETRY_ATTEMPTS", "3"))
    retry_base_delay_seconds: float = float(os.getenv("FETCH_RETRY_DELAY_SECONDS", "1.0"))
    demo_fallback: bool = _env_flag("DEMO_FALLBACK", "1")

    # Presentation
    dashboard_title: str = os.getenv("DASHBOARD_TITLE", "Triton Food Works Masterbook")
    business_type: str = os.getenv("BUSINESS_TYPE", "Agriculture & Food Processing")
    initial_records_limit: int = int(os.getenv("INITIAL_RECORDS_LIMIT", "6"))
    excluded_sheets: tuple[str, ...] = _parse_csv_env("EXCLUDED_SHEETS", "Dashboard")

    # Display + CSP customisation
    display_timezone: str | None = os.getenv("DISPLAY_TIMEZONE", "Asia/Kolkata") or None
    csp_script_src: tuple[str, ...] = _DEFAULT_CSP_SCRIPT_SRC + _parse_csv_env("CSP_SCRIPT_SRC")
    csp_style_src: tuple[str, ...] = _DEFAULT_CSP_STYLE_SRC + _parse_csv_env("CSP_STYLE_SRC")
    csp_font_src: tuple[str, ...] = _DEFAULT_CSP_FONT_SRC + _parse_csv_env("CSP_FONT_SRC")
    csp_connect_src: tuple[str, ...] = _parse_csv_env("CSP_CONNECT_SRC")
    csp_img_src: tuple[str, ...] = _parse_csv_env("CSP_IMG_SRC")

    @property
    def uses_published_export(self) -> bool:
        return bool(self.spreadsheet_id and self.spreadsheet_id.startswith("2PACX"))

    @property
    def has_service_account(self) -> bool:
        return bool(self.client_email and self.private_key)

    def is_excluded_sheet(self, name: str) -> bool:
        lowered = name.strip().lower()
        return any(lowered == excluded.lower() for excluded in self.excluded_sheets)

    def validate(self) -> None:
        """Reject refresh settings the refresh loop cannot honour."""

        if self.refresh_interval_seconds <= 0:
            raise ValueError("REFRESH_INTERVAL_SECONDS must be positive.")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("FETCH_TIMEOUT_SECONDS must be positive.")
        if self.retry_attempts < 1:
            raise ValueError("FETCH_RETRY_ATTEMPTS must be at least 1.")
        if self.retry_base_delay_seconds < 0:
            raise ValueError("FETCH_RETRY_DELAY_SECONDS cannot be negative.")
        if self.initial_records_limit < 1:
            raise ValueError("INITIAL_RECORDS_LIMIT must be at least 1.")
        if self.max_consecutive_empty_rows < 1:
            raise ValueError("MAX_CONSECUTIVE_EMPTY_ROWS must be at least 1.")


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging once for the application."""

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.debug("Logging already configured; skipping reconfiguration.")
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
