"""Dash application entry point."""
from __future__ import annotations

import json
import logging
import os
import time

import psutil
from dash import Dash
from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from pythonjsonlogger import jsonlogger
from werkzeug.middleware.proxy_fix import ProxyFix

from masterbook.callbacks import register_callbacks
from masterbook.config import AppConfig, configure_logging
from masterbook.layout import build_layout
from masterbook.models import DashboardSnapshot
from masterbook.state import AppDataStore


LOGGER = logging.getLogger(__name__)


def _ensure_json_logging() -> None:
    """Attach a JSON formatter to the root logger if not already present."""

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if getattr(handler, "_is_json_handler", False):
            return

    json_handler = logging.StreamHandler()
    json_handler.setFormatter(jsonlogger.JsonFormatter())
    json_handler._is_json_handler = True  # type: ignore[attr-defined]
    root_logger.addHandler(json_handler)


CONFIG = AppConfig()
CONFIG.validate()
DATA_STORE = AppDataStore(CONFIG)
_APP: Dash | None = None


def get_dashboard() -> DashboardSnapshot:
    return DATA_STORE.get_dashboard()


def get_last_updated_text() -> str:
    """Return the load timestamp text (for header/health)."""

    return DATA_STORE.metadata.last_loaded_text


def refresh_data(manual: bool = False) -> object:
    # Dash runs each callback on its own request thread; ticks that overlap a
    # running cycle return immediately.
    return DATA_STORE.refresh(manual=manual, background=False)


def _merge_csp_values(*groups: tuple[str, ...] | list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for group in groups:
        for value in group:
            if value not in seen:
                seen.add(value)
                merged.append(value)
    return merged


def create_app(config: AppConfig | None = None, store: AppDataStore | None = None) -> Dash:
    """Create and configure the Dash application instance."""

    configure_logging()
    _ensure_json_logging()

    global CONFIG, DATA_STORE, _APP
    active_config = config or CONFIG
    active_config.validate()
    CONFIG = active_config
    if store is not None:
        DATA_STORE = store
    elif config is not None:
        DATA_STORE = AppDataStore(active_config)

    dashboard = DATA_STORE.bootstrap()

    app_instance = Dash(__name__)
    app_instance.title = active_config.dashboard_title
    app_instance.layout = build_layout(active_config, dashboard)

    server = app_instance.server
    server.config["SECRET_KEY"] = active_config.secret_key
    server.config["SESSION_COOKIE_SECURE"] = True
    server.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    server.config["MAX_CONTENT_LENGTH"] = 5 * 1024 * 1024

    if active_config.app_env == "production":
        if active_config.behind_proxy:
            server.wsgi_app = ProxyFix(server.wsgi_app, x_for=1, x_proto=1, x_host=1)

        # Strict CSP for prod; leave it OFF in dev to avoid blocking Dash inline JS.
        csp = {
            "default-src": ["'self'"],
            "img-src": ["'self'", "data:"],
            "style-src": ["'self'", "'unsafe-inline'"],
            "script-src": ["'self'", "'unsafe-inline'", "'unsafe-eval'"],
            "connect-src": ["'self'"],
            "font-src": ["'self'", "data:"],
        }

        csp["script-src"] = _merge_csp_values(csp["script-src"], active_config.csp_script_src)
        csp["style-src"] = _merge_csp_values(csp["style-src"], active_config.csp_style_src)
        csp["font-src"] = _merge_csp_values(csp["font-src"], active_config.csp_font_src)
        csp["connect-src"] = _merge_csp_values(csp["connect-src"], active_config.csp_connect_src)
        csp["img-src"] = _merge_csp_values(csp["img-src"], active_config.csp_img_src)

        csp_directives = {key: " ".join(values) for key, values in csp.items()}

        Talisman(
            server,
            force_https=active_config.enable_https,
            strict_transport_security=True,
            frame_options="DENY",
            content_security_policy=csp_directives,
        )

        Limiter(get_remote_address, app=server, default_limits=["120/minute"])

    @server.before_request
    def _capture_request_start() -> None:
        request.environ["request_start_time"] = time.perf_counter()

    @server.after_request
    def _log_request(response):  # type: ignore[override]
        start_time = request.environ.get("request_start_time")
        duration_ms = 0.0
        if start_time is not None:
            duration_ms = (time.perf_counter() - start_time) * 1000

        content_length = response.calculate_content_length() or 0
        log_data = {
            "event": "http_request",
            "path": request.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "content_length": content_length,
        }
        LOGGER.info("request", extra=log_data)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"
        return response

    @server.get("/__/health")
    def healthcheck():  # type: ignore[override]
        process = psutil.Process(os.getpid())
        rss_mb = process.memory_info().rss / (1024 * 1024)
        dashboard = DATA_STORE.get_dashboard()
        refresh_state = DATA_STORE.refresh_state
        last_fetch = DATA_STORE.last_fetch_seconds
        payload = {
            "status": "ok",
            "rss_mb": round(rss_mb, 2),
            "last_updated": get_last_updated_text(),
            "connection_status": dashboard.metadata.connection_status,
            "data_source": DATA_STORE.source,
            "refresh_phase": refresh_state.phase.value,
            "refresh_attempt": refresh_state.attempt,
            "refresh_generation": refresh_state.generation,
            "last_error": DATA_STORE.metadata.last_error,
            "last_fetch_seconds": round(last_fetch, 3) if last_fetch is not None else None,
            "sheets": dashboard.metadata.total_sheets,
            "records": dashboard.metadata.total_records,
        }
        LOGGER.info("health", extra={"event": "health", **{k: v for k, v in payload.items() if k != "status"}})
        return server.response_class(
            response=json.dumps(payload),
            status=200,
            mimetype="application/json",
        )

    @server.get("/__/ready")
    def readiness():  # type: ignore[override]
        dashboard = DATA_STORE.get_dashboard()
        status = 200 if DATA_STORE.has_data else 503
        payload = {
            "status": "ok" if status == 200 else "unavailable",
            "sheets": dashboard.metadata.total_sheets,
            "records": dashboard.metadata.total_records,
        }
        return server.response_class(
            response=json.dumps(payload),
            status=status,
            mimetype="application/json",
        )

    @server.errorhandler(403)
    def _forbidden(e): return {"error": "forbidden"}, 403

    @server.errorhandler(500)
    def _ise(e): return {"error": "internal server error"}, 500

    register_callbacks(
        app_instance,
        get_dashboard,
        active_config,
        refresh_handler=refresh_data,
        version_provider=lambda: DATA_STORE.version,
    )
    _APP = app_instance
    return app_instance


def get_app() -> Dash:
    """Return the application, building it from the module config on first use."""

    if _APP is None:
        create_app()
    return _APP  # type: ignore[return-value]


def __getattr__(name: str):
    # `app:server` for WSGI servers; importing the module alone does not bootstrap.
    if name == "app":
        return get_app()
    if name == "server":
        return get_app().server
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def main() -> None:
    """Run the Dash development server."""

    get_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "8050")), debug=False)


if __name__ == "__main__":
    main()
