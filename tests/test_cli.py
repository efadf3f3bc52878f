import importlib
import json

import pytest

import pipeline_runner


def test_demo_summary(capsys):
    pipeline_runner.main(["--demo"])
    out = capsys.readouterr().out.splitlines()

    assert out[0] == "[pipeline] Reading demo"
    assert "[card] Total Revenue: ₹3,60,000 | 5 revenue streams | positive" in out
    assert "[card] Total Expenses: ₹1,15,000 | 5 expense categories | neutral" in out
    assert any(line.startswith("[sheet] Production Data: production-batches") for line in out)


def test_demo_json_and_output_file(capsys, tmp_path):
    target = tmp_path / "out" / "snapshot.json"
    pipeline_runner.main(["--demo", "--json", "--output", str(target)])
    lines = capsys.readouterr().out.splitlines()

    assert lines[0] == "[pipeline] Reading demo"
    assert lines[-1].startswith("[pipeline] Snapshot written to")
    payload = json.loads("\n".join(lines[1:-1]))
    assert payload["metadata"]["connection_status"] == "demo"
    assert payload["financial"]["profit"] == 245000
    assert json.loads(target.read_text(encoding="utf-8")) == payload


def test_missing_workbook_exits(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        pipeline_runner.main(["--workbook", str(tmp_path / "missing.xlsx")])
    assert "Fetch failed" in str(excinfo.value)


def test_sources_are_mutually_exclusive():
    with pytest.raises(SystemExit):
        pipeline_runner.main(["--demo", "--workbook", "book.xlsx"])


def test_serve_runs_the_app_built_from_the_selected_source(monkeypatch, capsys):
    started = []
    monkeypatch.delenv("DASH_HOST", raising=False)
    monkeypatch.setenv("DASH_PORT", "8123")
    monkeypatch.setattr("dash.Dash.run", lambda self, **kwargs: started.append((self, kwargs)))
    pipeline_runner.main(["--demo", "--serve"])
    out = capsys.readouterr().out

    dashboard_module = importlib.import_module("app")
    try:
        assert len(started) == 1
        dash_app, kwargs = started[0]
        assert dash_app is dashboard_module.get_app()
        assert kwargs["port"] == 8123
        assert dashboard_module.DATA_STORE.version >= 1
        assert dashboard_module.get_dashboard().metadata.total_records > 0
        assert "Starting server on http://0.0.0.0:8123" in out
    finally:
        dashboard_module.DATA_STORE.shutdown()
