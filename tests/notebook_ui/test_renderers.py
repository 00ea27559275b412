# tests/notebook_ui/test_renderers.py

import copy

from trilha.notebook_ui.renderers import (
    render_card_html,
    render_kv_table_html,
    render_manifest,
    render_payload,
    render_run_report,
    render_table_html,
)


def _report_dict():
    return {
        "run_id": "run-001",
        "targets": [
            {"name": "a", "status": "ok", "duration_ms": 12.34, "error": None, "warnings": [], "fingerprint": "f"},
            {
                "name": "b",
                "status": "error",
                "duration_ms": 1.0,
                "error": {"type": "ENGINE_EXECUTION_ERROR", "message": "boom"},
                "warnings": ["result not persisted"],
                "fingerprint": "g",
            },
            {"name": "c", "status": "blocked", "duration_ms": 0.0, "error": None, "warnings": [], "fingerprint": None},
        ],
    }


def test_render_kv_table_html_basic():
    payload = {"a": 1, "b": "x"}
    html = render_kv_table_html(payload, title="metrics")
    assert "<table>" in html
    assert "metrics" in html
    assert "a" in html
    assert "1" in html


def test_render_table_html_list_of_dicts():
    payload = [{"a": 1, "b": 2}, {"a": 3, "c": 4}]
    html = render_table_html(payload, title="rows")
    assert "<table>" in html
    assert "rows" in html
    assert "<th>a</th>" in html
    assert "<th>c</th>" in html


def test_render_table_html_escapes_values():
    html = render_table_html(["<script>"])
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_card_html_has_title():
    html = render_card_html({"k": "v"}, title="Card", subtitle="sub")
    assert "Card" in html and "sub" in html


def test_render_payload_fallback_unknown_payload_to_text():
    payload = object()
    result = render_payload(payload)
    assert result.text
    assert result.html is None


def test_purity_renderer_does_not_mutate_input_dict():
    payload = {"a": {"nested": 1}, "b": [1, 2, 3]}
    before = copy.deepcopy(payload)
    _ = render_payload(payload)
    assert payload == before


def test_render_run_report_text_and_html():
    payload = _report_dict()
    before = copy.deepcopy(payload)

    result = render_run_report(payload)

    lines = result.text.splitlines()
    assert lines[0] == "run run-001 (blocked=1, error=1, ok=1)"
    assert "[ENGINE_EXECUTION_ERROR] boom" in lines[2]
    assert "12.3ms" in lines[1]
    assert "background:#f8d0d0" in result.html
    assert payload == before


def test_render_run_report_accepts_objects_with_to_dict():
    class _Report:
        def to_dict(self):
            return {"run_id": "r", "targets": []}

    assert render_run_report(_Report()).text == "run r (no targets)"


def test_render_manifest_lists_dependencies():
    entries = [
        {"name": "a", "command": "def a():\n    return 1", "dependencies": [], "description": None},
        {"name": "b", "command": "lambda a: a", "dependencies": ["a"], "description": "plus"},
    ]
    result = render_manifest(entries)

    assert result.text == "a\nb <- a"
    assert "<details>" in result.html
    assert "def a():" in result.html
