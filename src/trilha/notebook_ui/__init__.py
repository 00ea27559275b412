from .renderers import (
    RenderResult,
    render_payload,
    render_kv_table_html,
    render_table_html,
    render_card_html,
    render_run_report,
    render_manifest,
)

__all__ = [
    "RenderResult",
    "render_payload",
    "render_kv_table_html",
    "render_table_html",
    "render_card_html",
    "render_run_report",
    "render_manifest",
]
