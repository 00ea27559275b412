# src/trilha/notebook_ui/renderers.py
"""
Notebook UI Adapter (v1)

Renderiza relatórios e listagens do Trilha para leitura em notebooks.

Regras:
- Nunca altera o objeto recebido.
- Não importa Engine, stores ou Pipeline: relatórios são aceitos como
  dict (`RunReport.to_dict()`) ou por qualquer objeto com `to_dict()`.
- Sempre devolve um fallback textual, mesmo quando há HTML.
"""

from __future__ import annotations

import copy
import html
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence


_STATUS_STYLE = {
    "ok": "background:#d9f2d9",
    "skipped": "background:#eeeeee",
    "error": "background:#f8d0d0",
    "blocked": "background:#f7efc4",
}


@dataclass(frozen=True)
class RenderResult:
    """Saída de renderização: HTML opcional + texto sempre presente."""
    html: Optional[str]
    text: str


def _escape(s: Any) -> str:
    return html.escape("" if s is None else str(s))


def _as_pretty_json(payload: Any) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
    except TypeError:
        return repr(payload)


def _snapshot(payload: Any) -> Any:
    return copy.deepcopy(payload) if isinstance(payload, (dict, list)) else None


def _assert_untouched(before: Any, payload: Any) -> None:
    if before is not None and before != payload:
        raise AssertionError("Notebook UI renderer mutated the input payload")


def render_payload(payload: Any) -> RenderResult:
    """
    Renderização genérica:
    - mapping → tabela chave/valor
    - sequência (exceto str/bytes) → tabela
    - demais valores → JSON indentado (ou repr)
    """
    before = _snapshot(payload)

    html_out: Optional[str] = None
    if isinstance(payload, Mapping):
        html_out = render_kv_table_html(payload)
    elif isinstance(payload, Sequence) and not isinstance(payload, (str, bytes, bytearray)):
        html_out = render_table_html(payload)
    text_out = _as_pretty_json(payload)

    _assert_untouched(before, payload)
    return RenderResult(html=html_out, text=text_out)


def render_kv_table_html(payload: Mapping[str, Any], title: Optional[str] = None) -> str:
    """Mapping como tabela de duas colunas."""
    rows = "".join(
        f"<tr><td><code>{_escape(k)}</code></td><td>{_escape(v)}</td></tr>" for k, v in payload.items()
    )
    heading = f"<h4>{_escape(title)}</h4>" if title else ""
    return (
        f"{heading}<table>"
        "<thead><tr><th>key</th><th>value</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _columns(items: Sequence[Mapping[str, Any]]) -> List[str]:
    cols: List[str] = []
    for row in items:
        for k in row.keys():
            if k not in cols:
                cols.append(k)
    return cols


def render_table_html(
    payload: Sequence[Any],
    title: Optional[str] = None,
    max_rows: int = 50,
    row_style: Optional[Mapping[int, str]] = None,
) -> str:
    """
    Sequência como tabela:
    - linhas mapping → colunas = união das chaves, em ordem de aparição
    - outros valores → uma coluna `value`

    `row_style` opcional aplica estilo CSS por índice de linha.
    """
    items = list(payload)[:max_rows]
    heading = f"<h4>{_escape(title)}</h4>" if title else ""
    if not items:
        return f"{heading}<div><em>(empty)</em></div>"

    def tr(i: int, cells: str) -> str:
        style = (row_style or {}).get(i)
        return f"<tr style='{style}'>{cells}</tr>" if style else f"<tr>{cells}</tr>"

    if all(isinstance(x, Mapping) for x in items):
        cols = _columns(items)
        head = "".join(f"<th>{_escape(c)}</th>" for c in cols)
        body = "".join(
            tr(i, "".join(f"<td>{_escape(row.get(c))}</td>" for c in cols)) for i, row in enumerate(items)
        )
    else:
        head = "<th>value</th>"
        body = "".join(tr(i, f"<td>{_escape(x)}</td>") for i, x in enumerate(items))

    return f"{heading}<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def render_card_html(payload: Mapping[str, Any], title: str, subtitle: Optional[str] = None) -> str:
    """Card com título, subtítulo opcional e tabela chave/valor."""
    st = f"<div style='opacity:0.75'>{_escape(subtitle)}</div>" if subtitle else ""
    return (
        "<div style='border:1px solid #ddd; border-radius:12px; padding:12px; margin:8px 0;'>"
        f"<h3 style='margin:0 0 6px 0;'>{_escape(title)}</h3>"
        f"{st}{render_kv_table_html(payload)}"
        "</div>"
    )


def _as_dict(report: Any) -> Dict[str, Any]:
    if isinstance(report, Mapping):
        return dict(report)
    to_dict = getattr(report, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"Cannot render report of type {type(report).__name__}")


def render_run_report(report: Any) -> RenderResult:
    """
    Relatório de run: uma linha por target com status, duração e erro.

    Aceita `RunReport` ou sua forma em dict.
    """
    before = _snapshot(report)
    data = _as_dict(report)

    rows = []
    for entry in data.get("targets", []) or []:
        error = entry.get("error") or {}
        rows.append(
            {
                "target": entry.get("name"),
                "status": entry.get("status"),
                "duration_ms": round(float(entry.get("duration_ms") or 0.0), 1),
                "error": error.get("type"),
                "message": error.get("message"),
                "warnings": len(entry.get("warnings") or []),
            }
        )

    counts: Dict[str, int] = {}
    for row in rows:
        counts[row["status"]] = counts.get(row["status"], 0) + 1
    summary = ", ".join(f"{k}={counts[k]}" for k in sorted(counts)) or "no targets"

    styles = {i: _STATUS_STYLE[r["status"]] for i, r in enumerate(rows) if r["status"] in _STATUS_STYLE}
    html_out = (
        f"<h4>Run {_escape(data.get('run_id'))}</h4>"
        f"<div style='opacity:0.75'>{_escape(summary)}</div>"
        + render_table_html(rows, max_rows=max(len(rows), 1), row_style=styles)
    )

    lines = [f"run {data.get('run_id')} ({summary})"]
    for row in rows:
        line = f"  {row['status']:<8} {row['target']}  {row['duration_ms']}ms"
        if row["error"]:
            line += f"  [{row['error']}] {row['message']}"
        lines.append(line)

    _assert_untouched(before, report)
    return RenderResult(html=html_out, text="\n".join(lines))


def render_manifest(entries: Sequence[Mapping[str, Any]]) -> RenderResult:
    """Listagem de targets (`Pipeline.manifest()`): nome, dependências e comando."""
    before = _snapshot(entries)

    rows = [
        {
            "name": e.get("name"),
            "dependencies": ", ".join(e.get("dependencies") or []),
            "description": e.get("description") or "",
        }
        for e in entries
    ]
    blocks = "".join(
        f"<details><summary><code>{_escape(e.get('name'))}</code></summary>"
        f"<pre>{_escape(e.get('command'))}</pre></details>"
        for e in entries
    )
    html_out = render_table_html(rows, title="Targets", max_rows=max(len(rows), 1)) + blocks

    text = "\n".join(
        f"{r['name']} <- {r['dependencies']}" if r["dependencies"] else str(r["name"]) for r in rows
    )

    _assert_untouched(before, entries)
    return RenderResult(html=html_out, text=text)
