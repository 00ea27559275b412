# src/trilha/core/traceability/trace.py
"""
Run Trace v1 — registro forense de uma run do Trilha.

O Run Trace consolida, de forma determinística e auditável:
    - metadados da run (run_id, started_at, versão)
    - hashes semânticos de entradas (config resolvida e grafo)
    - estado final de cada target (status, duração, fingerprint, erro)
    - Event Log ordenado de eventos explícitos

Princípios:
    - Nenhum evento é emitido implicitamente
    - Toda mutação ocorre por chamadas explícitas da API
    - A ordem do Event Log reflete a ordem real de execução
    - O trace é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato de persistência é JSON determinístico (sort_keys)
    - As funções aceitam `RunTrace` ou sua forma em dict

Limites explícitos:
    - Não executa pipeline
    - Não decide políticas de execução (fail-fast, skip)
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Timestamps naive são assumidos como UTC; os demais são convertidos."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class RunTrace:
    """
    Run Trace v1 — registro de uma execução do pipeline.

    Campos:
        - run: metadados da execução (run_id, started_at, trilha_version)
        - inputs: hashes semânticos (config_hash, graph_hash)
        - targets: estado de cada target, indexado por nome
        - events: Event Log ordenado

    Invariantes:
        - `targets` é sempre um dicionário indexado por nome
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável em JSON
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    targets: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Cópia serializável; alterações no retorno não afetam o trace."""
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "targets": {k: dict(v) for k, v in self.targets.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunTrace":
        """Reconstrução estrutural e permissiva (campos ausentes → vazios)."""
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            targets={k: dict(v) for k, v in (data.get("targets", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


TraceLike = Union[RunTrace, Dict[str, Any]]


def create_trace(
    *,
    run_id: str,
    started_at: datetime,
    trilha_version: str,
    config_hash: str,
    graph_hash: str,
) -> RunTrace:
    """
    Cria o Run Trace inicial de uma run.

    ⚠️ Importante: esta função **não emite eventos implicitamente**.
    O Event Log inicia vazio e só é preenchido por `add_event`,
    `target_started`, `target_finished` ou `target_failed`.

    Args:
        run_id (str): Identificador único da run.
        started_at (datetime): Timestamp de início.
        trilha_version (str): Versão do Trilha utilizada.
        config_hash (str): Hash semântico da configuração resolvida.
        graph_hash (str): Hash semântico do grafo (nós + arestas).

    Returns:
        RunTrace: Trace inicializado, sem targets nem eventos.
    """
    started_at = _ensure_tzaware_utc(started_at)
    return RunTrace(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "trilha_version": trilha_version,
        },
        inputs={
            "config_hash": config_hash,
            "graph_hash": graph_hash,
        },
        targets={},
        events=[],
    )


def _get_trace(trace: TraceLike) -> Tuple[RunTrace, bool]:
    if isinstance(trace, RunTrace):
        return trace, False
    return RunTrace.from_dict(trace), True


def _sync(original: TraceLike, trace: RunTrace, is_dict: bool) -> None:
    if is_dict:
        original.clear()  # type: ignore[union-attr]
        original.update(trace.to_dict())  # type: ignore[union-attr]


def add_event(
    trace: TraceLike,
    *,
    event_type: str,
    ts: datetime,
    target: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Adiciona um evento explícito ao Event Log.

    Cada chamada adiciona exatamente um evento; eventos nunca são
    reordenados ou deduplicados. O timestamp é normalizado para UTC.
    """
    t, is_dict = _get_trace(trace)

    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if target is not None:
        ev["target"] = target
    if payload is not None:
        ev["payload"] = payload
    t.events.append(ev)

    _sync(trace, t, is_dict)


def target_started(trace: TraceLike, *, target: str, ts: datetime, fingerprint: Optional[str] = None) -> None:
    """Marca o target como `running` e registra o evento `target_started`."""
    t, is_dict = _get_trace(trace)

    entry = t.targets.setdefault(target, {})
    entry.update({"target": target, "status": "running", "started_at": _iso(ts)})
    if fingerprint is not None:
        entry["fingerprint"] = fingerprint

    add_event(t, event_type="target_started", ts=ts, target=target)
    _sync(trace, t, is_dict)


def target_finished(trace: TraceLike, *, target: str, ts: datetime, result: Dict[str, Any]) -> None:
    """
    Registra o estado terminal de um target (ok, skipped ou blocked).

    `result` aceita `status`, `fingerprint`, `warnings`, `error` e
    `duration_ms`. Sem `duration_ms`, a duração é calculada a partir de
    `started_at` quando houver.
    """
    t, is_dict = _get_trace(trace)

    entry = t.targets.setdefault(target, {"target": target})
    if "duration_ms" in result:
        duration = result["duration_ms"]
    elif entry.get("started_at"):
        duration = _ms_between(datetime.fromisoformat(entry["started_at"]), ts)
    else:
        duration = 0

    status = result.get("status", "ok")
    entry.update(
        {
            "target": target,
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": duration,
            "fingerprint": result.get("fingerprint", entry.get("fingerprint")),
            "warnings": list(result.get("warnings", []) or []),
        }
    )
    if result.get("error") is not None:
        entry["error"] = result["error"]

    add_event(
        t,
        event_type=f"target_{status}" if status in ("skipped", "blocked") else "target_finished",
        ts=ts,
        target=target,
        payload={"status": status, "duration_ms": duration},
    )
    _sync(trace, t, is_dict)


def target_failed(trace: TraceLike, *, target: str, ts: datetime, error: Dict[str, Any]) -> None:
    """Marca o target como `error`, associando o payload de erro."""
    t, is_dict = _get_trace(trace)

    entry = t.targets.setdefault(target, {"target": target})
    entry.update({"target": target, "status": "error", "finished_at": _iso(ts), "error": dict(error)})

    add_event(t, event_type="target_failed", ts=ts, target=target, payload={"error": dict(error)})
    _sync(trace, t, is_dict)


def save_trace(trace: TraceLike, path: Path) -> None:
    """
    Persiste o trace em JSON determinístico (chaves ordenadas).

    Raises:
        OSError: Falha ao criar diretórios ou escrever o arquivo.
        TypeError: Conteúdo não serializável em JSON.
    """
    data = trace.to_dict() if isinstance(trace, RunTrace) else trace
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")


def load_trace(path: Path) -> RunTrace:
    """Restaura um trace salvo por `save_trace` (propaga erros de I/O e JSON)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return RunTrace.from_dict(data)
