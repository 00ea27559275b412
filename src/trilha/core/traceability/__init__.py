# src/trilha/core/traceability/__init__.py
"""
Pacote de rastreabilidade do Trilha — Run Trace v1.

API pública:
    - RunTrace        → estrutura canônica do trace
    - create_trace    → criação explícita do trace de uma run
    - add_event       → registro explícito de eventos no Event Log
    - target_started  → marca início de execução de um target
    - target_finished → registra estado terminal (ok/skipped/blocked)
    - target_failed   → registra falha de um target
    - save_trace      → persistência em JSON
    - load_trace      → restauração determinística

Nenhum evento é emitido implicitamente; a ordem do Event Log reflete a
ordem de chamada.
"""

from .trace import (
    RunTrace,
    create_trace,
    add_event,
    target_started,
    target_finished,
    target_failed,
    save_trace,
    load_trace,
)

__all__ = [
    "RunTrace",
    "create_trace",
    "add_event",
    "target_started",
    "target_finished",
    "target_failed",
    "save_trace",
    "load_trace",
]
