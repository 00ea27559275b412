# src/trilha/core/pipeline/context.py
"""
Contexto de execução de uma run.

O `RunContext` concentra a identidade da run, a configuração efetiva e o
log estruturado de eventos. É criado pelo `Pipeline` a cada run e passado
ao Engine; não há estado global compartilhado entre runs.

Invariantes:
    - Eventos sempre incluem `run_id`, `target`, `level` e `timestamp` UTC
    - Warnings são agrupados por target
    - Apenas a thread coordenadora do Engine escreve no contexto
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class RunContext:
    """Contexto compartilhado de uma run: identidade, config, eventos, warnings."""

    run_id: str
    created_at: datetime
    config: Dict[str, Any]
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, target: Optional[str], level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "target": target,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, target: str, message: str) -> None:
        if target not in self.warnings:
            self.warnings[target] = []
        self.warnings[target].append(message)

    def warnings_for(self, target: str) -> List[str]:
        return list(self.warnings.get(target, []))

    def events_for(self, target: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("target") == target]
