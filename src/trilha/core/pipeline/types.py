# src/trilha/core/pipeline/types.py
"""
Tipos canônicos de execução do Trilha.

Este módulo define as estruturas que padronizam a comunicação entre
Engine, Pipeline, Run Trace e adapters de apresentação.

Componentes principais:
    - TargetStatus → enum de estados terminais (OK, SKIPPED, ERROR, BLOCKED)
    - TargetReport → resultado imutável de um target em uma run
    - RunReport    → relatório ordenado de todos os targets da run

Invariantes:
    - Enums possuem valores textuais canônicos
    - Um RunReport enumera todos os targets do grafo, sem omissões
    - Tipos não dependem de engine, stores ou UI
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from trilha.core.errors import TARGET_TIMEOUT
from trilha.core.exceptions import ExecutionError, TargetTimeoutError


class TargetStatus(str, Enum):
    """
    Estados terminais de um target em uma run.

    Estados definidos:
        - OK: comando executado com sucesso nesta run
        - SKIPPED: fingerprint inalterado; resultado armazenado reutilizado
        - ERROR: comando falhou (exceção ou timeout)
        - BLOCKED: nunca executado (upstream ERROR/BLOCKED, run interrompida
          ou cancelada)

    Estados intermediários (ex.: running) não pertencem a este enum.
    """
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"
    BLOCKED = "blocked"

    @property
    def is_success(self) -> bool:
        return self in (TargetStatus.OK, TargetStatus.SKIPPED)


@dataclass(frozen=True)
class TargetReport:
    """
    Resultado imutável de um target em uma run.

    Campos:
        - name: nome do target
        - status: estado terminal
        - duration_ms: duração da invocação (0.0 quando não executado)
        - error: payload de erro serializado (ErrorPayload.to_dict) ou None
        - warnings: avisos não fatais (ex.: falha ao persistir resultado)
        - fingerprint: fingerprint da run atual (None quando BLOCKED)
    """
    name: str
    status: TargetStatus
    duration_ms: float = 0.0
    error: Optional[Dict[str, Any]] = None
    warnings: List[str] = field(default_factory=list)
    fingerprint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "error": dict(self.error) if self.error is not None else None,
            "warnings": list(self.warnings),
            "fingerprint": self.fingerprint,
        }


@dataclass(frozen=True)
class RunReport:
    """Relatório de uma run: um TargetReport por target, na ordem do plano."""

    run_id: str
    targets: List[TargetReport] = field(default_factory=list)

    def __iter__(self) -> Iterator[TargetReport]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)

    def __getitem__(self, name: str) -> TargetReport:
        for entry in self.targets:
            if entry.name == name:
                return entry
        raise KeyError(name)

    def status_of(self, name: str) -> TargetStatus:
        return self[name].status

    def statuses(self) -> Dict[str, TargetStatus]:
        return {t.name: t.status for t in self.targets}

    def names_with(self, status: TargetStatus) -> List[str]:
        return [t.name for t in self.targets if t.status == status]

    @property
    def ok(self) -> bool:
        """True quando nenhum target terminou em ERROR ou BLOCKED."""
        return all(t.status.is_success for t in self.targets)

    def raise_on_error(self) -> None:
        """
        Levanta `ExecutionError` para o primeiro target em ERROR (ordem do plano).

        Timeouts levantam `TargetTimeoutError`. Targets BLOCKED não levantam
        por si: são consequência de um ERROR ou de cancelamento.
        """
        for entry in self.targets:
            if entry.status != TargetStatus.ERROR:
                continue
            error = entry.error or {}
            exc_type = TargetTimeoutError if error.get("type") == TARGET_TIMEOUT else ExecutionError
            raise exc_type(
                error.get("message") or f"Target '{entry.name}' failed",
                target=entry.name,
                details=dict(error.get("details") or {}),
                hint=error.get("hint"),
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "targets": [t.to_dict() for t in self.targets],
        }
