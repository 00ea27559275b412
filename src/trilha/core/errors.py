"""
Trilha — Estruturas canônicas de erro (v1)

Erros de execução são artefatos de primeira classe: aparecem no RunReport,
no Run Trace e no RunRecord persistido. Por isso devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum stack trace cru é exposto ao operador.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Trilha.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
TARGET_TIMEOUT = "TARGET_TIMEOUT"

# Propagação / bloqueio
UPSTREAM_FAILED = "UPSTREAM_FAILED"
RUN_HALTED = "RUN_HALTED"
RUN_CANCELLED = "RUN_CANCELLED"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def engine_execution_error(
    *,
    target: str,
    exc: BaseException,
    hint: str = "Verifique o comando do target e os resultados de upstream. Nenhum fallback é aplicado automaticamente.",
) -> ErrorPayload:
    details: Dict[str, Any] = {
        "target": target,
        "exception_class": exc.__class__.__name__,
    }
    extra = getattr(exc, "details", None)
    if isinstance(extra, dict):
        details.update(extra)
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante execução",
        details=details,
        hint=getattr(exc, "hint", None) or hint,
    )


def target_timeout(*, target: str, timeout_seconds: float) -> ErrorPayload:
    return ErrorPayload(
        type=TARGET_TIMEOUT,
        message=f"Target '{target}' excedeu o timeout de {timeout_seconds}s",
        details={"target": target, "timeout_seconds": timeout_seconds},
        hint="Aumente engine.timeout_seconds ou reduza o custo do comando.",
    )


def upstream_failed(*, target: str, upstream: str) -> ErrorPayload:
    return ErrorPayload(
        type=UPSTREAM_FAILED,
        message=f"Target '{target}' bloqueado: upstream '{upstream}' não concluiu",
        details={"target": target, "upstream": upstream},
        hint="Corrija o target upstream e reexecute o pipeline.",
    )


def run_halted(*, target: str, failed: str) -> ErrorPayload:
    return ErrorPayload(
        type=RUN_HALTED,
        message=f"Target '{target}' não iniciado: run interrompida após falha de '{failed}'",
        details={"target": target, "failed": failed},
        hint="Use engine.fail_fast=false para continuar ramos independentes.",
    )


def run_cancelled(*, target: str) -> ErrorPayload:
    return ErrorPayload(
        type=RUN_CANCELLED,
        message=f"Target '{target}' não iniciado: run cancelada",
        details={"target": target},
        hint=None,
    )
