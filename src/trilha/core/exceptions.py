"""
Trilha — Exceções canônicas (v1)

Este módulo define a taxonomia de exceções do Trilha.

Categorias:
- ConfigurationError: problemas estruturais detectados antes de qualquer
  execução (nome duplicado, dependência desconhecida, ciclo, settings
  inválidos). Sempre fatais para a run, nunca reexecutados.
- ExecutionError: falha do comando de um target. Registrada por target;
  não interrompe ramos independentes, salvo política fail-fast.
- StoreError: falha de persistência de fingerprints ou resultados. Tratada
  como cache-miss pelo Engine.
- NotFoundError: resultado inexistente (target nunca calculado ou cuja
  última execução falhou).

Regras:
- Exceções carregam apenas dados estruturados (serializáveis).
- Mensagens são curtas e humanas.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence


class TrilhaError(Exception):
    """Base de todas as exceções do Trilha."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.hint = hint

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuração (estrutural)
# ---------------------------------------------------------------------------

class ConfigurationError(TrilhaError, ValueError):
    """Erro estrutural da definição do pipeline, detectado antes da execução."""


class DuplicateNameError(ConfigurationError):
    """
    Exceção levantada quando um nome de target é registrado duas vezes.

    Decisões arquiteturais:
        - Nomes de target são únicos no registry
        - A duplicidade é detectada no momento do registro

    Limites explícitos:
        - Não renomeia targets automaticamente
        - Não substitui o target anterior
    """


class UnknownDependencyError(ConfigurationError):
    """
    Exceção levantada quando um target referencia um nome inexistente.

    A referência pode vir de um parâmetro do comando (sem default) ou de
    `depends_on`. Em ambos os casos o pipeline é inválido.
    """


class CyclicDependencyError(ConfigurationError):
    """
    Exceção levantada quando o grafo de dependências contém um ciclo.

    O atributo `cycle` contém a sequência de nomes que fecha o ciclo,
    repetindo o primeiro nome no final (ex.: ["a", "b", "a"]).
    """

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(
            "Cycle detected in target dependency graph: " + " -> ".join(self.cycle),
            details={"cycle": list(self.cycle)},
            hint="Remova a referência circular entre os targets listados.",
        )


class EngineConfigurationError(ConfigurationError):
    """Settings do engine/store inválidos ou inconsistentes."""


# ---------------------------------------------------------------------------
# Execução
# ---------------------------------------------------------------------------

class ExecutionError(TrilhaError):
    """Falha do comando de um target (encapsulada)."""

    def __init__(self, message: str, *, target: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.target = target


class TargetTimeoutError(ExecutionError):
    """O comando excedeu `engine.timeout_seconds`."""


# ---------------------------------------------------------------------------
# Persistência
# ---------------------------------------------------------------------------

class StoreError(TrilhaError):
    """Falha de leitura/escrita em Fingerprint Store ou Result Store."""


class StoreCorruptError(StoreError):
    """Dados persistidos não puderam ser desserializados."""


class NotFoundError(TrilhaError, KeyError):
    """Resultado ausente: target nunca calculado ou com última execução em erro."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(message or f"No stored result for target '{name}'", details={"target": name})
        self.name = name

    def __str__(self) -> str:
        return self.message


__all__ = [
    "TrilhaError",
    "ConfigurationError",
    "DuplicateNameError",
    "UnknownDependencyError",
    "CyclicDependencyError",
    "EngineConfigurationError",
    "ExecutionError",
    "TargetTimeoutError",
    "StoreError",
    "StoreCorruptError",
    "NotFoundError",
]
