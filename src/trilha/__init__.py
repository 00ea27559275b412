# src/trilha/__init__.py
"""
Trilha — engine de build incremental para pipelines em Python.

O usuário declara targets (passos nomeados e cacheáveis sobre resultados
de outros targets); o Trilha constrói o DAG, calcula o fingerprint de cada
comando e de seus upstream, recalcula apenas o que ficou desatualizado e
reporta um status terminal explícito para todos os targets.

Arquitetura em alto nível:
    - core.config       → carregamento, merge, hashing e settings
    - core.pipeline     → Target, registry, introspecção de comandos, tipos
    - core.engine       → grafo de dependências, planner e executor
    - core.traceability → Run Trace e Event Log
    - persistence       → Fingerprint Store e Result Store
    - pipeline          → fachada pública (`Pipeline`)

Notebooks e interfaces atuam apenas como adapters de apresentação
(`trilha.notebook_ui`).
"""

from ._version import __version__
from .core.exceptions import (
    ConfigurationError,
    CyclicDependencyError,
    DuplicateNameError,
    ExecutionError,
    NotFoundError,
    StoreCorruptError,
    StoreError,
    TrilhaError,
    UnknownDependencyError,
)
from .core.pipeline.types import RunReport, TargetReport, TargetStatus
from .pipeline import Pipeline

__all__ = [
    "__version__",
    "Pipeline",
    "RunReport",
    "TargetReport",
    "TargetStatus",
    "TrilhaError",
    "ConfigurationError",
    "CyclicDependencyError",
    "DuplicateNameError",
    "UnknownDependencyError",
    "ExecutionError",
    "StoreError",
    "StoreCorruptError",
    "NotFoundError",
]
