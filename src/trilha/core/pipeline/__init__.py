# src/trilha/core/pipeline/__init__.py
"""
# Pipeline Core — Trilha

Estruturas fundamentais de uma definição de pipeline.

## Componentes

- **target**: `Target`, unidade cacheável (nome + comando + dependências explícitas)
- **registry**: `TargetRegistry`, unicidade de nomes e ordem de registro
- **command**: introspecção de comandos (parâmetros, digest, descrição)
- **context**: `RunContext`, log estruturado e warnings de uma run
- **types**: `TargetStatus`, `TargetReport`, `RunReport`

## Princípios

- Comandos **não conhecem** o Engine nem o planner
- Dependências são descobertas pelos nomes dos parâmetros ou declaradas
  explicitamente
- Nenhuma decisão implícita ou silenciosa
"""

from .context import RunContext
from .registry import TargetRegistry
from .target import Target
from .types import RunReport, TargetReport, TargetStatus

__all__ = [
    "RunContext",
    "TargetRegistry",
    "Target",
    "RunReport",
    "TargetReport",
    "TargetStatus",
]
