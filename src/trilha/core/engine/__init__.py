# src/trilha/core/engine/__init__.py
"""
Engine do Trilha.

Componentes:
    - graph   → análise estática de referências, DAG e detecção de ciclos
    - planner → ordenação topológica determinística
    - engine  → execução incremental com pool de workers e políticas explícitas

Invariantes:
    - Um target só executa depois que todos os seus upstream terminam
    - Cada target executa no máximo uma vez por run
    - O RunReport enumera todos os targets com status terminal explícito
"""

from .engine import Engine
from .graph import TargetGraph, build_graph
from .planner import plan_execution

__all__ = ["Engine", "TargetGraph", "build_graph", "plan_execution"]
