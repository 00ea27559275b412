# src/trilha/core/engine/planner.py
"""
Planejador de execução (ordenação topológica).

Recebe um `TargetGraph` já validado e produz uma ordem linear de
execução que respeita integralmente as dependências.

Decisões arquiteturais:
    - Utiliza ordenação topológica determinística (Kahn com heap)
    - Empates são resolvidos pela ordem de registro dos targets
    - Um grafo que não admite ordem completa é tratado como ciclo

Invariantes:
    - Nenhum target aparece antes de suas dependências
    - Todos os targets aparecem exatamente uma vez
    - A mesma definição de pipeline produz sempre a mesma ordem

Limites explícitos:
    - Não executa targets
    - Não decide políticas de execução
"""

from __future__ import annotations

import heapq
from typing import Dict, List, Tuple

from trilha.core.exceptions import CyclicDependencyError

from .graph import TargetGraph


def plan_execution(graph: TargetGraph) -> List[str]:
    """
    Produz a ordem topológica determinística dos nomes de targets.

    Args:
        graph (TargetGraph): Grafo validado por `build_graph`.

    Returns:
        List[str]: Nomes em ordem de execução.

    Raises:
        CyclicDependencyError: Se nem todos os nós puderem ser ordenados.
    """
    index = {name: i for i, name in enumerate(graph.nodes)}
    incoming: Dict[str, int] = {name: len(graph.upstream[name]) for name in graph.nodes}

    ready: List[Tuple[int, str]] = [(index[n], n) for n in graph.nodes if incoming[n] == 0]
    heapq.heapify(ready)

    order: List[str] = []
    while ready:
        _, name = heapq.heappop(ready)
        order.append(name)
        for child in graph.downstream[name]:
            incoming[child] -= 1
            if incoming[child] == 0:
                heapq.heappush(ready, (index[child], child))

    if len(order) != len(graph.nodes):
        remaining = [n for n in graph.nodes if n not in set(order)]
        raise CyclicDependencyError(remaining + remaining[:1])

    return order
