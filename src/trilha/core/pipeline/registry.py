# src/trilha/core/pipeline/registry.py
"""
Registro estrutural de targets do pipeline.

O `TargetRegistry` é a camada de proteção antecipada do pipeline:
    - cada target possui um nome válido
    - não existem nomes duplicados
    - a ordem de declaração é preservada explicitamente

A ordem de registro não afeta a semântica de execução, mas é usada para
desempate determinístico no planner e para listagem estável no manifest.

Limites explícitos:
    - Não resolve dependências (responsabilidade do Graph Builder)
    - Não executa targets
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from trilha.core.exceptions import DuplicateNameError

from .target import DependsOn, Target


@dataclass
class TargetRegistry:
    """
    Registro canônico de targets de uma definição de pipeline.

    Invariantes:
        - Cada nome é único no registry
        - `all()` reflete exatamente a ordem de registro
    """

    _targets: Dict[str, Target] = field(default_factory=dict, init=False, repr=False)
    _order: List[str] = field(default_factory=list, init=False, repr=False)

    def register(
        self,
        name: str,
        command: Callable[..., Any],
        depends_on: DependsOn = None,
        description: Optional[str] = None,
    ) -> Target:
        target = Target.create(name, command, depends_on=depends_on, description=description)
        self.add(target)
        return target

    def add(self, target: Target) -> None:
        if target.name in self._targets:
            raise DuplicateNameError(
                f"Duplicate target name: {target.name}",
                details={"target": target.name},
                hint="Cada target deve ter um nome único no pipeline.",
            )
        self._targets[target.name] = target
        self._order.append(target.name)

    def get(self, name: str) -> Target:
        return self._targets[name]

    def names(self) -> List[str]:
        return list(self._order)

    def all(self) -> List[Target]:
        return [self._targets[n] for n in self._order]

    def __contains__(self, name: object) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._order)
