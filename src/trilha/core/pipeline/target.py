# src/trilha/core/pipeline/target.py
"""
Definição canônica de Target.

Um Target é a menor unidade cacheável do pipeline: um nome único e um
comando (callable) que calcula um valor a partir dos resultados de
outros targets.

Referências a upstream:
    - parâmetros do comando cujo nome coincide com o nome de um target
      (descobertos pelo Graph Builder)
    - `depends_on` como sequência: dependências explícitas adicionais
      (ordenação e fingerprint)
    - `depends_on` como mapping `{parâmetro: target}`: vínculo explícito,
      útil para nomes que não são identificadores Python (ex.: "data.raw")

Invariantes:
    - Um Target é imutável após o registro
    - `name` é uma string não vazia
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union


DependsOn = Union[Sequence[str], Mapping[str, str], None]


@dataclass(frozen=True)
class Target:
    """Target declarado: nome, comando e dependências explícitas."""

    name: str
    command: Callable[..., Any]
    declared: Tuple[str, ...] = ()
    bindings: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    description: Optional[str] = None

    @classmethod
    def create(
        cls,
        name: str,
        command: Callable[..., Any],
        depends_on: DependsOn = None,
        description: Optional[str] = None,
    ) -> "Target":
        if not isinstance(name, str) or not name.strip():
            raise ValueError("target name must be a non-empty string")
        if not callable(command):
            raise TypeError(f"command of target '{name}' must be callable")

        declared: Tuple[str, ...] = ()
        bindings: Dict[str, str] = {}
        if isinstance(depends_on, Mapping):
            for param, dep in depends_on.items():
                if not isinstance(param, str) or not isinstance(dep, str):
                    raise TypeError(f"depends_on of target '{name}' must map str -> str")
                bindings[param] = dep
        elif depends_on is not None:
            if isinstance(depends_on, str):
                raise TypeError(f"depends_on of target '{name}' must be a sequence of names, not a str")
            declared = tuple(depends_on)
            for dep in declared:
                if not isinstance(dep, str):
                    raise TypeError(f"depends_on of target '{name}' must contain only str")

        return cls(
            name=name,
            command=command,
            declared=declared,
            bindings=MappingProxyType(bindings),
            description=description,
        )
