# src/trilha/core/engine/graph.py
"""
Construção do grafo de dependências (DAG) entre targets.

Este módulo analisa estaticamente cada target declarado e produz um
`TargetGraph` imutável com arestas upstream → downstream.

Regras de referência (v1):
    - Parâmetro do comando (posicional-ou-nomeado ou somente-nomeado) cujo
      nome coincide com um target registrado é uma referência a esse target
    - Parâmetro sem default que não nomeia nenhum target é uma referência
      desconhecida (UnknownDependencyError)
    - Parâmetro com default que não nomeia nenhum target é um input externo
      e mantém o default
    - `depends_on` (sequência) adiciona dependências explícitas
    - `depends_on` (mapping) vincula parâmetros a targets por nome explícito
    - Um parâmetro `**kwargs` recebe todos os resultados upstream que não
      foram vinculados a parâmetros nomeados

Decisões arquiteturais:
    - A análise é conservadora: apenas referências diretas por nome de
      parâmetro são reconhecidas; referências dinâmicas não são rastreadas
    - Ciclos são detectados por busca em profundidade com pilha de recursão
      e reportados com o caminho completo
    - A construção é uma função pura da lista de targets

Limites explícitos:
    - Não ordena execução (responsabilidade do planner)
    - Não renderiza o grafo (apenas exporta nós/arestas e DOT)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from trilha.core.exceptions import (
    ConfigurationError,
    CyclicDependencyError,
    DuplicateNameError,
    UnknownDependencyError,
)
from trilha.core.pipeline.command import BINDABLE_KINDS, accepts_var_keyword, command_parameters
from trilha.core.pipeline.target import Target


_STATUS_COLORS = {
    "ok": "palegreen",
    "skipped": "lightgrey",
    "error": "salmon",
    "blocked": "khaki",
    "outdated": "lightblue",
}


@dataclass(frozen=True)
class TargetGraph:
    """
    DAG de targets.

    Campos:
        - nodes: nomes em ordem de registro
        - targets: nome → Target
        - upstream: nome → dependências diretas (ordem de registro)
        - downstream: nome → consumidores diretos (ordem de registro)
        - bindings: nome → {parâmetro: target upstream}
        - var_keyword: nome → comando aceita **kwargs
    """

    nodes: List[str]
    targets: Dict[str, Target]
    upstream: Dict[str, List[str]]
    downstream: Dict[str, List[str]]
    bindings: Dict[str, Dict[str, str]]
    var_keyword: Dict[str, bool]

    @property
    def edges(self) -> List[Tuple[str, str]]:
        return [(up, name) for name in self.nodes for up in self.upstream[name]]

    def inputs(self, name: str) -> Dict[str, str]:
        """
        Argumentos nomeados passados ao comando → target upstream de origem.

        Inclui os vínculos por parâmetro e, para comandos com `**kwargs`,
        os upstream não vinculados (pelo próprio nome).
        """
        args = dict(self.bindings[name])
        if self.var_keyword[name]:
            bound = set(args.values())
            for up in self.upstream[name]:
                if up not in bound and up not in args:
                    args[up] = up
        return args

    def to_dict(self) -> Dict[str, object]:
        """Representação serializável (lista de nós + lista de arestas)."""
        return {
            "nodes": list(self.nodes),
            "edges": [{"from": up, "to": down} for up, down in self.edges],
        }

    def to_dot(self, statuses: Optional[Mapping[str, str]] = None) -> str:
        """
        Exporta o grafo no formato DOT (Graphviz).

        `statuses` opcional colore os nós (ex.: `RunReport.statuses()` ou
        `{"a": "outdated"}`); valores podem ser strings ou TargetStatus.
        """
        lines = ["digraph trilha {", "  rankdir=LR;"]
        for name in self.nodes:
            attrs = f'label="{_dot_escape(name)}"'
            if statuses and name in statuses:
                status = getattr(statuses[name], "value", statuses[name])
                color = _STATUS_COLORS.get(str(status))
                if color:
                    attrs += f", style=filled, fillcolor={color}"
            lines.append(f'  "{_dot_escape(name)}" [{attrs}];')
        for up, down in self.edges:
            lines.append(f'  "{_dot_escape(up)}" -> "{_dot_escape(down)}";')
        lines.append("}")
        return "\n".join(lines)


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def build_graph(targets: Iterable[Target]) -> TargetGraph:
    """
    Constrói e valida o DAG a partir dos targets declarados.

    Args:
        targets (Iterable[Target]): Targets em ordem de registro.

    Returns:
        TargetGraph: Grafo validado.

    Raises:
        DuplicateNameError: Se dois targets tiverem o mesmo nome.
        UnknownDependencyError: Se um target referenciar nome inexistente.
        ConfigurationError: Se um vínculo explícito apontar para parâmetro
            inexistente no comando.
        CyclicDependencyError: Se houver ciclo (inclusive auto-referência).
    """
    target_list = list(targets)
    by_name: Dict[str, Target] = {}
    for t in target_list:
        if t.name in by_name:
            raise DuplicateNameError(f"Duplicate target name: {t.name}", details={"target": t.name})
        by_name[t.name] = t

    index = {t.name: i for i, t in enumerate(target_list)}

    upstream: Dict[str, List[str]] = {}
    bindings: Dict[str, Dict[str, str]] = {}
    var_keyword: Dict[str, bool] = {}

    for t in target_list:
        params = command_parameters(t.command)
        param_names = {p.name for p in params if p.kind in BINDABLE_KINDS}
        has_var_kw = accepts_var_keyword(t.command)

        binds: Dict[str, str] = {}
        for param, dep in t.bindings.items():
            if dep not in by_name:
                raise UnknownDependencyError(
                    f"Target '{t.name}' depends on unknown target '{dep}'",
                    details={"target": t.name, "dependency": dep},
                )
            if params and param not in param_names and not has_var_kw:
                raise ConfigurationError(
                    f"Target '{t.name}' binds '{dep}' to unknown parameter '{param}'",
                    details={"target": t.name, "parameter": param},
                )
            binds[param] = dep

        for dep in t.declared:
            if dep not in by_name:
                raise UnknownDependencyError(
                    f"Target '{t.name}' depends on unknown target '{dep}'",
                    details={"target": t.name, "dependency": dep},
                )

        for p in params:
            if p.kind not in BINDABLE_KINDS or p.name in binds:
                continue
            if p.name in by_name:
                binds[p.name] = p.name
            elif p.default is inspect.Parameter.empty:
                raise UnknownDependencyError(
                    f"Target '{t.name}' references unknown target '{p.name}'",
                    details={"target": t.name, "dependency": p.name},
                    hint="Registre o target referenciado ou declare um default para o parâmetro.",
                )

        deps = set(t.declared) | set(binds.values())
        upstream[t.name] = sorted(deps, key=index.__getitem__)
        bindings[t.name] = binds
        var_keyword[t.name] = has_var_kw

    downstream: Dict[str, List[str]] = {t.name: [] for t in target_list}
    for t in target_list:
        for dep in upstream[t.name]:
            downstream[dep].append(t.name)

    _detect_cycle([t.name for t in target_list], upstream)

    return TargetGraph(
        nodes=[t.name for t in target_list],
        targets=by_name,
        upstream=upstream,
        downstream=downstream,
        bindings=bindings,
        var_keyword=var_keyword,
    )


def _detect_cycle(nodes: List[str], upstream: Mapping[str, List[str]]) -> None:
    """DFS iterativa com pilha de recursão; levanta CyclicDependencyError com o caminho."""
    visiting, done = 1, 2
    state: Dict[str, int] = {}

    for root in nodes:
        if root in state:
            continue
        state[root] = visiting
        path = [root]
        stack = [iter(upstream[root])]
        while stack:
            nxt = next(stack[-1], None)
            if nxt is None:
                state[path.pop()] = done
                stack.pop()
                continue
            seen = state.get(nxt)
            if seen == visiting:
                cycle = path[path.index(nxt):] + [nxt]
                # caminho percorrido em direção upstream; reportado no sentido do fluxo
                raise CyclicDependencyError(list(reversed(cycle)))
            if seen is None:
                state[nxt] = visiting
                path.append(nxt)
                stack.append(iter(upstream[nxt]))
