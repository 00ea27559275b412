# tests/core/engine/test_graph_builder.py
"""
Testes do Graph Builder (build_graph).

Regras validadas:
    - parâmetro com o nome de um target → aresta upstream → downstream
    - parâmetro sem default que não nomeia target → UnknownDependencyError
    - parâmetro com default que não nomeia target → input externo
    - depends_on (sequência e mapping)
    - **kwargs não cria dependências por si só
    - ciclos (inclusive auto-referência) → CyclicDependencyError com o caminho
"""

import pytest

try:
    from trilha.core.engine.graph import build_graph
    from trilha.core.pipeline.target import Target
    from trilha.core.exceptions import (
        ConfigurationError,
        CyclicDependencyError,
        DuplicateNameError,
        UnknownDependencyError,
    )
except Exception as e:  # noqa: BLE001
    build_graph = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing src/trilha/core/engine/graph.py (build_graph). Import error: {_IMPORT_ERR}")


def T(name, fn, depends_on=None):
    return Target.create(name, fn, depends_on=depends_on)


def test_parameter_names_become_edges():
    _require_imports()
    g = build_graph(
        [
            T("a", lambda: 5),
            T("b", lambda a: a + 1),
            T("c", lambda a, b: a + b),
        ]
    )

    assert g.nodes == ["a", "b", "c"]
    assert g.upstream == {"a": [], "b": ["a"], "c": ["a", "b"]}
    assert g.downstream == {"a": ["b", "c"], "b": ["c"], "c": []}
    assert g.bindings["c"] == {"a": "a", "b": "b"}
    assert g.edges == [("a", "b"), ("a", "c"), ("b", "c")]


def test_registration_order_does_not_matter_for_references():
    """Um target pode referenciar outro registrado depois dele."""
    _require_imports()
    g = build_graph([T("b", lambda a: a + 1), T("a", lambda: 5)])
    assert g.upstream["b"] == ["a"]


def test_unknown_reference_without_default_raises():
    _require_imports()
    with pytest.raises(UnknownDependencyError) as exc:
        build_graph([T("b", lambda missing: missing)])
    assert "missing" in str(exc.value)
    assert isinstance(exc.value, ConfigurationError)


def test_parameter_with_default_is_external_input():
    _require_imports()
    g = build_graph([T("a", lambda: 5), T("b", lambda a, factor=2: a * factor)])
    assert g.upstream["b"] == ["a"]
    assert g.bindings["b"] == {"a": "a"}


def test_depends_on_sequence_adds_ordering_dependency():
    _require_imports()
    g = build_graph([T("setup", lambda: None), T("a", lambda: 1, depends_on=["setup"])])
    assert g.upstream["a"] == ["setup"]
    assert g.bindings["a"] == {}


def test_depends_on_mapping_binds_non_identifier_names():
    _require_imports()
    g = build_graph([T("raw.data", lambda: [1, 2]), T("total", lambda values: sum(values), depends_on={"values": "raw.data"})])
    assert g.upstream["total"] == ["raw.data"]
    assert g.bindings["total"] == {"values": "raw.data"}


def test_depends_on_unknown_name_raises():
    _require_imports()
    with pytest.raises(UnknownDependencyError):
        build_graph([T("a", lambda: 1, depends_on=["ghost"])])
    with pytest.raises(UnknownDependencyError):
        build_graph([T("a", lambda x: x, depends_on={"x": "ghost"})])


def test_mapping_to_unknown_parameter_raises():
    _require_imports()
    with pytest.raises(ConfigurationError):
        build_graph([T("a", lambda: 1), T("b", lambda x: x, depends_on={"y": "a"})])


def test_var_keyword_is_flagged():
    _require_imports()

    def gather(**inputs):
        return inputs

    g = build_graph([T("a", lambda: 1), T("all", gather, depends_on=["a"])])
    assert g.var_keyword["all"] is True
    assert g.upstream["all"] == ["a"]


def test_duplicate_names_raise():
    _require_imports()
    with pytest.raises(DuplicateNameError):
        build_graph([T("a", lambda: 1), T("a", lambda: 2)])


def test_two_node_cycle_reports_path():
    """
    a depende de b e b depende de a.

    Invariantes:
        - O erro nomeia o ciclo completo, repetindo o primeiro nó no final
        - Nenhum comando é executado
    """
    _require_imports()
    executed = []

    def a(b):
        executed.append("a")

    def b(a):
        executed.append("b")

    with pytest.raises(CyclicDependencyError) as exc:
        build_graph([T("a", a), T("b", b)])

    cycle = exc.value.cycle
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b"}
    assert len(cycle) == 3
    assert " -> ".join(cycle) in str(exc.value)
    assert executed == []


def test_self_reference_is_a_cycle():
    _require_imports()
    with pytest.raises(CyclicDependencyError) as exc:
        build_graph([T("a", lambda a: a)])
    assert exc.value.cycle == ["a", "a"]


def test_transitive_cycle_is_detected():
    _require_imports()
    with pytest.raises(CyclicDependencyError) as exc:
        build_graph(
            [
                T("root", lambda: 0),
                T("x", lambda root, z: root),
                T("y", lambda x: x),
                T("z", lambda y: y),
            ]
        )
    assert set(exc.value.cycle) == {"x", "y", "z"}
    assert "root" not in exc.value.cycle


def test_graph_export():
    _require_imports()
    g = build_graph(
        [
            T("a", lambda: 1),
            T("b", lambda a: a),
            T("c", lambda b: b),
            T("d", lambda: 2),
        ]
    )
    assert g.to_dict() == {
        "nodes": ["a", "b", "c", "d"],
        "edges": [{"from": "a", "to": "b"}, {"from": "b", "to": "c"}],
    }
    dot = g.to_dot({"a": "ok", "b": "error"})
    assert dot.startswith("digraph trilha {")
    assert '"a" -> "b";' in dot
    assert "fillcolor=salmon" in dot
