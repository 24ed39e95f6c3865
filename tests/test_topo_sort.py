import random

import pytest

from component_graph.errors import CycleError, MissingDependencyError
from component_graph.topo_sort import (
    build_graph_from_components,
    detect_cycles,
    topological_sort,
    toposort_components,
)

from conftest import make_registry


def _assert_dependency_first(order, graph):
    position = {node: i for i, node in enumerate(order)}
    assert sorted(order) == sorted(graph)
    for node, deps in graph.items():
        for dep in deps:
            assert position[dep] < position[node], f"{dep} should precede {node}"


def test_build_graph_keeps_registry_order():
    components = make_registry({"z": [], "y": ["z"], "x": ["y", "z"]})
    graph = build_graph_from_components(components)
    assert list(graph) == ["z", "y", "x"]
    assert graph["x"] == {"y", "z"}


def test_build_graph_rejects_unknown_dependencies():
    components = make_registry({"a": [], "b": ["a", "z"], "c": ["y", "z"]})
    with pytest.raises(MissingDependencyError) as exc_info:
        build_graph_from_components(components)
    assert exc_info.value.ids == ["y", "z"]


def test_sort_simple_chain(abc_registry):
    assert [c.dir for c in toposort_components(abc_registry)] == ["a", "b", "c"]


def test_sort_reversed_input_is_dependency_first():
    graph = {
        "app": {"api", "ui"},
        "ui": {"design"},
        "api": {"db", "auth"},
        "auth": {"db"},
        "db": set(),
        "design": set(),
        "docs": set(),
    }
    order = topological_sort(graph)
    _assert_dependency_first(order, graph)


def test_sort_is_input_stable():
    graph = {"c": set(), "b": set(), "a": set(), "d": {"a"}}
    assert topological_sort(graph) == ["c", "b", "a", "d"]


def test_sort_uses_nodes_placed_earlier_in_same_pass():
    graph = {"a": set(), "b": {"a"}, "c": {"b"}}
    assert topological_sort(graph) == ["a", "b", "c"]


def test_sort_defers_nodes_to_later_passes():
    graph = {"c": {"b"}, "b": {"a"}, "a": set()}
    assert topological_sort(graph) == ["a", "b", "c"]


def test_sort_empty_graph():
    assert topological_sort({}) == []


def test_mutual_dependency_reports_both_participants():
    graph = {"A": {"B"}, "B": {"A"}}
    with pytest.raises(CycleError) as exc_info:
        topological_sort(graph)
    err = exc_info.value
    assert err.unresolved == {"A": ["B"], "B": ["A"]}
    assert err.participants == ["A", "B"]
    assert err.cycles == [["A", "B"]]
    assert "A -> [B]" in str(err)
    assert "B -> [A]" in str(err)


def test_cycle_reports_blocked_nodes_and_actual_cycle():
    graph = {
        "base": set(),
        "x": {"base", "y"},
        "y": {"x"},
        "app": {"x", "base"},
    }
    with pytest.raises(CycleError) as exc_info:
        topological_sort(graph)
    err = exc_info.value
    assert err.unresolved == {"x": ["y"], "y": ["x"], "app": ["x"]}
    assert err.cycles == [["x", "y"]]


def test_self_loop_is_a_cycle():
    with pytest.raises(CycleError) as exc_info:
        topological_sort({"a": {"a"}})
    assert exc_info.value.unresolved == {"a": ["a"]}
    assert exc_info.value.cycles == [["a"]]


def test_detect_cycles_on_acyclic_graph():
    assert detect_cycles({"a": set(), "b": {"a"}}) == []


def test_detect_cycles_finds_separate_groups():
    graph = {"a": {"b"}, "b": {"a"}, "c": {"d"}, "d": {"e"}, "e": {"c"}, "f": {"a"}}
    cycles = sorted(detect_cycles(graph))
    assert cycles == [["a", "b"], ["c", "d", "e"]]


def _random_dag(rng, size):
    """Edges only point from a higher index to a lower one, so the graph is acyclic."""
    graph = {}
    for i in range(size):
        candidates = [f"n{j}" for j in range(i)]
        graph[f"n{i}"] = set(rng.sample(candidates, rng.randint(0, min(3, len(candidates)))))
    return graph


@pytest.mark.parametrize("seed", range(8))
def test_sort_generated_dags_in_shuffled_order(seed):
    rng = random.Random(seed)
    dag = _random_dag(rng, rng.randint(1, 25))
    for _ in range(3):
        names = list(dag)
        rng.shuffle(names)
        graph = {name: dag[name] for name in names}
        _assert_dependency_first(topological_sort(graph), graph)

        components = make_registry({name: sorted(dag[name]) for name in names})
        order = [c.dir for c in toposort_components(components)]
        _assert_dependency_first(order, graph)
