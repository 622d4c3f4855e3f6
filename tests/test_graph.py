"""Tests for pkgtree.core.graph module."""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgtree.core.errors import CyclicGraph
from pkgtree.core.graph import DependencyGraph, build_graph
from pkgtree.core.package import Package


def _graph(n: int, edges: list[tuple[int, int]]) -> DependencyGraph:
    graph = DependencyGraph()
    for v in range(n):
        graph.add_vertex(v)
    for dependent, dependency in edges:
        graph.add_edge(dependent, dependency)
    return graph


def _assert_is_cycle(graph: DependencyGraph, cycle: list[int]) -> None:
    for i, v in enumerate(cycle):
        assert cycle[(i + 1) % len(cycle)] in graph.dependencies_of(v)


class TestDependencyGraph:
    """Tests for DependencyGraph basics."""

    def test_vertices_and_edges(self) -> None:
        graph = _graph(3, [(0, 1), (0, 2), (1, 2)])
        assert graph.vertices == [0, 1, 2]
        assert graph.edges == [(0, 1), (0, 2), (1, 2)]
        assert len(graph) == 3
        assert 2 in graph
        assert 5 not in graph

    def test_duplicate_edge_is_noop(self) -> None:
        graph = _graph(2, [(0, 1)])
        graph.add_edge(0, 1)
        assert graph.edges == [(0, 1)]
        assert graph.dependents_of(1) == [0]

    def test_edge_to_unknown_vertex(self) -> None:
        graph = _graph(1, [])
        with pytest.raises(KeyError):
            graph.add_edge(0, 7)
        with pytest.raises(KeyError):
            graph.add_edge(7, 0)

    def test_neighbours(self) -> None:
        graph = _graph(4, [(3, 1), (3, 0), (2, 1)])
        assert graph.dependencies_of(3) == [0, 1]
        assert graph.dependents_of(1) == [2, 3]
        assert graph.dependents_of(0) == [3]


class TestFindCycle:
    """Tests for cycle detection."""

    def test_acyclic(self) -> None:
        graph = _graph(4, [(0, 1), (1, 2), (0, 2), (3, 2)])
        assert graph.find_cycle() is None
        assert graph.has_cycle() is False

    def test_two_cycle(self) -> None:
        graph = _graph(2, [(0, 1), (1, 0)])
        cycle = graph.find_cycle()
        assert cycle is not None
        assert sorted(cycle) == [0, 1]
        _assert_is_cycle(graph, cycle)

    def test_self_loop(self) -> None:
        graph = _graph(2, [(1, 1)])
        assert graph.find_cycle() == [1]

    def test_cycle_behind_acyclic_prefix(self) -> None:
        # 0 -> 1 -> 2 -> 3 -> 1
        graph = _graph(4, [(0, 1), (1, 2), (2, 3), (3, 1)])
        cycle = graph.find_cycle()
        assert cycle == [1, 2, 3]
        _assert_is_cycle(graph, cycle)

    def test_deterministic(self) -> None:
        edges = [(0, 3), (3, 5), (5, 0), (1, 2), (2, 4), (4, 1)]
        first = _graph(6, edges).find_cycle()
        assert first == _graph(6, list(reversed(edges))).find_cycle()
        assert first == [0, 3, 5]

    def test_within_ignores_outside_cycle(self) -> None:
        graph = _graph(4, [(0, 1), (1, 0), (2, 3)])
        assert graph.find_cycle(within=[2, 3]) is None
        assert graph.find_cycle(within=[0, 1, 2]) is not None

    def test_long_chain_does_not_recurse(self) -> None:
        n = 5000
        graph = _graph(n, [(i, i + 1) for i in range(n - 1)] + [(n - 1, 0)])
        cycle = graph.find_cycle()
        assert cycle is not None
        assert len(cycle) == n


class TestTopologicalOrder:
    """Tests for topological ordering."""

    def test_dependencies_first(self) -> None:
        edges = [(0, 2), (1, 0), (1, 3), (3, 2), (4, 1)]
        graph = _graph(5, edges)
        order = graph.topological_order()
        assert sorted(order) == [0, 1, 2, 3, 4]
        pos = {v: i for i, v in enumerate(order)}
        for dependent, dependency in edges:
            assert pos[dependency] < pos[dependent]

    def test_ties_broken_by_position(self) -> None:
        graph = _graph(5, [(0, 4)])
        assert graph.topological_order() == [1, 2, 3, 4, 0]

    def test_repeatable(self) -> None:
        edges = [(5, 1), (5, 0), (2, 1), (3, 2), (4, 0)]
        graph = _graph(6, edges)
        first = graph.topological_order()
        assert first == [0, 1, 2, 3, 4, 5]
        assert graph.topological_order() == first
        assert _graph(6, list(reversed(edges))).topological_order() == first

    def test_empty(self) -> None:
        assert DependencyGraph().topological_order() == []

    def test_cycle_raises(self) -> None:
        graph = _graph(3, [(0, 1), (1, 0), (2, 0)])
        with pytest.raises(CyclicGraph) as exc_info:
            graph.topological_order()
        assert sorted(exc_info.value.cycle) == [0, 1]

    def test_within(self) -> None:
        graph = _graph(5, [(1, 0), (2, 1), (3, 2), (4, 3)])
        assert graph.topological_order(within=[3, 1, 4]) == [1, 3, 4]

    def test_within_skips_cycle_outside(self) -> None:
        graph = _graph(4, [(0, 1), (1, 0), (3, 2)])
        assert graph.topological_order(within=[2, 3]) == [2, 3]


class TestTransitiveDependents:
    """Tests for transitive_dependents."""

    def test_closure(self) -> None:
        # 1 needs 0, 2 needs 1, 3 needs 0, 4 is independent
        graph = _graph(5, [(1, 0), (2, 1), (3, 0)])
        assert graph.transitive_dependents([1]) == {1, 2}
        assert graph.transitive_dependents([0]) == {0, 1, 2, 3}
        assert graph.transitive_dependents([4]) == {4}
        assert graph.transitive_dependents([]) == set()

    def test_cycle_terminates(self) -> None:
        graph = _graph(3, [(0, 1), (1, 0), (2, 1)])
        assert graph.transitive_dependents([0]) == {0, 1, 2}


class TestBuildGraph:
    """Tests for build_graph."""

    def test_from_resolved_packages(self) -> None:
        packages = [
            Package("a", "1", 1, Path("/a"), resolved=[1, 2]),
            Package("b", "1", 1, Path("/b"), resolved=[2]),
            Package("c", "1", 1, Path("/c")),
        ]
        graph = build_graph(packages)
        assert graph.vertices == [0, 1, 2]
        assert graph.edges == [(0, 1), (0, 2), (1, 2)]
        assert graph.topological_order() == [2, 1, 0]

    def test_no_packages(self) -> None:
        assert len(build_graph([])) == 0
