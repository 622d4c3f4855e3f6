"""Directed dependency graph over snapshot positions, with cycle detection and build order."""

from __future__ import annotations

import heapq
import logging
from typing import Iterable, Iterator, Sequence

from pkgtree.core.errors import CyclicGraph
from pkgtree.core.package import Package

logger = logging.getLogger(__name__)

_WHITE, _GRAY, _BLACK = 0, 1, 2


class DependencyGraph:
    """
    Adjacency sets keyed by package position.

    An edge ``dependent -> dependency`` means the dependency must be built
    first. Both directions are stored so dependents can be walked cheaply.
    """

    def __init__(self) -> None:
        self._deps: dict[int, set[int]] = {}
        self._rdeps: dict[int, set[int]] = {}

    def __len__(self) -> int:
        return len(self._deps)

    def __contains__(self, vertex: object) -> bool:
        return vertex in self._deps

    @property
    def vertices(self) -> list[int]:
        return sorted(self._deps)

    @property
    def edges(self) -> list[tuple[int, int]]:
        """All (dependent, dependency) pairs, sorted."""
        return sorted((v, d) for v, deps in self._deps.items() for d in deps)

    def add_vertex(self, vertex: int) -> None:
        self._deps.setdefault(vertex, set())
        self._rdeps.setdefault(vertex, set())

    def add_edge(self, dependent: int, dependency: int) -> None:
        """Record that ``dependent`` needs ``dependency``. Adding an edge twice is a no-op."""
        if dependent not in self._deps:
            raise KeyError(dependent)
        if dependency not in self._deps:
            raise KeyError(dependency)
        self._deps[dependent].add(dependency)
        self._rdeps[dependency].add(dependent)

    def dependencies_of(self, vertex: int) -> list[int]:
        return sorted(self._deps[vertex])

    def dependents_of(self, vertex: int) -> list[int]:
        return sorted(self._rdeps[vertex])

    def find_cycle(self, within: Iterable[int] | None = None) -> list[int] | None:
        """
        Return one dependency cycle, or None if the graph is acyclic.

        Depth-first search with three-colour marking, visiting vertices and
        neighbours in ascending order so the same cycle is reported every
        time. In the returned list each vertex depends on the next one and the
        last depends on the first.

        ``within`` restricts the search to the subgraph induced by those vertices.
        """
        allowed = set(self._deps) if within is None else set(within) & set(self._deps)
        color = dict.fromkeys(allowed, _WHITE)

        def neighbours(v: int) -> Iterator[int]:
            return iter(sorted(d for d in self._deps[v] if d in allowed))

        for start in sorted(allowed):
            if color[start] != _WHITE:
                continue
            color[start] = _GRAY
            path = [start]
            stack = [neighbours(start)]
            while stack:
                nxt = next(stack[-1], None)
                if nxt is None:
                    color[path.pop()] = _BLACK
                    stack.pop()
                elif color[nxt] == _GRAY:
                    return path[path.index(nxt):]
                elif color[nxt] == _WHITE:
                    color[nxt] = _GRAY
                    path.append(nxt)
                    stack.append(neighbours(nxt))
        return None

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def topological_order(self, within: Iterable[int] | None = None) -> list[int]:
        """
        Order vertices so every dependency comes before its dependents.

        Kahn's algorithm with a min-heap: among vertices whose dependencies are
        all placed, the lowest position goes first, so the order only depends
        on the vertex and edge sets.

        Raises:
            CyclicGraph: the (sub)graph contains a cycle.
        """
        allowed = set(self._deps) if within is None else set(within) & set(self._deps)
        remaining = {v: sum(1 for d in self._deps[v] if d in allowed) for v in allowed}
        ready = [v for v, n in remaining.items() if n == 0]
        heapq.heapify(ready)

        order: list[int] = []
        while ready:
            v = heapq.heappop(ready)
            order.append(v)
            for dependent in self._rdeps[v]:
                if dependent not in allowed:
                    continue
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) != len(allowed):
            cycle = self.find_cycle(allowed)
            raise CyclicGraph(cycle or sorted(allowed - set(order)))
        return order

    def transitive_dependents(self, vertices: Iterable[int]) -> set[int]:
        """The given vertices plus everything that depends on them, directly or not."""
        seen = {v for v in vertices if v in self._deps}
        todo = list(seen)
        while todo:
            v = todo.pop()
            for dependent in self._rdeps[v]:
                if dependent not in seen:
                    seen.add(dependent)
                    todo.append(dependent)
        return seen


def build_graph(packages: Sequence[Package]) -> DependencyGraph:
    """Build the graph from resolved packages: one vertex per position, one edge per resolved dependency."""
    graph = DependencyGraph()
    for idx in range(len(packages)):
        graph.add_vertex(idx)
    for idx, pkg in enumerate(packages):
        for dep in pkg.resolved:
            graph.add_edge(idx, dep)
    logger.debug("built graph with %d vertices and %d edges", len(graph), len(graph.edges))
    return graph
