"""Source-tree snapshots and the differ that finds new and changed packages."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from pkgtree.core.config import DiscoverySettings
from pkgtree.core.errors import CyclicGraph
from pkgtree.core.finder import discover_packages
from pkgtree.core.graph import DependencyGraph, build_graph
from pkgtree.core.package import Package
from pkgtree.core.resolver import build_name_index, resolve_dependencies

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diff:
    """A package that is new in, or changed by, the current snapshot."""

    index: int
    version: str
    release: int
    old_index: int | None = None
    old_version: str | None = None
    old_release: int = 0

    @property
    def is_new(self) -> bool:
        return self.old_index is None

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "index": self.index,
            "version": self.version,
            "release": self.release,
            "old_index": self.old_index,
            "old_version": self.old_version,
            "old_release": self.old_release,
        }


class SourceState:
    """
    A resolved snapshot of every package in a source tree.

    Packages are sorted by name so positions are stable across runs over the
    same tree. The snapshot is not modified after construction; the
    dependency graph is built on first use.
    """

    def __init__(
        self,
        packages: Iterable[Package],
        *,
        root: Path | None = None,
        is_git: bool = False,
        strict: bool = False,
    ) -> None:
        # Resolution writes to the records, so the snapshot owns copies.
        copies = (replace(p, resolved=[], unresolved=[]) for p in packages)
        self._packages = tuple(sorted(copies, key=lambda p: p.name))
        index = build_name_index(self._packages)
        resolve_dependencies(self._packages, index, strict=strict)
        self._name_index = MappingProxyType(index)
        self._root = root
        self._is_git = is_git
        self._graph: DependencyGraph | None = None
        self._graph_lock = threading.Lock()

    @classmethod
    def load(
        cls,
        root: Path,
        *,
        settings: DiscoverySettings | None = None,
        parser: Callable[[Path], Package] | None = None,
        strict: bool = False,
    ) -> SourceState:
        """Discover, index and resolve every package under ``root``."""
        root = Path(root).resolve()
        packages = discover_packages(root, settings=settings, parser=parser)
        return cls(packages, root=root, is_git=(root / ".git").exists(), strict=strict)

    @property
    def packages(self) -> tuple[Package, ...]:
        return self._packages

    @property
    def name_index(self) -> Mapping[str, int]:
        return self._name_index

    @property
    def root(self) -> Path | None:
        return self._root

    @property
    def is_git(self) -> bool:
        """True when the snapshot was loaded from a git checkout."""
        return self._is_git

    @property
    def dependency_graph(self) -> DependencyGraph:
        with self._graph_lock:
            if self._graph is None:
                self._graph = build_graph(self._packages)
            return self._graph

    def package(self, name: str) -> Package | None:
        """Look up a package by its real or a provided name."""
        idx = self._name_index.get(name)
        return None if idx is None else self._packages[idx]

    def build_order(self, within: Iterable[int] | None = None) -> list[Package]:
        """
        Packages in an order where dependencies come first.

        Raises:
            CyclicGraph: with the names of the packages on the cycle.
        """
        try:
            order = self.dependency_graph.topological_order(within)
        except CyclicGraph as e:
            names = [self._packages[i].name for i in e.cycle]
            raise CyclicGraph(e.cycle, names) from None
        return [self._packages[i] for i in order]

    def diff(self, previous: SourceState) -> list[Diff]:
        return diff_states(self, previous)

    def removed(self, previous: SourceState) -> list[str]:
        """Names of packages in ``previous`` that no longer exist here, sorted."""
        names = {p.name for p in self._packages}
        return sorted(p.name for p in previous.packages if p.name not in names)

    def rebuild_set(self, previous: SourceState) -> list[Package]:
        """New and changed packages plus everything depending on them, in build order."""
        changed = [d.index for d in self.diff(previous)]
        affected = self.dependency_graph.transitive_dependents(changed)
        return self.build_order(affected)


def diff_states(current: SourceState, previous: SourceState) -> list[Diff]:
    """
    List packages of ``current`` that are new or whose version or release changed.

    Entries follow ``current``'s package order. Packages that only exist in
    ``previous`` are not reported; use ``SourceState.removed`` for those.
    """
    res: list[Diff] = []
    for idx, pkg in enumerate(current.packages):
        old_idx = previous.name_index.get(pkg.name)
        # A name that was only a provided alias before counts as new.
        if old_idx is None or previous.packages[old_idx].name != pkg.name:
            res.append(Diff(index=idx, version=pkg.version, release=pkg.release))
            continue
        old = previous.packages[old_idx]
        if old.version != pkg.version or old.release != pkg.release:
            res.append(
                Diff(
                    index=idx,
                    version=pkg.version,
                    release=pkg.release,
                    old_index=old_idx,
                    old_version=old.version,
                    old_release=old.release,
                )
            )
    logger.info("%d package(s) new or changed", len(res))
    return res
