"""Public API: use pkgtree from Python or from other tools."""

from __future__ import annotations

from pathlib import Path

from pkgtree.core.config import DiscoverySettings
from pkgtree.core.package import Package
from pkgtree.core.state import Diff, SourceState


def load_state(
    root: Path,
    *,
    deny: list[str] | None = None,
    max_workers: int | None = None,
    strict: bool = False,
) -> SourceState:
    """
    Load a resolved snapshot of the source tree at ``root``.

    Args:
        root: Directory holding package directories (each with a package.yml).
        deny: Extra directory names to skip, on top of the default deny-list
            and PKGTREE_DENY_LIST.
        max_workers: Size of the walker thread pool; defaults to PKGTREE_WORKERS
            or the executor default.
        strict: Raise UnresolvedDependency instead of marking packages unbuildable.
    """
    settings = DiscoverySettings.from_env().with_overrides(deny=deny, max_workers=max_workers)
    return SourceState.load(Path(root), settings=settings, strict=strict)


def list_packages(
    root: Path,
    *,
    deny: list[str] | None = None,
) -> list[Package]:
    """List every package under ``root``, sorted by name."""
    return list(load_state(root, deny=deny).packages)


def build_order(
    root: Path,
    *,
    deny: list[str] | None = None,
) -> list[Package]:
    """
    Packages under ``root`` in build order (dependencies first).

    Raises CyclicGraph if the packages depend on each other in a cycle.
    """
    return load_state(root, deny=deny).build_order()


def changed_packages(
    current_root: Path,
    previous_root: Path,
    *,
    deny: list[str] | None = None,
) -> list[tuple[Package, Diff]]:
    """
    Compare two source trees and return the new or changed packages of the first.

    Returns (package, diff) pairs ordered by package name.
    """
    current = load_state(current_root, deny=deny)
    previous = load_state(previous_root, deny=deny)
    return [(current.packages[d.index], d) for d in current.diff(previous)]
