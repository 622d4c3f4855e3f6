"""Errors raised while discovering, resolving and ordering a source tree."""

from __future__ import annotations

from pathlib import Path


class PkgtreeError(Exception):
    """Base class for every error raised by pkgtree."""


class ParseError(PkgtreeError):
    """A package descriptor could not be read or has an invalid shape."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(PkgtreeError):
    """An autobuild.yml ignore-configuration file is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class DiscoveryAbort(PkgtreeError):
    """Discovery stopped; no partial snapshot is usable."""


class NameCollision(PkgtreeError):
    """Two packages claim the same real or virtual name."""

    def __init__(self, name: str, first: Path, second: Path) -> None:
        super().__init__(f"name {name!r} is claimed by both {first} and {second}")
        self.name = name
        self.first = first
        self.second = second


class UnresolvedDependency(PkgtreeError):
    """A package depends on names that no package in the snapshot provides."""

    def __init__(self, package: str, names: list[str]) -> None:
        super().__init__(f"{package}: unresolved dependencies: {', '.join(names)}")
        self.package = package
        self.names = names


class CyclicGraph(PkgtreeError):
    """A topological order was requested on a graph containing a cycle."""

    def __init__(self, cycle: list[int], names: list[str] | None = None) -> None:
        shown = names if names is not None else [str(v) for v in cycle]
        super().__init__("dependency cycle: " + " -> ".join(shown + shown[:1]))
        self.cycle = cycle
        self.names = names
