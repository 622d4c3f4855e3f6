"""Core library: package discovery, name resolution, dependency graph, snapshot diffing."""

from pkgtree.core.config import AutobuildConfig, DiscoverySettings, load_config
from pkgtree.core.errors import (
    ConfigError,
    CyclicGraph,
    DiscoveryAbort,
    NameCollision,
    ParseError,
    PkgtreeError,
    UnresolvedDependency,
)
from pkgtree.core.finder import discover_packages
from pkgtree.core.graph import DependencyGraph, build_graph
from pkgtree.core.package import DESCRIPTOR_FORMATS, DescriptorFormat, Package, parse_package
from pkgtree.core.resolver import build_name_index, resolve_dependencies
from pkgtree.core.state import Diff, SourceState, diff_states

__all__ = [
    "AutobuildConfig",
    "DiscoverySettings",
    "load_config",
    "ConfigError",
    "CyclicGraph",
    "DiscoveryAbort",
    "NameCollision",
    "ParseError",
    "PkgtreeError",
    "UnresolvedDependency",
    "discover_packages",
    "DependencyGraph",
    "build_graph",
    "DESCRIPTOR_FORMATS",
    "DescriptorFormat",
    "Package",
    "parse_package",
    "build_name_index",
    "resolve_dependencies",
    "Diff",
    "SourceState",
    "diff_states",
]
