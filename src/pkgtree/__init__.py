"""pkgtree: discover, resolve, order and diff the packages of a distribution source tree."""

from importlib.metadata import version, PackageNotFoundError

from pkgtree.api import (
    build_order,
    changed_packages,
    list_packages,
    load_state,
)
from pkgtree.core.package import Package
from pkgtree.core.state import Diff, SourceState

__all__ = [
    "build_order",
    "changed_packages",
    "list_packages",
    "load_state",
    "Package",
    "Diff",
    "SourceState",
    "__version__",
]

try:
    __version__ = version("pkgtree")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
