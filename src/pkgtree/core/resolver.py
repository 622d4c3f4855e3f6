"""Map real and virtual package names to snapshot positions and resolve dependencies."""

from __future__ import annotations

import logging
from typing import Sequence

from pkgtree.core.errors import NameCollision, UnresolvedDependency
from pkgtree.core.package import Package

logger = logging.getLogger(__name__)


def build_name_index(packages: Sequence[Package]) -> dict[str, int]:
    """
    Register every package name and provided name against its position.

    Raises:
        NameCollision: two different packages claim the same name.
    """
    index: dict[str, int] = {}
    for idx, pkg in enumerate(packages):
        for name in pkg.names:
            owner = index.setdefault(name, idx)
            if owner != idx:
                raise NameCollision(name, packages[owner].path, pkg.path)
    logger.debug("indexed %d name(s) for %d package(s)", len(index), len(packages))
    return index


def resolve_dependencies(
    packages: Sequence[Package],
    name_index: dict[str, int],
    *,
    strict: bool = False,
) -> None:
    """
    Resolve each package's dependency names against ``name_index``.

    Names with no owner are kept on ``Package.unresolved`` and make the package
    unbuildable. With ``strict`` the first such package raises instead.

    Raises:
        UnresolvedDependency: ``strict`` is set and a name has no owner.
    """
    for pkg in packages:
        pkg.resolve(name_index)
        if pkg.unresolved:
            if strict:
                raise UnresolvedDependency(pkg.name, pkg.unresolved)
            logger.debug("%s: unresolved %s", pkg.name, ", ".join(pkg.unresolved))
