"""Discover package directories in a source tree with a pool of walker threads."""

from __future__ import annotations

import logging
import os
import queue
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable

from pkgtree.core.config import DiscoverySettings, load_config
from pkgtree.core.errors import ConfigError, DiscoveryAbort, ParseError
from pkgtree.core.package import (
    DESCRIPTOR_FORMATS,
    PACKAGE_FILE,
    DescriptorFormat,
    Package,
    find_descriptor,
)

logger = logging.getLogger(__name__)

# Directory names never descended into (VCS metadata).
SKIP_DIRS = frozenset({".git", ".hg", ".svn"})


def _subdirectories(directory: Path) -> list[Path]:
    """Child directories, not following symbolic links."""
    children = []
    with os.scandir(directory) as it:
        for entry in it:
            if entry.name in SKIP_DIRS:
                continue
            if entry.is_dir(follow_symlinks=False):
                children.append(Path(entry.path))
    return children


def _visit(
    directory: Path,
    settings: DiscoverySettings,
    formats: tuple[DescriptorFormat, ...],
    found: queue.Queue[Package],
) -> list[Path]:
    """
    Visit one directory and return the subdirectories still to walk.

    A discovered package is put on ``found``; its subtree is not walked.
    """
    if settings.is_denied(directory):
        logger.debug("skipping deny-listed %s", directory)
        return []

    cfg_file = directory / settings.config_file
    if cfg_file.is_file() and load_config(cfg_file).ignore:
        logger.debug("pruning ignored %s", directory)
        return []

    fmt = find_descriptor(directory, formats)
    if fmt is not None:
        found.put(fmt.parse(directory))
        return []

    return _subdirectories(directory)


def discover_packages(
    root: Path,
    *,
    settings: DiscoverySettings | None = None,
    parser: Callable[[Path], Package] | None = None,
    formats: tuple[DescriptorFormat, ...] = DESCRIPTOR_FORMATS,
) -> list[Package]:
    """
    Walk ``root`` concurrently and return every package found.

    Each directory visit runs on a worker thread. Visits hand packages to a
    queue that is drained once every visit has finished, so no list is shared
    between workers. The result order is not meaningful.

    Args:
        root: Source tree to walk.
        settings: Deny-list, worker count and config file name.
        parser: Replaces the package.yml parser (``parse(directory) -> Package``).
        formats: Descriptor formats to look for, in priority order.

    Raises:
        DiscoveryAbort: root is not a directory, or any descriptor, config file
            or directory listing failed. Nothing discovered so far is returned.
    """
    settings = settings or DiscoverySettings()
    if parser is not None:
        formats = (DescriptorFormat(PACKAGE_FILE, parser),)
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryAbort(f"not a directory: {root}")

    found: queue.Queue[Package] = queue.Queue()
    with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
        pending: set[Future[list[Path]]] = {
            pool.submit(_visit, root, settings, formats, found)
        }
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for fut in done:
                try:
                    children = fut.result()
                except (ParseError, ConfigError, OSError) as e:
                    for other in pending:
                        other.cancel()
                    raise DiscoveryAbort(f"discovery of {root} failed: {e}") from e
                for child in children:
                    pending.add(pool.submit(_visit, child, settings, formats, found))

    packages: list[Package] = []
    while not found.empty():
        packages.append(found.get_nowait())
    logger.info("discovered %d package(s) under %s", len(packages), root)
    return packages
