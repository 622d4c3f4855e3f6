"""Package records and the package.yml descriptor parser."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from pkgtree.core.errors import ParseError

logger = logging.getLogger(__name__)

PACKAGE_FILE = "package.yml"

# Keys whose entries name other packages.
DEPENDENCY_KEYS = ("builddeps", "rundeps")


class _DescriptorLoader(yaml.SafeLoader):
    """SafeLoader that keeps float and date lookalikes as text, so `version: 1.10` stays "1.10"."""


_TEXT_TAGS = ("tag:yaml.org,2002:float", "tag:yaml.org,2002:timestamp")

_DescriptorLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TEXT_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


@dataclass
class Package:
    """One buildable package found in a source tree."""

    name: str
    version: str
    release: int
    path: Path
    dependencies: list[str] = field(default_factory=list)
    provides: list[str] = field(default_factory=list)
    # Filled in by resolve(): positions of owning packages and names nobody owns.
    resolved: list[int] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.dependencies = list(dict.fromkeys(self.dependencies))
        self.provides = [p for p in dict.fromkeys(self.provides) if p != self.name]

    @property
    def names(self) -> list[str]:
        """The real name followed by every provided virtual name."""
        return [self.name, *self.provides]

    @property
    def buildable(self) -> bool:
        """False when some dependency has no owner in the snapshot."""
        return not self.unresolved

    def resolve(self, name_index: Mapping[str, int]) -> None:
        """Translate raw dependency names into snapshot positions."""
        own = name_index.get(self.name)
        resolved: set[int] = set()
        unresolved: list[str] = []
        for dep in self.dependencies:
            idx = name_index.get(dep)
            if idx is None:
                unresolved.append(dep)
            elif idx != own:
                resolved.add(idx)
        self.resolved = sorted(resolved)
        self.unresolved = unresolved

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "name": self.name,
            "version": self.version,
            "release": self.release,
            "path": str(self.path),
            "dependencies": self.dependencies,
            "provides": self.provides,
            "unresolved": self.unresolved,
        }


def _names_from_entries(entries: Any, key: str, path: Path) -> tuple[list[str], list[str]]:
    """
    Collect names from a ypkg dependency list.

    Entries are either plain names or one-key mappings ``{subpackage: names}``.
    Returns (names, subpackages).
    """
    if entries is None:
        return [], []
    if not isinstance(entries, list):
        raise ParseError(path, f"'{key}' must be a list")
    names: list[str] = []
    subpackages: list[str] = []
    for entry in entries:
        if isinstance(entry, str):
            names.append(entry.strip())
        elif isinstance(entry, dict):
            for sub, values in entry.items():
                subpackages.append(str(sub))
                if isinstance(values, str):
                    names.append(values.strip())
                elif isinstance(values, list) and all(isinstance(v, str) for v in values):
                    names.extend(v.strip() for v in values)
                else:
                    raise ParseError(path, f"bad entry under '{key}': {sub}")
        else:
            raise ParseError(path, f"bad entry in '{key}': {entry!r}")
    return [n for n in names if n], subpackages


def _subpackages_from_patterns(patterns: Any, path: Path) -> list[str]:
    if patterns is None:
        return []
    if not isinstance(patterns, list):
        raise ParseError(path, "'patterns' must be a list")
    return [str(key) for entry in patterns if isinstance(entry, dict) for key in entry]


def parse_package(directory: Path) -> Package:
    """
    Parse ``directory/package.yml`` into a Package.

    ``name``, ``version`` and ``release`` are required. Dependencies come from
    ``builddeps`` and ``rundeps``; provided names from an explicit ``provides``
    list plus ``<name>-<sub>`` for every sub-package declared in ``patterns``
    or ``rundeps``.

    Raises:
        ParseError: the file cannot be read or does not describe a package.
    """
    directory = Path(directory)
    pkg_file = directory / PACKAGE_FILE
    try:
        with open(pkg_file, encoding="utf-8") as f:
            data = yaml.load(f, Loader=_DescriptorLoader)
    except OSError as e:
        raise ParseError(pkg_file, f"cannot read: {e}") from e
    except yaml.YAMLError as e:
        raise ParseError(pkg_file, f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(pkg_file, "top level must be a mapping")

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ParseError(pkg_file, "missing 'name'")
    name = name.strip()
    version = data.get("version")
    if version is None:
        raise ParseError(pkg_file, "missing 'version'")
    if isinstance(version, bool) or not isinstance(version, (str, int)):
        raise ParseError(pkg_file, "'version' must be a string")
    release = data.get("release")
    if isinstance(release, bool) or not isinstance(release, int) or release < 0:
        raise ParseError(pkg_file, "'release' must be a non-negative integer")

    deps: list[str] = []
    subpackages = _subpackages_from_patterns(data.get("patterns"), pkg_file)
    for key in DEPENDENCY_KEYS:
        names, subs = _names_from_entries(data.get(key), key, pkg_file)
        deps.extend(names)
        subpackages.extend(subs)

    provides = data.get("provides") or []
    if not isinstance(provides, list):
        raise ParseError(pkg_file, "'provides' must be a list")
    for entry in provides:
        if not isinstance(entry, str):
            raise ParseError(pkg_file, f"bad entry in 'provides': {entry!r}")
    provides = [p.strip() for p in provides if p.strip()]
    provides.extend(f"{name}-{sub}" for sub in subpackages)

    logger.debug("parsed %s %s-%s from %s", name, version, release, pkg_file)
    return Package(
        name=name,
        version=str(version),
        release=release,
        path=directory.resolve(),
        dependencies=deps,
        provides=provides,
    )


@dataclass(frozen=True)
class DescriptorFormat:
    """A descriptor file name and the parser that turns its directory into a Package."""

    filename: str
    parse: Callable[[Path], Package]


# Checked in order; the first descriptor present in a directory wins.
DESCRIPTOR_FORMATS: tuple[DescriptorFormat, ...] = (
    DescriptorFormat(PACKAGE_FILE, parse_package),
)


def find_descriptor(
    directory: Path,
    formats: tuple[DescriptorFormat, ...] = DESCRIPTOR_FORMATS,
) -> DescriptorFormat | None:
    """Return the first known descriptor format present in directory, if any."""
    for fmt in formats:
        if (directory / fmt.filename).is_file():
            return fmt
    return None
