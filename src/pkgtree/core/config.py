"""Per-directory autobuild.yml loading and discovery settings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from pkgtree.core.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE = "autobuild.yml"

# Package directories known to break discovery; skipped without a descriptor lookup.
DEFAULT_DENY_LIST = frozenset({"haskell-http-client-tls"})


@dataclass(frozen=True)
class AutobuildConfig:
    """Settings read from a directory's autobuild.yml."""

    ignore: bool = False


def load_config(path: Path) -> AutobuildConfig:
    """
    Load an autobuild.yml file.

    An empty file yields the defaults. Raises ConfigError when the file cannot
    be read, is not a mapping, or ``ignore`` is not a boolean.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(path, f"cannot read: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(path, f"invalid YAML: {e}") from e

    if data is None:
        return AutobuildConfig()
    if not isinstance(data, dict):
        raise ConfigError(path, "top level must be a mapping")
    ignore = data.get("ignore", False)
    if not isinstance(ignore, bool):
        raise ConfigError(path, "'ignore' must be true or false")
    return AutobuildConfig(ignore=ignore)


def _split_names(value: str) -> list[str]:
    """Split an environment value on os.pathsep or commas."""
    parts = value.replace(",", os.pathsep).split(os.pathsep)
    return [p.strip() for p in parts if p.strip()]


@dataclass(frozen=True)
class DiscoverySettings:
    """How a source tree is walked."""

    deny_list: frozenset[str] = field(default_factory=lambda: DEFAULT_DENY_LIST)
    max_workers: int | None = None
    config_file: str = CONFIG_FILE

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    def is_denied(self, directory: Path) -> bool:
        return directory.name in self.deny_list

    def with_overrides(
        self,
        *,
        deny: list[str] | None = None,
        max_workers: int | None = None,
    ) -> DiscoverySettings:
        """Return a copy with extra deny-listed names and/or a worker count."""
        settings = self
        if deny:
            settings = replace(settings, deny_list=settings.deny_list | frozenset(deny))
        if max_workers is not None:
            settings = replace(settings, max_workers=max_workers)
        return settings

    @classmethod
    def from_env(cls) -> DiscoverySettings:
        """
        Build settings from the environment.

        PKGTREE_DENY_LIST adds names to the default deny-list and
        PKGTREE_WORKERS sets the size of the walker pool.
        """
        deny = _split_names(os.environ.get("PKGTREE_DENY_LIST", ""))
        workers_raw = os.environ.get("PKGTREE_WORKERS", "").strip()
        workers = None
        if workers_raw:
            try:
                workers = int(workers_raw)
            except ValueError:
                logger.warning("ignoring non-integer PKGTREE_WORKERS=%r", workers_raw)
            else:
                if workers < 1:
                    logger.warning("ignoring PKGTREE_WORKERS=%d, must be at least 1", workers)
                    workers = None
        return cls().with_overrides(deny=deny, max_workers=workers)
