"""Tests for pkgtree.core.package module."""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgtree.core.errors import ParseError
from pkgtree.core.package import (
    DESCRIPTOR_FORMATS,
    DescriptorFormat,
    Package,
    find_descriptor,
    parse_package,
)


def _write(directory: Path, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.yml").write_text(text)
    return directory


class TestPackage:
    """Tests for the Package dataclass."""

    def test_deduplicates_dependencies(self) -> None:
        pkg = Package("a", "1.0", 1, Path("/a"), dependencies=["b", "c", "b"])
        assert pkg.dependencies == ["b", "c"]

    def test_drops_own_name_from_provides(self) -> None:
        pkg = Package("a", "1.0", 1, Path("/a"), provides=["a", "a-devel", "a-devel"])
        assert pkg.provides == ["a-devel"]
        assert pkg.names == ["a", "a-devel"]

    def test_resolve(self) -> None:
        pkg = Package("a", "1.0", 1, Path("/a"), dependencies=["b-devel", "b", "missing"])
        pkg.resolve({"a": 0, "b": 2, "b-devel": 2})
        assert pkg.resolved == [2]
        assert pkg.unresolved == ["missing"]
        assert pkg.buildable is False

    def test_resolve_drops_self_reference(self) -> None:
        pkg = Package("a", "1.0", 1, Path("/a"), dependencies=["a-devel"], provides=["a-devel"])
        pkg.resolve({"a": 3, "a-devel": 3})
        assert pkg.resolved == []
        assert pkg.buildable is True

    def test_to_dict(self) -> None:
        pkg = Package("a", "1.0", 4, Path("/src/a"), dependencies=["b"], provides=["x"])
        d = pkg.to_dict()
        assert d["name"] == "a"
        assert d["release"] == 4
        assert d["path"] == "/src/a"
        assert d["dependencies"] == ["b"]
        assert d["provides"] == ["x"]
        assert d["unresolved"] == []


class TestParsePackage:
    """Tests for parse_package."""

    def test_minimal(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "zlib", "name: zlib\nversion: 1.3.1\nrelease: 7\n")
        pkg = parse_package(d)
        assert pkg.name == "zlib"
        assert pkg.version == "1.3.1"
        assert pkg.release == 7
        assert pkg.path == d.resolve()
        assert pkg.dependencies == []
        assert pkg.provides == []

    def test_numeric_version_is_string(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "name: p\nversion: 2.0\nrelease: 1\n")
        assert parse_package(d).version == "2.0"

    @pytest.mark.parametrize("version", ["1.10", "3.20", "2024.01", "2024-01-05"])
    def test_unquoted_version_keeps_text(self, tmp_path: Path, version: str) -> None:
        d = _write(tmp_path / "p", f"name: p\nversion: {version}\nrelease: 1\n")
        assert parse_package(d).version == version

    @pytest.mark.parametrize("version", ["true", "[1, 2]", "{major: 1}"])
    def test_bad_version(self, tmp_path: Path, version: str) -> None:
        d = _write(tmp_path / "p", f"name: p\nversion: {version}\nrelease: 1\n")
        with pytest.raises(ParseError, match="version"):
            parse_package(d)

    def test_dependencies_and_subpackages(self, tmp_path: Path) -> None:
        d = _write(
            tmp_path / "curl",
            """name: curl
version: 8.5.0
release: 3
builddeps:
  - pkgconfig(zlib)
  - openssl-devel
rundeps:
  - ca-certs
  - devel:
      - openssl-devel
      - zlib-devel
patterns:
  - docs:
      - /usr/share/doc
  - /usr/lib
provides:
  - libcurl
""",
        )
        pkg = parse_package(d)
        assert pkg.dependencies == ["pkgconfig(zlib)", "openssl-devel", "ca-certs", "zlib-devel"]
        assert pkg.provides == ["libcurl", "curl-docs", "curl-devel"]

    def test_rundeps_mapping_with_single_name(self, tmp_path: Path) -> None:
        d = _write(
            tmp_path / "p",
            "name: p\nversion: '1'\nrelease: 1\nrundeps:\n  - devel: q-devel\n",
        )
        pkg = parse_package(d)
        assert pkg.dependencies == ["q-devel"]
        assert pkg.provides == ["p-devel"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ParseError):
            parse_package(tmp_path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "name: [unclosed\n")
        with pytest.raises(ParseError, match="invalid YAML"):
            parse_package(d)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "- just\n- a list\n")
        with pytest.raises(ParseError, match="mapping"):
            parse_package(d)

    def test_missing_name(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "version: 1\nrelease: 1\n")
        with pytest.raises(ParseError, match="name"):
            parse_package(d)

    def test_missing_version(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "name: p\nrelease: 1\n")
        with pytest.raises(ParseError, match="version"):
            parse_package(d)

    @pytest.mark.parametrize("release", ["-1", "'3'", "true", "1.5"])
    def test_bad_release(self, tmp_path: Path, release: str) -> None:
        d = _write(tmp_path / "p", f"name: p\nversion: 1\nrelease: {release}\n")
        with pytest.raises(ParseError, match="release"):
            parse_package(d)

    def test_builddeps_not_a_list(self, tmp_path: Path) -> None:
        d = _write(tmp_path / "p", "name: p\nversion: 1\nrelease: 1\nbuilddeps: zlib\n")
        with pytest.raises(ParseError, match="builddeps"):
            parse_package(d)

    @pytest.mark.parametrize(
        "body",
        [
            "builddeps:\n  - ~\n",
            "builddeps:\n  - 42\n",
            "rundeps:\n  - devel:\n      - zlib\n      - ~\n",
            "rundeps:\n  - devel:\n      - {nested: name}\n",
            "rundeps:\n  - devel: ~\n",
        ],
    )
    def test_non_string_dependency_entry(self, tmp_path: Path, body: str) -> None:
        d = _write(tmp_path / "p", "name: p\nversion: 1\nrelease: 1\n" + body)
        with pytest.raises(ParseError, match="entry"):
            parse_package(d)

    @pytest.mark.parametrize("entry", ["~", "{sub: name}", "[a, b]"])
    def test_non_string_provides_entry(self, tmp_path: Path, entry: str) -> None:
        d = _write(tmp_path / "p", f"name: p\nversion: 1\nrelease: 1\nprovides:\n  - libp\n  - {entry}\n")
        with pytest.raises(ParseError, match="provides"):
            parse_package(d)


class TestFindDescriptor:
    """Tests for the descriptor format registry."""

    def test_package_yml(self, tmp_path: Path) -> None:
        _write(tmp_path, "name: p\nversion: 1\nrelease: 1\n")
        assert find_descriptor(tmp_path) is DESCRIPTOR_FORMATS[0]

    def test_none(self, tmp_path: Path) -> None:
        assert find_descriptor(tmp_path) is None

    def test_extra_format(self, tmp_path: Path) -> None:
        (tmp_path / "pspec.xml").write_text("<PISI/>")
        legacy = DescriptorFormat("pspec.xml", lambda d: Package("legacy", "1", 1, d))
        assert find_descriptor(tmp_path) is None
        assert find_descriptor(tmp_path, DESCRIPTOR_FORMATS + (legacy,)) is legacy

    def test_first_format_wins(self, tmp_path: Path) -> None:
        _write(tmp_path, "name: p\nversion: 1\nrelease: 1\n")
        (tmp_path / "pspec.xml").write_text("<PISI/>")
        legacy = DescriptorFormat("pspec.xml", lambda d: Package("legacy", "1", 1, d))
        assert find_descriptor(tmp_path, DESCRIPTOR_FORMATS + (legacy,)) is DESCRIPTOR_FORMATS[0]
