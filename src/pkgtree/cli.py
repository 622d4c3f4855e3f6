"""Command-line interface for pkgtree: list packages, show build order, graph and diff source trees."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pkgtree.core.config import DiscoverySettings
from pkgtree.core.errors import CyclicGraph, PkgtreeError
from pkgtree.core.state import SourceState


def _setup_logging(args: argparse.Namespace) -> None:
    """Send log records to stderr at the level picked by -v/--debug."""
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(args: argparse.Namespace, root: str) -> SourceState:
    """Load a snapshot using the discovery flags common to every command."""
    settings = DiscoverySettings.from_env().with_overrides(
        deny=args.deny,
        max_workers=args.workers,
    )
    return SourceState.load(Path(root), settings=settings, strict=args.strict)


def cmd_list(args: argparse.Namespace) -> int:
    """List the packages of a source tree."""
    state = _load(args, args.root)

    if args.json:
        print(json.dumps([pkg.to_dict() for pkg in state.packages], indent=2))
        return 0

    if not state.packages:
        print(f"No packages found under {args.root}.")
        return 1
    print(f"Found {len(state.packages)} package(s):\n")
    for pkg in state.packages:
        print(f"  {pkg.name} {pkg.version}-{pkg.release}")
        if args.verbose:
            print(f"    Path: {pkg.path}")
            if pkg.provides:
                print(f"    Provides: {', '.join(pkg.provides)}")
            if pkg.unresolved:
                print(f"    Unresolved: {', '.join(pkg.unresolved)}")
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    """Print packages in build order (dependencies first)."""
    state = _load(args, args.root)
    try:
        order = state.build_order()
    except CyclicGraph as e:
        print(f"Cannot order packages: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([pkg.name for pkg in order], indent=2))
    else:
        for i, pkg in enumerate(order, start=1):
            marker = "" if pkg.buildable else "  [unbuildable]"
            print(f"{i:4d}. {pkg.name} {pkg.version}-{pkg.release}{marker}")
    return 0


def _graph_edges(state: SourceState) -> list[tuple[str, str]]:
    """(dependent, dependency) name pairs, sorted."""
    names = [pkg.name for pkg in state.packages]
    return sorted((names[a], names[b]) for a, b in state.dependency_graph.edges)


def _generate_dot(state: SourceState, title: str | None = None) -> str:
    """Generate DOT (Graphviz) format from a snapshot's dependency graph."""
    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    for pkg in state.packages:
        if not pkg.buildable:
            lines.append(f'    "{pkg.name}" [style="rounded,filled", fillcolor=lightpink];')
        else:
            lines.append(f'    "{pkg.name}";')

    for parent, child in _graph_edges(state):
        lines.append(f'    "{parent}" -> "{child}";')

    lines.append("}")
    return "\n".join(lines)


def _generate_mermaid(state: SourceState, title: str | None = None) -> str:
    """Generate Mermaid format from a snapshot's dependency graph."""
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    for pkg in state.packages:
        lines.append(f"    {_mermaid_id(pkg.name)}[{pkg.name}]")

    for parent, child in _graph_edges(state):
        lines.append(f"    {_mermaid_id(parent)} --> {_mermaid_id(child)}")

    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a package name to a valid Mermaid node ID."""
    for ch in "-.+()":
        name = name.replace(ch, "_")
    return name


def cmd_graph(args: argparse.Namespace) -> int:
    """Write the dependency graph in DOT or Mermaid format."""
    state = _load(args, args.root)
    title = None if args.no_title else f"{Path(args.root).resolve().name} dependencies"

    if args.format == "mermaid":
        output = _generate_mermaid(state, title=title)
    else:  # dot
        output = _generate_dot(state, title=title)

    if args.output:
        Path(args.output).write_text(output)
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def cmd_diff(args: argparse.Namespace) -> int:
    """Show packages that are new or changed between two source trees."""
    current = _load(args, args.current)
    previous = _load(args, args.previous)
    diffs = current.diff(previous)
    removed = current.removed(previous) if args.removed else []
    rebuild = current.rebuild_set(previous) if args.rebuild else []

    if args.json:
        out: dict = {
            "changed": [
                {"name": current.packages[d.index].name, **d.to_dict()} for d in diffs
            ],
        }
        if args.removed:
            out["removed"] = removed
        if args.rebuild:
            out["rebuild"] = [pkg.name for pkg in rebuild]
        print(json.dumps(out, indent=2))
        return 0

    if not diffs and not removed:
        print("No changes.")
    for d in diffs:
        pkg = current.packages[d.index]
        if d.is_new:
            print(f"  + {pkg.name} {d.version}-{d.release}")
        else:
            print(f"  ~ {pkg.name} {d.old_version}-{d.old_release} -> {d.version}-{d.release}")
    for name in removed:
        print(f"  - {name}")
    if args.rebuild:
        print(f"\nRebuild order ({len(rebuild)}):")
        for pkg in rebuild:
            print(f"    {pkg.name}")
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from pkgtree.tui.app import BuildOrderApp

    settings = DiscoverySettings.from_env().with_overrides(
        deny=args.deny,
        max_workers=args.workers,
    )
    app = BuildOrderApp(Path(args.root), settings=settings)
    app.run()
    return 0


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _add_discovery_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--deny",
        action="append",
        metavar="NAME",
        help="Skip directories with this name (can be repeated)",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Number of walker threads (default: PKGTREE_WORKERS or executor default)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail when a dependency has no providing package",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show more detail and INFO log messages",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show DEBUG log messages",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the pkgtree CLI."""
    parser = argparse.ArgumentParser(
        prog="pkgtree",
        description="Discover, order and diff the packages of a source tree.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # pkgtree list
    list_parser = subparsers.add_parser(
        "list",
        help="List packages in a source tree",
        description="Discover every package.yml under ROOT and list the packages.",
    )
    list_parser.add_argument("root", help="Source tree to scan")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    _add_discovery_args(list_parser)
    list_parser.set_defaults(func=cmd_list)

    # pkgtree order
    order_parser = subparsers.add_parser(
        "order",
        help="Show build order",
        description="Print packages so that every dependency comes before its dependents.",
    )
    order_parser.add_argument("root", help="Source tree to scan")
    order_parser.add_argument("--json", action="store_true", help="Output as JSON")
    _add_discovery_args(order_parser)
    order_parser.set_defaults(func=cmd_order)

    # pkgtree graph
    graph_parser = subparsers.add_parser(
        "graph",
        help="Generate a dependency graph (DOT/Mermaid format)",
        description="Generate the dependency graph of every package under ROOT.",
    )
    graph_parser.add_argument("root", help="Source tree to scan")
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["dot", "mermaid"],
        default="dot",
        help="Output format: dot (Graphviz) or mermaid (default: dot)",
    )
    graph_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    graph_parser.add_argument(
        "--no-title",
        action="store_true",
        help="Don't include a title in the graph",
    )
    _add_discovery_args(graph_parser)
    graph_parser.set_defaults(func=cmd_graph)

    # pkgtree diff
    diff_parser = subparsers.add_parser(
        "diff",
        help="Show new and changed packages between two trees",
        description="Compare CURRENT against PREVIOUS by name, version and release.",
    )
    diff_parser.add_argument("current", help="Current source tree")
    diff_parser.add_argument("previous", help="Previous source tree")
    diff_parser.add_argument(
        "--removed",
        action="store_true",
        help="Also list packages only present in PREVIOUS",
    )
    diff_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Also print changed packages and their dependents in build order",
    )
    diff_parser.add_argument("--json", action="store_true", help="Output as JSON")
    _add_discovery_args(diff_parser)
    diff_parser.set_defaults(func=cmd_diff)

    # pkgtree tui
    tui_parser = subparsers.add_parser(
        "tui",
        help="Launch the interactive terminal UI",
        description="Browse packages in build order with their dependencies.",
    )
    tui_parser.add_argument("root", nargs="?", default=".", help="Source tree (default: .)")
    _add_discovery_args(tui_parser)
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    _setup_logging(args)
    try:
        return args.func(args)
    except PkgtreeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
