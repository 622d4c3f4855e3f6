"""Textual TUI for browsing a source tree's packages in build order."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Footer, Header, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from pkgtree.core.config import DiscoverySettings
from pkgtree.core.errors import CyclicGraph
from pkgtree.core.package import Package
from pkgtree.core.state import SourceState

COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_UNBUILDABLE = "bold red"
COLOR_MISSING = "red"
COLOR_STATS = "cyan"
COLOR_PATH = "dim"


def _package_label(pkg: Package) -> str:
    color = COLOR_PKG if pkg.buildable else COLOR_UNBUILDABLE
    return f"[{color}]{pkg.name}[/] [dim]{pkg.version}-{pkg.release}[/]"


def _order_labels(state: SourceState) -> tuple[list[Package], str | None]:
    """
    Return the packages to list and an optional warning.

    A cyclic snapshot falls back to name order with the cycle as the warning.
    """
    try:
        return state.build_order(), None
    except CyclicGraph as e:
        return list(state.packages), str(e)


def _format_package(pkg: Package, state: SourceState) -> str:
    """Details pane text for one package."""
    graph = state.dependency_graph
    idx = state.name_index[pkg.name]
    deps = ", ".join(state.packages[i].name for i in pkg.resolved) or "(none)"
    rdeps = ", ".join(state.packages[i].name for i in graph.dependents_of(idx)) or "(none)"
    lines = [
        f"[{COLOR_HEADER}]Package[/]",
        f"  {_package_label(pkg)}",
        "",
        f"[{COLOR_HEADER}]Dependencies[/] [{COLOR_STATS}]{len(pkg.resolved)}[/]",
        f"  {deps}",
        f"[{COLOR_HEADER}]Needed by[/] [{COLOR_STATS}]{len(graph.dependents_of(idx))}[/]",
        f"  {rdeps}",
    ]
    if pkg.provides:
        lines += ["", f"[{COLOR_HEADER}]Provides[/]", f"  {', '.join(pkg.provides)}"]
    if pkg.unresolved:
        lines += [
            "",
            f"[{COLOR_HEADER}]Unresolved[/]",
            f"  [{COLOR_MISSING}]{', '.join(pkg.unresolved)}[/]",
        ]
    lines += ["", f"[{COLOR_HEADER}]Path[/]", f"  [{COLOR_PATH}]{pkg.path}[/]"]
    return "\n".join(lines)


class BuildOrderApp(App[None]):
    """Terminal UI listing packages in build order, each expandable to its dependencies."""

    TITLE = "pkgtree"
    BINDINGS = [
        Binding("d", "toggle_details", "Details"),
        Binding("r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    #loading {
        height: auto;
    }
    #loading.done {
        display: none;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        root: Path,
        *,
        settings: DiscoverySettings | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._root = Path(root)
        self._settings = settings
        self._state: SourceState | None = None
        self._details_visible = True

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="loading"):
            yield LoadingIndicator()
            yield Static(f"[dim]Scanning {self._root}...[/]", markup=True)
        yield Tree("Build order", id="order_tree")
        yield Static("[dim]↑/↓[/] move  ·  [dim]Enter[/] select", id="details", markup=True)
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = str(self._root)
        self._start_scan()

    def _start_scan(self) -> None:
        self.query_one("#loading").remove_class("done")
        self.run_worker(self._scan_worker, thread=True)

    def _scan_worker(self) -> SourceState:
        """Worker that loads the snapshot in a background thread."""
        return SourceState.load(self._root, settings=self._settings)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        if event.state == WorkerState.SUCCESS:
            self._state = event.worker.result
            self.query_one("#loading").add_class("done")
            self._populate()
        elif event.state == WorkerState.ERROR:
            self.query_one("#loading").add_class("done")
            self._set_details(f"[red]Error loading {self._root}: {event.worker.error!s}[/]")

    def _populate(self) -> None:
        state = self._state
        if state is None:
            return
        tree = self.query_one("#order_tree", Tree)
        tree.clear()
        packages, warning = _order_labels(state)
        tree.root.label = f"[{COLOR_HEADER}]Build order[/] [dim]({len(packages)} packages)[/]"
        for pkg in packages:
            node: TreeNode = tree.root.add(_package_label(pkg), expand=False)
            node.data = pkg
            for dep in pkg.resolved:
                leaf = node.add_leaf(_package_label(state.packages[dep]))
                leaf.data = state.packages[dep]
            for name in pkg.unresolved:
                node.add_leaf(f"[{COLOR_MISSING}]{name} (unresolved)[/]")
        tree.root.expand()
        tree.focus()
        if warning:
            self._set_details(f"[red]{warning}[/]")

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        pkg = event.node.data
        if isinstance(pkg, Package) and self._state is not None:
            self._set_details(_format_package(pkg, self._state))

    def action_refresh(self) -> None:
        self._state = None
        self.query_one("#order_tree", Tree).clear()
        self._start_scan()

    def action_toggle_details(self) -> None:
        """Toggle visibility of the details panel."""
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"

    def action_quit(self) -> None:
        self.exit()


def main() -> None:
    """Entry point for the pkgtree TUI."""
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()
    BuildOrderApp(root).run()


if __name__ == "__main__":
    main()
