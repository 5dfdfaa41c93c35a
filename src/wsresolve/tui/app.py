"""Textual TUI for browsing a workspace's packages, build order and resolution problems."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from wsresolve.core.config import ResolverConfig
from wsresolve.core.engine import RunResult, load_graph, run_resolution
from wsresolve.core.graph import DependencyGraph
from wsresolve.core.linker import link_path_for
from wsresolve.core.manifest import read_manifest
from wsresolve.core.order import compute_build_levels
from wsresolve.core.resolver import resolve_placeholders
from wsresolve.core.tree import MARKERS, DependencyNode, build_dependency_tree
from wsresolve.core.validator import ValidationResult, validate_graph

# Welcome banner: WSRESOLVE
WELCOME_BANNER = """\
[bold cyan]
██╗    ██╗███████╗██████╗ ███████╗███████╗ ██████╗ ██╗
██║    ██║██╔════╝██╔══██╗██╔════╝██╔════╝██╔═══██╗██║
██║ █╗ ██║███████╗██████╔╝█████╗  ███████╗██║   ██║██║
██║███╗██║╚════██║██╔══██╗██╔══╝  ╚════██║██║   ██║██║
╚███╔███╔╝███████║██║  ██║███████╗███████║╚██████╔╝███████╗
 ╚══╝╚══╝ ╚══════╝╚═╝  ╚═╝╚══════╝╚══════╝ ╚═════╝ ╚══════╝
[/bold cyan]"""

WELCOME_DESC = """[dim]Browse the packages of a multi-package workspace.
See the build order, resolved workspace versions and link targets,
and every cycle, missing package or version mismatch in one place.[/]"""

MAX_TREE_DEPTH = 8
MAX_TREE_NODES = 500
EXPAND_DEPTH_DEFAULT = 2

COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_STATS = "cyan"
COLOR_PATH = "dim"
COLOR_LEVEL = "bold green"
COLOR_ERROR = "bold red"
COLOR_WARNING = "bold yellow"


@dataclass
class WorkspaceView:
    """Everything the TUI shows, computed off the UI thread without writing anything."""

    graph: DependencyGraph
    validation: ValidationResult
    levels: list[list[str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    # Manifest from the last resolve run, if one was written
    last_manifest: dict | None = None


def analyze_workspace(config: ResolverConfig) -> WorkspaceView:
    """Load, validate and (when valid) resolve a workspace in memory."""
    graph = load_graph(config)
    validation = validate_graph(graph, strict_versions=config.strict_versions)
    view = WorkspaceView(
        graph=graph,
        validation=validation,
        warnings=list(validation.warnings),
        last_manifest=read_manifest(config.manifest_path),
    )
    if validation.valid:
        view.levels = compute_build_levels(graph)
        resolution = resolve_placeholders(graph, placeholder=config.placeholder)
        view.graph = resolution.graph
        view.warnings.extend(resolution.warnings)
    return view


def _count_nodes(node: Any) -> int:
    """Count nodes in tree (for cap)."""
    n = 1
    for c in getattr(node, "children", []):
        n += _count_nodes(c)
    return n


def _node_stats(node: Any) -> tuple[int, int, int]:
    """Return (direct_children, total_descendants, max_depth) for a node."""
    children = getattr(node, "children", []) or []
    direct = len(children)
    total = 0
    max_d = 0
    for c in children:
        sub_direct, sub_total, sub_depth = _node_stats(c)
        total += 1 + sub_total
        max_d = max(max_d, 1 + sub_depth)
    return direct, total, max_d


def _manifest_stamp(manifest: dict | None) -> str:
    """Generation time of a manifest, or "never" if there is none."""
    if not manifest:
        return "never"
    return str(manifest.get("generated") or "unknown")


def _node_label(node: DependencyNode) -> str:
    if node.status in MARKERS:
        return f"[{COLOR_ERROR}]{node.name}[/] [dim]{node.status}[/]"
    return f"[{COLOR_PKG}]{node.name}[/] [dim]v{node.version or '?'}[/]"


def _populate_textual_tree(
    tn: TreeNode,
    node: Any,
    *,
    depth: int = 0,
    max_depth: int = MAX_TREE_DEPTH,
    max_nodes: int = MAX_TREE_NODES,
    node_count: list[int] | None = None,
) -> None:
    """Recursively add DependencyNode children; cap depth and total nodes."""
    if node_count is None:
        node_count = [0]
    for child in getattr(node, "children", []):
        if node_count[0] >= max_nodes:
            tn.add_leaf(f"[dim]… truncated ({max_nodes} nodes max)[/]")
            return
        if depth >= max_depth:
            tn.add_leaf(f"[dim]{child.name} …[/]")
            continue
        node_count[0] += 1
        child_tn = tn.add(_node_label(child), expand=False)
        child_tn.data = child
        _populate_textual_tree(
            child_tn,
            child,
            depth=depth + 1,
            max_depth=max_depth,
            max_nodes=max_nodes,
            node_count=node_count,
        )


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


class SearchScreen(ModalScreen[str | None]):
    """Modal to search for packages in the tree. Keyboard-only."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
        padding: 2 4;
    }
    SearchScreen #search_title {
        text-align: center;
        padding-bottom: 1;
    }
    SearchScreen #search_input {
        width: 60;
        margin: 1 0;
    }
    SearchScreen #search_hint {
        text-align: center;
        padding-top: 1;
    }
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._input: Input | None = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(
                "[bold cyan]Search[/]\n\n"
                "Type a package name or partial match to find in the tree.",
                id="search_title",
                markup=True,
            )
            yield Input(
                placeholder="package name...",
                id="search_input",
            )
            yield Static(
                "[dim]Enter[/] = Search  ·  [dim]Escape[/] = Cancel\n"
                "[dim]After search: [bold]n[/bold] = next match, [bold]N[/bold] = previous[/]",
                id="search_hint",
                markup=True,
            )

    def on_mount(self) -> None:
        self._input = self.query_one("#search_input", Input)
        self._input.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search_input":
            return
        value = self._input.value.strip() if self._input else ""
        self.dismiss(value if value else None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class WorkspaceApp(App[None]):
    """Terminal UI to explore a workspace's dependency graph."""

    TITLE = "wsresolve"
    BINDINGS = [
        Binding("enter", "start_main", "Start", show=False),
        Binding("escape", "back", "Back", show=True),
        Binding("b", "back", "Back", show=False),
        Binding("/", "search", "Search"),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("d", "toggle_details", "Details"),
        Binding("w", "write", "Resolve & link"),
        Binding("r", "refresh", "Refresh"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    #welcome_container {
        align: center middle;
        width: 100%;
        height: 100%;
    }
    #welcome_banner {
        text-align: center;
        content-align: center middle;
        width: 100%;
    }
    #welcome_desc {
        text-align: center;
        padding: 2 4;
    }
    #welcome_hint {
        text-align: center;
        padding-top: 1;
    }
    #welcome_loading {
        text-align: center;
        padding-top: 1;
        display: none;
    }
    #welcome_loading.loading {
        display: block;
    }
    #welcome_loading LoadingIndicator {
        background: transparent;
    }
    #main_container {
        display: none;
    }
    #nav_hint {
        display: none;
        height: auto;
        padding: 0 1;
        margin-bottom: 1;
        color: $text-muted;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(self, config: ResolverConfig | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._config = config or ResolverConfig(workspace_root=Path.cwd())
        self._view: WorkspaceView | None = None
        self._view_error: str | None = None
        self._loading = False
        self._main_started = False
        self._root_package: str | None = None
        self._search_matches: list[TreeNode] = []
        self._search_index: int = 0
        self._details_visible: bool = True

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="welcome_container"):
            yield Static(WELCOME_BANNER, id="welcome_banner", markup=True)
            yield Static(WELCOME_DESC, id="welcome_desc", markup=True)
            yield Static(
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit",
                id="welcome_hint",
                markup=True,
            )
            with Container(id="welcome_loading"):
                yield LoadingIndicator()
                yield Static("[dim]Analyzing workspace...[/]", id="loading_text", markup=True)
        with Container(id="main_container"):
            yield Static(
                "[dim]← Press [bold]Esc[/bold] or [bold]b[/bold] to return to the workspace overview[/]",
                id="nav_hint",
            )
            yield Tree("Workspace", id="dep_tree")
            yield Static(
                "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]Esc[/]/[dim]b[/] = Back",
                id="details",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = str(self._config.workspace_root)
        self._start_analysis()

    def on_key(self, event: Any) -> None:
        """Enter on the welcome screen opens the main view."""
        if not self._main_started and event.key == "enter":
            event.prevent_default()
            event.stop()
            self.action_start_main()

    # Background work

    def _start_analysis(self) -> None:
        if self._loading:
            return
        self._loading = True
        self.query_one("#welcome_loading").add_class("loading")
        self.run_worker(
            self._analyze_worker,
            thread=True,
            name="analyze",
            group="analyze",
            exclusive=True,
            exit_on_error=False,
        )

    def _analyze_worker(self) -> WorkspaceView:
        return analyze_workspace(self._config)

    def _resolve_worker(self) -> RunResult:
        return run_resolution(self._config)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        name = event.worker.name
        if name == "analyze":
            if event.state == WorkerState.SUCCESS:
                self._view = event.worker.result
                self._view_error = None
            elif event.state == WorkerState.ERROR:
                self._view = None
                self._view_error = str(event.worker.error)
            else:
                return
            self._loading = False
            self._update_loading_status()
            if self._main_started:
                self._show_overview()
        elif name == "resolve":
            if event.state == WorkerState.SUCCESS:
                self._on_resolve_done(event.worker.result)
            elif event.state == WorkerState.ERROR:
                self.notify(f"Resolution crashed: {event.worker.error}", severity="error", timeout=4)

    def _update_loading_status(self) -> None:
        self.query_one("#welcome_loading").remove_class("loading")
        hint = self.query_one("#welcome_hint", Static)
        if self._view is not None:
            problems = len(self._view.validation.errors)
            status = "[green]✓[/] valid" if problems == 0 else f"[red]✗[/] {problems} problem(s)"
            hint.update(
                f"{len(self._view.graph.nodes)} packages  ·  {status}  ·  "
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit"
            )
        elif self._view_error:
            hint.update(f"[red]Error: {self._view_error}[/]  ·  [dim]q[/] to quit")

    def _on_resolve_done(self, result: RunResult) -> None:
        if result.success:
            links = result.links
            created = len(links.created) if links else 0
            self.notify(
                f"Resolved: {created} link(s), manifest {result.manifest_path or '(dry run)'}",
                severity="information",
                timeout=4,
            )
        else:
            self.notify(
                f"Resolution failed: {len(result.errors)} error(s)",
                severity="error",
                timeout=4,
            )
        self.action_refresh()

    # Views

    def action_start_main(self) -> None:
        """Transition from welcome screen to main view."""
        if self._main_started:
            return
        self._main_started = True
        self.query_one("#welcome_container").styles.display = "none"
        self.query_one("#main_container").styles.display = "block"
        self._show_overview()

    def _clear_tree(self, tree: Tree) -> None:
        while tree.root.children:
            tree.root.children[0].remove()

    def _show_overview(self) -> None:
        self._root_package = None
        self.query_one("#nav_hint").styles.display = "none"
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        tree.root.data = None

        if self._view is None:
            if self._loading:
                tree.root.label = f"[{COLOR_HEADER}]Analyzing workspace...[/]"
                self._set_details("[dim]Loading workspace definition in background...[/]")
            else:
                tree.root.label = f"[{COLOR_ERROR}]Workspace could not be loaded[/]"
                self._set_details(f"[red]{self._view_error or 'Unknown error'}[/]")
            tree.focus()
            return

        view = self._view
        tree.root.label = f"[{COLOR_HEADER}]{self._config.workspace_root.name}[/]"
        tree.root.expand()
        if view.validation.errors or view.warnings:
            problems = tree.root.add(
                f"[{COLOR_ERROR}]Problems ({len(view.validation.errors) + len(view.warnings)})[/]",
                expand=True,
            )
            for error in view.validation.errors:
                problems.add_leaf(f"[{COLOR_ERROR}]✗[/] {error}")
            for warning in view.warnings:
                problems.add_leaf(f"[{COLOR_WARNING}]![/] {warning}")

        if view.levels:
            order = tree.root.add(f"[{COLOR_HEADER}]Build order[/]", expand=True)
            for i, level in enumerate(view.levels):
                level_tn = order.add(f"[{COLOR_LEVEL}]Level {i}[/] [dim]({len(level)})[/]", expand=True)
                for name in level:
                    pkg = view.graph.nodes[name]
                    child = level_tn.add_leaf(f"[{COLOR_PKG}]{name}[/] [dim]v{pkg.version}[/]")
                    child.data = name
        else:
            packages = tree.root.add(f"[{COLOR_HEADER}]Packages[/]", expand=True)
            for name, pkg in view.graph.nodes.items():
                child = packages.add_leaf(f"[{COLOR_PKG}]{name}[/] [dim]v{pkg.version}[/]")
                child.data = name

        self._set_details(self._format_overview(view))
        tree.focus()

    def _format_overview(self, view: WorkspaceView) -> str:
        graph = view.graph
        status = (
            "[green]valid[/]"
            if view.validation.valid
            else f"[red]{len(view.validation.errors)} error(s)[/]"
        )
        lines = [
            f"[{COLOR_HEADER}]Workspace[/]",
            f"  [{COLOR_PATH}]{self._config.workspace_root}[/]",
            "",
            f"  Packages:      [{COLOR_STATS}]{len(graph.nodes)}[/]",
            f"  Dependencies:  [{COLOR_STATS}]{graph.edge_count}[/]",
            f"  Resolutions:   [{COLOR_STATS}]{len(graph.resolved_versions)}[/]",
            f"  Status:        {status}",
            f"  Last resolved: [{COLOR_PATH}]{_manifest_stamp(view.last_manifest)}[/]",
            "",
            "[dim]Enter[/] on a package = dependency tree  ·  [dim]w[/] = resolve & link  ·  [dim]r[/] = refresh",
        ]
        return "\n".join(lines)

    def _load_tree(self, root_package: str) -> None:
        if self._view is None:
            return
        node = build_dependency_tree(self._view.graph, root_package, max_depth=MAX_TREE_DEPTH)
        if node is None:
            self._set_details(f"Package not found: {root_package}")
            return
        self._root_package = root_package
        tree = self.query_one("#dep_tree", Tree)
        self._clear_tree(tree)
        tree.root.label = _node_label(node)
        tree.root.data = node
        _populate_textual_tree(tree.root, node)
        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)
        if _count_nodes(node) > MAX_TREE_NODES:
            self.notify(
                f"Tree truncated to {MAX_TREE_NODES} nodes",
                severity="warning",
                timeout=3,
            )
        self._set_details(self._format_node(node))
        self.query_one("#nav_hint").styles.display = "block"
        tree.focus()

    def _format_node(self, node: DependencyNode) -> str:
        direct, total_desc, max_depth = _node_stats(node)
        lines = [
            f"[{COLOR_HEADER}]Package[/]",
            f"  [{COLOR_PKG}]{node.name}[/]  [dim]v{node.version or '?'}[/]  [dim]{node.status}[/]",
            "",
            f"[{COLOR_HEADER}]Stats[/]",
            f"  Direct dependencies:   [{COLOR_STATS}]{direct}[/]",
            f"  Total descendants:     [{COLOR_STATS}]{total_desc}[/] [dim](indirect)[/]",
            f"  Max depth from here:  [{COLOR_STATS}]{max_depth}[/] [dim]levels[/]",
        ]
        pkg = node.package
        if pkg is not None and self._view is not None:
            if pkg.dependencies:
                lines += ["", f"[{COLOR_HEADER}]Dependencies[/]"]
                for dep, spec in pkg.dependencies.items():
                    lines.append(f"  {dep} [dim]{spec}[/]")
            dependents = self._view.graph.dependents_of(pkg.name)
            if dependents:
                lines += ["", f"[{COLOR_HEADER}]Used by[/]", "  " + ", ".join(dependents)]
            lines += [
                "",
                f"[{COLOR_HEADER}]Paths[/]",
                f"  Build output: [{COLOR_PATH}]{pkg.build_output_path}[/]",
                f"  Link:         [{COLOR_PATH}]{link_path_for(pkg, self._config.link_root)}[/]",
            ]
        return "\n".join(lines)

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        data = event.node.data
        if data is None:
            return
        if isinstance(data, DependencyNode):
            self._set_details(self._format_node(data))
        elif isinstance(data, str):
            self._load_tree(data)

    # Actions

    def action_back(self) -> None:
        """Return to the overview (only when viewing a tree)."""
        if not self._main_started or not self._root_package:
            return
        self._show_overview()

    def action_refresh(self) -> None:
        self._view = None
        self._start_analysis()
        if self._main_started:
            self._show_overview()

    def action_write(self) -> None:
        """Run a full resolution: refresh symlinks and write the manifest."""
        if not self._main_started:
            return
        self.notify("Resolving workspace...", severity="information", timeout=2)
        self.run_worker(
            self._resolve_worker,
            thread=True,
            name="resolve",
            group="resolve",
            exclusive=True,
            exit_on_error=False,
        )

    def action_expand_all(self) -> None:
        self.query_one("#dep_tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#dep_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()

    def action_search(self) -> None:
        """Open search modal."""
        if not self._main_started:
            return
        self.push_screen(SearchScreen(), self._on_search_done)

    def _on_search_done(self, query: str | None) -> None:
        if not query:
            return
        self._search_matches = []
        self._search_index = 0
        tree = self.query_one("#dep_tree", Tree)
        self._collect_matches(tree.root, query.lower())
        if not self._search_matches:
            self.notify(f"No matches for '{query}'", severity="warning", timeout=2)
            return
        self.notify(
            f"Found {len(self._search_matches)} match(es) for '{query}'",
            severity="information",
            timeout=2,
        )
        self._goto_match(0)

    def _collect_matches(self, node: TreeNode, query: str) -> None:
        """Recursively collect nodes matching the search query."""
        data = node.data
        name = data.name if isinstance(data, DependencyNode) else (data or "")
        if query in str(node.label).lower() or query in str(name).lower():
            self._search_matches.append(node)
        for child in node.children:
            self._collect_matches(child, query)

    def _goto_match(self, index: int) -> None:
        if not self._search_matches:
            return
        self._search_index = index % len(self._search_matches)
        match_node = self._search_matches[self._search_index]
        parent = match_node.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent
        tree = self.query_one("#dep_tree", Tree)
        tree.select_node(match_node)
        tree.scroll_to_node(match_node)
        self.notify(
            f"Match {self._search_index + 1}/{len(self._search_matches)}: {match_node.label}",
            severity="information",
            timeout=2,
        )

    def action_next_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index + 1)

    def action_prev_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index - 1)

    def action_toggle_details(self) -> None:
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"


def main() -> None:
    """Entry point for the wsresolve TUI."""
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()
    app = WorkspaceApp(config=ResolverConfig.from_env(root))
    app.run()


if __name__ == "__main__":
    main()
