"""Command-line interface for wsresolve: resolve, check, order and visualize workspace dependencies."""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import subprocess
import sys
from pathlib import Path

from wsresolve.core.config import ResolverConfig
from wsresolve.core.engine import load_graph, run_resolution
from wsresolve.core.errors import ResolverError
from wsresolve.core.graph import DependencyGraph
from wsresolve.core.order import compute_build_levels, compute_build_order
from wsresolve.core.tree import MARKERS, DependencyNode, build_workspace_trees, root_packages


def _configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def _config_from_args(args: argparse.Namespace) -> ResolverConfig:
    """Resolve --root once and build the run configuration (flags beat WSRESOLVE_* env)."""
    return ResolverConfig.from_env(
        Path(getattr(args, "root", None) or ".").resolve(),
        link_root=Path(args.link_root) if getattr(args, "link_root", None) else None,
        manifest_path=Path(args.manifest) if getattr(args, "manifest", None) else None,
        config_file=Path(args.config) if getattr(args, "config", None) else None,
        workspace_scope=getattr(args, "scope", None),
        strict_versions=False if getattr(args, "lenient_versions", False) else None,
        dry_run=True if getattr(args, "dry_run", False) else None,
    )


def _load_graph_or_report(args: argparse.Namespace) -> DependencyGraph | None:
    try:
        return load_graph(_config_from_args(args))
    except ResolverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def _print_errors(errors: list[str], warnings: list[str]) -> None:
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)
    for error in errors:
        print(f"error: {error}", file=sys.stderr)


def _print_tree_text(node: DependencyNode, indent: int = 0, prefix: str = "") -> None:
    """Print a dependency tree as indented text."""
    marker = "├── " if prefix else ""
    version = f" ({node.version})" if node.version else ""
    status = f" [{node.status}]" if node.status in MARKERS else ""
    print(f"{prefix}{marker}{node.name}{version}{status}")

    children = node.children
    for i, child in enumerate(children):
        is_last = i == len(children) - 1
        child_prefix = prefix + ("    " if is_last or not prefix else "│   ")
        _print_tree_text(child, indent + 1, child_prefix if prefix else "    ")


def cmd_resolve(args: argparse.Namespace) -> int:
    """Resolve workspace dependencies, refresh links, write the manifest."""
    config = _config_from_args(args)
    result = run_resolution(config)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    if not result.success:
        _print_errors(result.errors, result.warnings)
        print("Dependency resolution failed.", file=sys.stderr)
        return 1
    if not args.json:
        _print_errors([], result.warnings)
        links = result.links
        print(f"Resolved {len(result.graph.nodes) if result.graph else 0} workspace package(s)")
        if links is not None:
            print(
                f"  Links: {len(links.created)} created, {len(links.skipped)} not built, "
                f"{len(links.preserved)} preserved, {len(links.failed)} failed"
            )
        if result.manifest_path:
            print(f"  Manifest: {result.manifest_path}")
        elif config.dry_run:
            print("  Manifest: (dry run, not written)")
        print("  Build order: " + " -> ".join(result.build_order))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Validate the workspace without linking or writing anything."""
    result = run_resolution(_config_from_args(args), check_only=True)
    if args.json:
        payload = result.validation.to_dict() if result.validation else {
            "valid": False,
            "errors": result.errors,
            "warnings": result.warnings,
            "cycles": [],
        }
        print(json.dumps(payload, indent=2))
        return 0 if result.success else 1
    _print_errors(result.errors, result.warnings)
    if not result.success:
        print(f"Found {len(result.errors)} problem(s).", file=sys.stderr)
        return 1
    print("Workspace is valid.")
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    """Print the build order."""
    graph = _load_graph_or_report(args)
    if graph is None:
        return 1
    try:
        order = compute_build_levels(graph) if args.levels else compute_build_order(graph)
    except ResolverError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(order, indent=2))
    elif args.levels:
        for i, level in enumerate(order):
            print(f"Level {i}: {', '.join(level)}")
    else:
        for i, name in enumerate(order, start=1):
            print(f"  {i}. {name}")
    return 0


def cmd_tree(args: argparse.Namespace) -> int:
    """Show the workspace dependency trees."""
    graph = _load_graph_or_report(args)
    if graph is None:
        return 1
    trees = build_workspace_trees(graph, max_depth=args.depth)
    if not trees:
        print("No workspace packages found.", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([t.to_dict() for t in trees], indent=2))
    else:
        for tree in trees:
            _print_tree_text(tree)
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from wsresolve.tui.app import WorkspaceApp

    app = WorkspaceApp(config=_config_from_args(args))
    app.run()
    return 0


def _collect_edges(graph: DependencyGraph) -> set[tuple[str, str]]:
    """All (dependent, dependency) edges between known workspace packages."""
    return {
        (name, dep)
        for name, deps in graph.edges.items()
        for dep in deps
        if dep in graph.nodes
    }


def _generate_dot(
    graph: DependencyGraph,
    title: str | None = None,
    highlight_roots: bool = True,
) -> str:
    """Generate DOT (Graphviz) format from a workspace graph."""
    lines = [
        "digraph dependencies {",
        "    rankdir=LR;",
        '    node [shape=box, style=rounded, fontname="sans-serif"];',
    ]
    if title:
        lines.insert(1, f'    label="{title}";')
        lines.insert(2, "    labelloc=t;")

    roots = set(root_packages(graph)) if highlight_roots else set()
    for name, pkg in graph.nodes.items():
        label = f"{name}\\nv{pkg.version}"
        if name in roots:
            lines.append(f'    "{name}" [label="{label}", style="rounded,filled", fillcolor=lightblue];')
        else:
            lines.append(f'    "{name}" [label="{label}"];')

    for parent, child in sorted(_collect_edges(graph)):
        lines.append(f'    "{parent}" -> "{child}";')

    lines.append("}")
    return "\n".join(lines)


def _generate_mermaid(
    graph: DependencyGraph,
    title: str | None = None,
    highlight_roots: bool = True,
) -> str:
    """Generate Mermaid format from a workspace graph."""
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    roots = set(root_packages(graph)) if highlight_roots else set()
    for name, pkg in graph.nodes.items():
        lines.append(f'    {_mermaid_id(name)}["{name}<br/>v{pkg.version}"]')
        if name in roots:
            lines.append(f"    style {_mermaid_id(name)} fill:#lightblue")

    for parent, child in sorted(_collect_edges(graph)):
        lines.append(f"    {_mermaid_id(parent)} --> {_mermaid_id(child)}")

    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert a package name to a valid Mermaid node ID."""
    # Replace characters that are problematic in Mermaid
    return name.lstrip("@").replace("/", "__").replace("-", "_").replace(".", "_")


def _check_graphviz() -> bool:
    """Check if Graphviz (dot) is available."""
    return shutil.which("dot") is not None


def _render_dot(dot_content: str, output_path: Path, format: str) -> bool:
    """Render DOT content to an image file using Graphviz."""
    if not _check_graphviz():
        print(
            "Error: Graphviz not found. Install it with:\n"
            "  Ubuntu/Debian: sudo apt install graphviz\n"
            "  macOS: brew install graphviz\n"
            "  Or download from: https://graphviz.org/download/",
            file=sys.stderr,
        )
        return False

    try:
        result = subprocess.run(
            ["dot", f"-T{format}", "-o", str(output_path)],
            input=dot_content,
            capture_output=True,
            text=True,
            timeout=60,
        )
        if result.returncode != 0:
            print(f"Graphviz error: {result.stderr}", file=sys.stderr)
            return False
        return True
    except subprocess.TimeoutExpired:
        print("Error: Graphviz timed out (graph may be too large)", file=sys.stderr)
        return False
    except OSError as e:
        print(f"Error running Graphviz: {e}", file=sys.stderr)
        return False


def cmd_graph(args: argparse.Namespace) -> int:
    """Generate a dependency graph in DOT or Mermaid format."""
    graph = _load_graph_or_report(args)
    if graph is None:
        return 1
    if not graph.nodes:
        print("No workspace packages found.", file=sys.stderr)
        return 1

    if args.no_title:
        title = None
    else:
        title = f"Workspace: {Path(getattr(args, 'root', None) or '.').resolve().name}"

    if args.format == "mermaid":
        output = _generate_mermaid(graph, title=title)
    else:  # dot
        output = _generate_dot(graph, title=title)

    render_format = getattr(args, "render", None)
    if render_format:
        if args.format == "mermaid":
            print(
                "Error: --render only works with DOT format (not mermaid). "
                "Remove -f mermaid or use mermaid.live for rendering.",
                file=sys.stderr,
            )
            return 1
        if args.output:
            out_path = Path(args.output)
            if out_path.suffix.lower() != f".{render_format}":
                out_path = out_path.with_suffix(f".{render_format}")
        else:
            out_path = Path(f"workspace_deps.{render_format}")

        print(f"Rendering graph to {out_path}...", file=sys.stderr)
        if not _render_dot(output, out_path, render_format):
            return 1
        print(f"Graph image saved to: {out_path}", file=sys.stderr)
        return 0

    if args.output:
        Path(args.output).write_text(output)
        print(f"Graph written to: {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def _add_workspace_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        metavar="PATH",
        default=".",
        help="Workspace root directory (default: current directory)",
    )
    p.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Workspace definition file (default: <root>/workspace-config.json)",
    )
    p.add_argument(
        "--scope",
        metavar="PREFIX",
        help="Treat every dependency under this scope (e.g. @acme/) as a workspace package",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log warnings and errors",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the wsresolve CLI."""
    parser = argparse.ArgumentParser(
        prog="wsresolve",
        description="Resolve and link the packages of a multi-package workspace.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # wsresolve resolve
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve workspace dependencies, link packages and write the manifest",
        description=(
            "Validate the workspace graph, resolve workspace:* versions, refresh "
            "development symlinks and write the resolution manifest."
        ),
    )
    _add_workspace_args(resolve_parser)
    resolve_parser.add_argument(
        "--link-root",
        metavar="PATH",
        help="Linked packages directory (default: <root>/node_modules)",
    )
    resolve_parser.add_argument(
        "-m",
        "--manifest",
        metavar="FILE",
        help="Manifest path (default: <root>/workspace-resolution-manifest.json)",
    )
    resolve_parser.add_argument(
        "--lenient-versions",
        action="store_true",
        help="Report differing package versions as a warning instead of an error",
    )
    resolve_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Compute everything but do not touch symlinks or the manifest",
    )
    resolve_parser.add_argument(
        "--json",
        action="store_true",
        help="Output the run result as JSON",
    )
    resolve_parser.set_defaults(func=cmd_resolve)

    # wsresolve check
    check_parser = subparsers.add_parser(
        "check",
        help="Validate the workspace dependency graph",
        description="Report unknown dependencies, cycles and version mismatches.",
    )
    _add_workspace_args(check_parser)
    check_parser.add_argument(
        "--lenient-versions",
        action="store_true",
        help="Report differing package versions as a warning instead of an error",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    check_parser.set_defaults(func=cmd_check)

    # wsresolve order
    order_parser = subparsers.add_parser(
        "order",
        help="Print the build order",
        description="Print workspace packages so that dependencies come first.",
    )
    _add_workspace_args(order_parser)
    order_parser.add_argument(
        "-l",
        "--levels",
        action="store_true",
        help="Group packages into levels that can be built together",
    )
    order_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    order_parser.set_defaults(func=cmd_order)

    # wsresolve tree
    tree_parser = subparsers.add_parser(
        "tree",
        help="Show workspace dependency trees",
        description="Show one dependency tree per top-level workspace package.",
    )
    _add_workspace_args(tree_parser)
    tree_parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=None,
        help="Maximum tree depth (default: unlimited)",
    )
    tree_parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )
    tree_parser.set_defaults(func=cmd_tree)

    # wsresolve graph
    graph_parser = subparsers.add_parser(
        "graph",
        help="Generate a dependency graph (DOT/Mermaid format)",
        description="Generate a visual dependency graph of the workspace packages.",
    )
    _add_workspace_args(graph_parser)
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
    graph_parser.add_argument(
        "--render",
        choices=["png", "svg", "pdf"],
        metavar="FORMAT",
        help="Render to image (png, svg, pdf). Requires Graphviz installed.",
    )
    graph_parser.set_defaults(func=cmd_graph)

    # wsresolve tui
    tui_parser = subparsers.add_parser(
        "tui",
        help="Launch the interactive terminal UI",
        description="Browse packages, build order and resolution problems interactively.",
    )
    _add_workspace_args(tui_parser)
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    _configure_logging(args)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
