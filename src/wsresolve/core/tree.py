"""Build and represent dependency trees rooted at workspace packages."""

from __future__ import annotations

from dataclasses import dataclass, field

from wsresolve.core.graph import DependencyGraph
from wsresolve.core.parser import WorkspacePackage

CYCLE = "(cycle)"
NOT_FOUND = "(not found)"
MARKERS = (CYCLE, NOT_FOUND)


@dataclass
class DependencyNode:
    """A node in the dependency tree: one workspace package and its direct children."""

    name: str
    version: str
    status: str
    path: str
    children: list[DependencyNode] = field(default_factory=list)
    # Optional: the package the node was built from
    package: WorkspacePackage | None = None

    def to_dict(self) -> dict:
        """Serialize node to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "status": self.status,
            "path": str(self.path),
            "children": [c.to_dict() for c in self.children],
        }


def build_dependency_tree(
    graph: DependencyGraph,
    root_package: str,
    *,
    max_depth: int | None = None,
    _depth: int = 0,
    _visited: set[str] | None = None,
) -> DependencyNode | None:
    """
    Build a dependency tree for root_package from a workspace graph.

    Edges to packages outside the workspace become "(not found)" leaves and a
    package already on the current path becomes a "(cycle)" leaf, so the tree
    can be shown even for graphs that fail validation.

    Args:
        graph: Workspace dependency graph.
        root_package: Name of the package at the root.
        max_depth: Optional max depth; None means no limit.
        _depth: Internal recursion depth.
        _visited: Internal set of package names on the current path.

    Returns:
        DependencyNode for the root, or None if max_depth is exceeded.
    """
    if _visited is None:
        _visited = set()
    if root_package in _visited:
        return DependencyNode(name=root_package, version="", status=CYCLE, path="")
    if max_depth is not None and _depth > max_depth:
        return None

    pkg = graph.nodes.get(root_package)
    if pkg is None:
        return DependencyNode(name=root_package, version="", status=NOT_FOUND, path="")

    _visited.add(root_package)
    children: list[DependencyNode] = []
    for dep in graph.edges.get(root_package, []):
        child = build_dependency_tree(
            graph,
            dep,
            max_depth=max_depth,
            _depth=_depth + 1,
            _visited=_visited,
        )
        if child is not None:
            children.append(child)
    _visited.discard(root_package)

    return DependencyNode(
        name=pkg.name,
        version=pkg.version,
        status="built" if pkg.build_output_path.exists() else "not built",
        path=str(pkg.build_output_path),
        children=children,
        package=pkg,
    )


def root_packages(graph: DependencyGraph) -> list[str]:
    """Packages no other workspace package depends on, in node order.

    Falls back to every node when all of them are depended on (a cycle).
    """
    depended = {dep for deps in graph.edges.values() for dep in deps}
    roots = [name for name in graph.nodes if name not in depended]
    return roots or list(graph.nodes)


def build_workspace_trees(
    graph: DependencyGraph,
    *,
    max_depth: int | None = None,
) -> list[DependencyNode]:
    """One tree per root package."""
    trees: list[DependencyNode] = []
    for name in root_packages(graph):
        tree = build_dependency_tree(graph, name, max_depth=max_depth)
        if tree is not None:
            trees.append(tree)
    return trees
