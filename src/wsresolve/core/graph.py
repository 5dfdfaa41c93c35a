"""Build the workspace dependency graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from wsresolve.core.config import DEFAULT_PLACEHOLDER
from wsresolve.core.parser import WorkspacePackage, is_placeholder

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """Workspace packages (nodes) and their intra-workspace dependencies (edges)."""

    nodes: dict[str, WorkspacePackage] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)
    resolved_versions: dict[tuple[str, str], str] = field(default_factory=dict)

    @property
    def edge_count(self) -> int:
        return sum(len(deps) for deps in self.edges.values())

    def dependencies_of(self, name: str) -> list[str]:
        return list(self.edges.get(name, []))

    def dependents_of(self, name: str) -> list[str]:
        """Names of nodes with an edge to name, in node order."""
        return [src for src, deps in self.edges.items() if name in deps]

    def to_dict(self) -> dict:
        """Node list and edge lists, as stored in the manifest."""
        return {
            "nodes": list(self.nodes),
            "edges": {name: list(deps) for name, deps in self.edges.items()},
        }


def _is_workspace_dependency(
    dep_name: str,
    spec: str,
    names: set[str],
    scope: str | None,
    placeholder: str,
) -> bool:
    if dep_name in names:
        return True
    if scope and dep_name.startswith(scope):
        return True
    return is_placeholder(spec, placeholder)


def build_dependency_graph(
    packages: list[WorkspacePackage],
    *,
    scope: str | None = None,
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> DependencyGraph:
    """
    Build a graph with one node per package and edges for workspace dependencies.

    A dependency is a workspace edge when its name is a workspace member or its
    specifier is a placeholder. When scope is given (e.g. "@acme/"), any name
    under that scope also counts. A missing sibling therefore surfaces as an
    unknown edge during validation instead of being dropped as external.
    Never raises.
    """
    graph = DependencyGraph()
    for pkg in packages:
        graph.nodes[pkg.name] = pkg
    names = set(graph.nodes)
    for pkg in packages:
        deps: list[str] = []
        for dep_name, spec in pkg.dependencies.items():
            if dep_name in deps:
                continue
            if _is_workspace_dependency(dep_name, spec, names, scope, placeholder):
                deps.append(dep_name)
        graph.edges[pkg.name] = deps

    logger.info("Discovered %d workspace packages", len(graph.nodes))
    logger.info("Found %d cross-workspace dependencies", graph.edge_count)
    return graph
