"""Compute a dependency-respecting build order (topological sort)."""

from __future__ import annotations

from collections.abc import Iterator

from wsresolve.core.errors import CycleError
from wsresolve.core.graph import DependencyGraph

_VISITING = 1
_DONE = 2


def _known_deps(graph: DependencyGraph, name: str) -> Iterator[str]:
    return (dep for dep in graph.edges.get(name, []) if dep in graph.nodes)


def compute_build_order(graph: DependencyGraph) -> list[str]:
    """
    Return package names so that every package follows all of its dependencies.

    Post-order depth-first traversal with an explicit stack; nodes are visited
    in insertion order and dependencies in edge order, so the result is
    reproducible. Edges to unknown packages are ignored.

    Raises:
        CycleError: if a node is re-entered while still on the traversal path.
            Only validated, acyclic graphs should be passed in.
    """
    order: list[str] = []
    state: dict[str, int] = {}
    for root in graph.nodes:
        if root in state:
            continue
        state[root] = _VISITING
        stack: list[tuple[str, Iterator[str]]] = [(root, _known_deps(graph, root))]
        while stack:
            name, deps = stack[-1]
            for dep in deps:
                seen = state.get(dep)
                if seen == _VISITING:
                    raise CycleError(dep)
                if seen is None:
                    state[dep] = _VISITING
                    stack.append((dep, _known_deps(graph, dep)))
                    break
            else:
                stack.pop()
                state[name] = _DONE
                order.append(name)
    return order


def compute_build_levels(graph: DependencyGraph) -> list[list[str]]:
    """
    Group the build order into levels.

    Level 0 holds packages without workspace dependencies; every other package
    sits one level above its deepest dependency. Packages within a level do not
    depend on each other.
    """
    level: dict[str, int] = {}
    for name in compute_build_order(graph):
        level[name] = 1 + max((level[dep] for dep in _known_deps(graph, name)), default=-1)
    levels: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
    for name, n in level.items():
        levels[n].append(name)
    return levels
