"""Validate a workspace dependency graph: unknown packages, cycles, version policy."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from wsresolve.core.graph import DependencyGraph

logger = logging.getLogger(__name__)

_VISITING = 1
_DONE = 2


@dataclass
class ValidationResult:
    """Outcome of validate_graph. Errors are fatal, warnings are not."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "cycles": [list(c) for c in self.cycles],
        }


def find_unknown_dependencies(graph: DependencyGraph) -> list[tuple[str, str]]:
    """Return (dependent, missing) pairs for edges whose target is not a node."""
    return [
        (name, dep)
        for name, deps in graph.edges.items()
        for dep in deps
        if dep not in graph.nodes
    ]


def _canonical_cycle(path: list[str]) -> list[str]:
    """Rotate a closed path (first == last) to start at its smallest member."""
    members = path[:-1]
    start = members.index(min(members))
    rotated = members[start:] + members[:start]
    return rotated + [rotated[0]]


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """
    Find dependency cycles with an iterative three-state depth-first search.

    Every node is visited (insertion order), so disjoint cycles are all found.
    Each cycle is a closed path such as ["A", "B", "C", "A"], rotated to start
    at its smallest member and reported once.
    """
    cycles: list[list[str]] = []
    seen_cycles: set[tuple[str, ...]] = set()
    state: dict[str, int] = {}

    def deps_of(name: str) -> Iterator[str]:
        return (dep for dep in graph.edges.get(name, []) if dep in graph.nodes)

    for root in graph.nodes:
        if root in state:
            continue
        state[root] = _VISITING
        path: list[str] = [root]
        stack: list[Iterator[str]] = [deps_of(root)]
        while stack:
            for dep in stack[-1]:
                seen = state.get(dep)
                if seen == _VISITING:
                    cycle = _canonical_cycle(path[path.index(dep):] + [dep])
                    key = tuple(cycle)
                    if key not in seen_cycles:
                        seen_cycles.add(key)
                        cycles.append(cycle)
                    continue
                if seen is None:
                    state[dep] = _VISITING
                    path.append(dep)
                    stack.append(deps_of(dep))
                    break
            else:
                stack.pop()
                state[path.pop()] = _DONE
    return cycles


def collect_versions(graph: DependencyGraph) -> list[str]:
    """Distinct package versions in first-seen order."""
    return list(dict.fromkeys(pkg.version for pkg in graph.nodes.values()))


def validate_graph(
    graph: DependencyGraph,
    *,
    strict_versions: bool = True,
) -> ValidationResult:
    """
    Check a graph and collect every problem rather than stopping at the first.

    Unknown dependency targets and cycles are always errors. A version-policy
    violation (packages not sharing one version) is an error when
    strict_versions is True and a warning otherwise.

    Raises:
        TypeError: if graph is None.
    """
    if graph is None:
        raise TypeError("validate_graph() requires a DependencyGraph, got None")

    result = ValidationResult()
    for name, dep in find_unknown_dependencies(graph):
        result.errors.append(f"{name} depends on unknown package {dep}")

    result.cycles = find_cycles(graph)
    for cycle in result.cycles:
        result.errors.append(f"Circular dependency: {' -> '.join(cycle)}")

    versions = collect_versions(graph)
    if len(versions) > 1:
        message = f"Version mismatch across workspaces: {', '.join(versions)}"
        if strict_versions:
            result.errors.append(message)
        else:
            result.warnings.append(message)

    if result.valid:
        logger.info("Dependency graph validation passed")
    else:
        logger.error("Dependency graph validation failed:")
        for error in result.errors:
            logger.error("  - %s", error)
    for warning in result.warnings:
        logger.warning(warning)
    return result
