"""Resolve placeholder version specifiers to the sibling package's version."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

from wsresolve.core.config import DEFAULT_PLACEHOLDER
from wsresolve.core.graph import DependencyGraph
from wsresolve.core.parser import PLACEHOLDER_PREFIX, is_placeholder

logger = logging.getLogger(__name__)

# Range-style placeholders keep their operator in front of the sibling version.
_RANGE_PLACEHOLDERS = {
    f"{PLACEHOLDER_PREFIX}^": "^",
    f"{PLACEHOLDER_PREFIX}~": "~",
}


@dataclass
class ResolutionResult:
    """A resolved copy of the graph plus non-fatal problems found on the way."""

    graph: DependencyGraph
    warnings: list[str] = field(default_factory=list)

    @property
    def resolutions(self) -> dict[str, str]:
        """Resolved versions keyed "<dependent>-><dependency>"."""
        return {f"{src}->{dst}": v for (src, dst), v in self.graph.resolved_versions.items()}


def resolve_specifier(spec: str, sibling_version: str, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """
    Concrete specifier for a placeholder given the sibling's current version.

    "workspace:*" gives the version itself, "workspace:^" and "workspace:~"
    prefix it with the range operator, and "workspace:<version>" pins the
    version written after the prefix.
    """
    spec = spec.strip()
    if spec == placeholder or spec == f"{PLACEHOLDER_PREFIX}*":
        return sibling_version
    if spec in _RANGE_PLACEHOLDERS:
        return _RANGE_PLACEHOLDERS[spec] + sibling_version
    if spec.startswith(PLACEHOLDER_PREFIX):
        pinned = spec[len(PLACEHOLDER_PREFIX):].strip()
        return pinned or sibling_version
    return sibling_version


def resolve_placeholders(
    graph: DependencyGraph,
    *,
    placeholder: str = DEFAULT_PLACEHOLDER,
) -> ResolutionResult:
    """
    Replace placeholder dependency specifiers with concrete versions.

    Returns a new graph; the input graph and its packages are left untouched.
    Each resolved (dependent, dependency) pair is recorded in
    resolved_versions. Concrete specifiers are copied as they are and not
    recorded. A placeholder naming a package that is not in the graph is kept
    unresolved and reported as a warning.
    """
    resolved = DependencyGraph(
        edges={name: list(deps) for name, deps in graph.edges.items()},
        resolved_versions=dict(graph.resolved_versions),
    )
    warnings: list[str] = []

    for name, pkg in graph.nodes.items():
        deps: dict[str, str] = {}
        for dep_name, spec in pkg.dependencies.items():
            if not is_placeholder(spec, placeholder):
                deps[dep_name] = spec
                continue
            sibling = graph.nodes.get(dep_name)
            if sibling is None:
                message = f"Cannot resolve {name} -> {dep_name} ({spec}): package not in workspace"
                logger.warning(message)
                warnings.append(message)
                deps[dep_name] = spec
                continue
            version = resolve_specifier(spec, sibling.version, placeholder)
            deps[dep_name] = version
            resolved.resolved_versions[(name, dep_name)] = version
            logger.debug("Resolved %s -> %s@%s", name, dep_name, version)
        resolved.nodes[name] = dataclasses.replace(pkg, dependencies=deps)

    logger.info("Resolved %d workspace dependencies", len(resolved.resolved_versions))
    return ResolutionResult(graph=resolved, warnings=warnings)
