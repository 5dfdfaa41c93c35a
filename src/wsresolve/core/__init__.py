"""Core library: workspace parsing, dependency graph, validation, resolution, linking, manifest."""

from wsresolve.core.config import ResolverConfig, load_workspace_definition
from wsresolve.core.engine import RunResult, load_graph, run_resolution
from wsresolve.core.errors import ConfigError, CycleError, ManifestError, ResolverError
from wsresolve.core.graph import DependencyGraph, build_dependency_graph
from wsresolve.core.linker import LinkReport, sync_links
from wsresolve.core.manifest import build_manifest, read_manifest, write_manifest
from wsresolve.core.order import compute_build_levels, compute_build_order
from wsresolve.core.parser import WorkspacePackage, parse_workspace_definition
from wsresolve.core.resolver import ResolutionResult, resolve_placeholders
from wsresolve.core.tree import DependencyNode, build_dependency_tree, build_workspace_trees
from wsresolve.core.validator import ValidationResult, validate_graph

__all__ = [
    "ResolverConfig",
    "load_workspace_definition",
    "RunResult",
    "load_graph",
    "run_resolution",
    "ConfigError",
    "CycleError",
    "ManifestError",
    "ResolverError",
    "DependencyGraph",
    "build_dependency_graph",
    "LinkReport",
    "sync_links",
    "build_manifest",
    "read_manifest",
    "write_manifest",
    "compute_build_levels",
    "compute_build_order",
    "WorkspacePackage",
    "parse_workspace_definition",
    "ResolutionResult",
    "resolve_placeholders",
    "DependencyNode",
    "build_dependency_tree",
    "build_workspace_trees",
    "ValidationResult",
    "validate_graph",
]
