"""Public API: use wsresolve from Python or from other tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from wsresolve.core.config import ResolverConfig
from wsresolve.core.engine import RunResult, load_graph, run_resolution
from wsresolve.core.graph import DependencyGraph
from wsresolve.core.order import compute_build_levels, compute_build_order
from wsresolve.core.validator import ValidationResult, validate_graph


def _config(workspace_root: Path | str | ResolverConfig, **overrides: Any) -> ResolverConfig:
    if isinstance(workspace_root, ResolverConfig):
        return workspace_root
    return ResolverConfig.from_env(workspace_root, **overrides)


def load_workspace(
    workspace_root: Path | str | ResolverConfig,
    *,
    definition: dict[str, Any] | None = None,
) -> DependencyGraph:
    """
    Load the dependency graph of a workspace without validating it.

    Reads workspace-config.json under workspace_root unless definition
    (an already parsed workspaces mapping) is given.
    Raises ConfigError if the definition is missing or malformed.
    """
    return load_graph(_config(workspace_root), definition)


def check_workspace(
    workspace_root: Path | str | ResolverConfig,
    *,
    definition: dict[str, Any] | None = None,
    strict_versions: bool | None = None,
) -> ValidationResult:
    """
    Validate a workspace: unknown dependencies, cycles and version policy.

    strict_versions=False downgrades version mismatches to warnings; None
    keeps the configured default (strict unless WSRESOLVE_STRICT_VERSIONS=0).
    """
    config = _config(workspace_root, strict_versions=strict_versions)
    graph = load_graph(config, definition)
    return validate_graph(graph, strict_versions=config.strict_versions)


def build_order(
    workspace_root: Path | str | ResolverConfig,
    *,
    definition: dict[str, Any] | None = None,
    levels: bool = False,
) -> list[str] | list[list[str]]:
    """
    Compute the build order of a workspace.

    Returns a flat list of package names, or a list of levels if levels=True.
    Raises CycleError if the workspace has a dependency cycle.
    """
    graph = load_graph(_config(workspace_root), definition)
    if levels:
        return compute_build_levels(graph)
    return compute_build_order(graph)


def resolve_workspace(
    workspace_root: Path | str | ResolverConfig,
    *,
    definition: dict[str, Any] | None = None,
    link_root: Path | None = None,
    manifest_path: Path | None = None,
    strict_versions: bool | None = None,
    dry_run: bool | None = None,
) -> RunResult:
    """
    Run a full resolution: validate, resolve placeholders, link, write manifest.

    Args:
        workspace_root: Workspace root directory, or a ready ResolverConfig
            (the keyword overrides are then ignored).
        definition: Already parsed workspaces mapping; read from disk if None.
        link_root: Linked-packages root (default <root>/node_modules).
        manifest_path: Manifest file (default <root>/workspace-resolution-manifest.json).
        strict_versions: Treat version mismatches as errors (default True).
        dry_run: Compute everything but leave symlinks and manifest untouched.

    Returns:
        RunResult; check .success, .errors and .warnings.
    """
    config = _config(
        workspace_root,
        link_root=link_root,
        manifest_path=manifest_path,
        strict_versions=strict_versions,
        dry_run=dry_run,
    )
    return run_resolution(config, definition)
