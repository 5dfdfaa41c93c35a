"""Run the resolution stages end to end: build, validate, resolve, link, write."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wsresolve.core.config import ResolverConfig, load_workspace_definition
from wsresolve.core.errors import ResolverError
from wsresolve.core.graph import DependencyGraph, build_dependency_graph
from wsresolve.core.linker import LinkReport, sync_links
from wsresolve.core.manifest import build_manifest, write_manifest
from wsresolve.core.order import compute_build_order
from wsresolve.core.parser import parse_workspace_definition
from wsresolve.core.resolver import resolve_placeholders
from wsresolve.core.validator import ValidationResult, validate_graph

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one resolution run."""

    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    graph: DependencyGraph | None = None
    validation: ValidationResult | None = None
    build_order: list[str] = field(default_factory=list)
    links: LinkReport | None = None
    manifest: dict | None = None
    manifest_path: Path | None = None
    duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "buildOrder": list(self.build_order),
            "links": self.links.to_dict() if self.links else None,
            "manifestPath": str(self.manifest_path) if self.manifest_path else None,
            "durationMs": round(self.duration_ms, 2),
        }


def load_graph(
    config: ResolverConfig,
    definition: dict[str, Any] | None = None,
) -> DependencyGraph:
    """
    Build the (unvalidated) graph for a workspace.

    Reads config.config_file when no definition is given.

    Raises:
        ConfigError: if the definition cannot be loaded or parsed.
    """
    if definition is None:
        definition = load_workspace_definition(config.config_file)
    packages = parse_workspace_definition(definition, config.workspace_root)
    return build_dependency_graph(
        packages,
        scope=config.workspace_scope,
        placeholder=config.placeholder,
    )


def log_summary(result: RunResult) -> None:
    """Log counts, build order and dependency relationships of a finished run."""
    graph = result.graph
    if graph is None:
        return
    logger.info("=" * 60)
    logger.info("DEPENDENCY RESOLUTION SUMMARY")
    logger.info("=" * 60)
    logger.info("Workspaces: %d", len(graph.nodes))
    logger.info("Dependencies: %d", graph.edge_count)
    logger.info("Resolutions: %d", len(graph.resolved_versions))
    if result.build_order:
        logger.info("Build order:")
        for i, name in enumerate(result.build_order, start=1):
            logger.info("  %d. %s", i, name)
    for name, deps in graph.edges.items():
        if deps:
            logger.info("  %s depends on: %s", name, ", ".join(deps))
    logger.info("=" * 60)


def run_resolution(
    config: ResolverConfig,
    definition: dict[str, Any] | None = None,
    *,
    check_only: bool = False,
) -> RunResult:
    """
    Resolve a workspace and return the outcome instead of raising.

    Stages run in order and a fatal problem stops the remaining ones:
    configuration errors, validation errors (unknown packages, cycles, and
    version mismatches unless config.strict_versions is off) and manifest
    write failures all produce success=False. Unresolvable placeholders and
    link failures are collected as warnings. With check_only the run stops
    after validation.
    """
    start = time.perf_counter()
    result = RunResult(success=False)

    def finish() -> RunResult:
        result.duration_ms = (time.perf_counter() - start) * 1000
        return result

    try:
        logger.info("Analyzing workspace dependencies in %s", config.workspace_root)
        graph = load_graph(config, definition)
        result.graph = graph

        logger.info("Validating dependency graph...")
        validation = validate_graph(graph, strict_versions=config.strict_versions)
        result.validation = validation
        result.warnings.extend(validation.warnings)
        if not validation.valid:
            result.errors.extend(validation.errors)
            return finish()

        result.build_order = compute_build_order(graph)
        if check_only:
            result.success = True
            return finish()

        logger.info("Resolving placeholder dependencies...")
        resolution = resolve_placeholders(graph, placeholder=config.placeholder)
        result.graph = resolution.graph
        result.warnings.extend(resolution.warnings)

        logger.info("Creating development symlinks in %s", config.link_root)
        result.links = sync_links(resolution.graph, config.link_root, dry_run=config.dry_run)
        result.warnings.extend(result.links.warnings)

        result.manifest = build_manifest(resolution.graph, result.build_order)
        if config.dry_run:
            logger.info("Dry run: manifest not written")
        else:
            result.manifest_path = write_manifest(result.manifest, config.manifest_path)
    except ResolverError as e:
        logger.error("Dependency resolution failed: %s", e)
        result.errors.append(str(e))
        return finish()

    result.success = True
    finish()
    logger.info("Dependency resolution completed in %.0fms", result.duration_ms)
    log_summary(result)
    return result
