"""Maintain development symlinks from the linked-packages root to build outputs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from wsresolve.core.graph import DependencyGraph
from wsresolve.core.parser import WorkspacePackage, is_valid_package_name

logger = logging.getLogger(__name__)


@dataclass
class LinkReport:
    """What sync_links did for each package, by package name."""

    created: dict[str, Path] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    preserved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "created": {name: str(p) for name, p in self.created.items()},
            "skipped": list(self.skipped),
            "preserved": list(self.preserved),
            "failed": list(self.failed),
            "warnings": list(self.warnings),
        }


def link_path_for(pkg: WorkspacePackage, link_root: Path) -> Path:
    """Link location for a package: <link_root>/<scope>/<base_name>."""
    if pkg.scope:
        return link_root / pkg.scope / pkg.base_name
    return link_root / pkg.base_name


def _inside_link_root(link: Path, link_root: Path) -> bool:
    """True if link sits at or below link_root once ".." segments are resolved."""
    if link.name in ("", ".", ".."):
        return False
    root = link_root.resolve()
    parent = link.parent.resolve()
    return parent == root or root in parent.parents


def _warn(report: LinkReport, name: str, message: str) -> None:
    logger.warning(message)
    report.warnings.append(message)
    report.failed.append(name)


def sync_links(
    graph: DependencyGraph,
    link_root: Path,
    *,
    dry_run: bool = False,
) -> LinkReport:
    """
    Point <link_root>/<scope>/<name> at each package's build output.

    Existing symlinks are replaced. Regular files and directories in the way
    are left alone with a warning. Packages whose build output does not exist
    yet are skipped with a warning. Packages whose name would put the link
    outside link_root are refused. Failures for one package are reported as
    warnings and do not stop the others. With dry_run, nothing on disk changes.
    """
    report = LinkReport()
    for name, pkg in graph.nodes.items():
        link = link_path_for(pkg, link_root)
        if not is_valid_package_name(name) or not _inside_link_root(link, link_root):
            _warn(report, name, f"Refusing to link {name}: {link} is outside {link_root}")
            continue
        target = pkg.build_output_path.resolve()

        if link.is_symlink():
            if not dry_run:
                try:
                    link.unlink()
                except OSError as e:
                    _warn(report, name, f"Failed to remove existing symlink {link}: {e}")
                    continue
        elif link.exists():
            message = f"Not replacing {link}: it is a regular file or directory, not a symlink"
            logger.warning(message)
            report.warnings.append(message)
            report.preserved.append(name)
            continue

        if not target.exists():
            message = f"Skipping {name}: build output {target} does not exist (run the build first)"
            logger.warning(message)
            report.warnings.append(message)
            report.skipped.append(name)
            continue

        if dry_run:
            report.created[name] = link
            continue
        try:
            link.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(target, link, target_is_directory=target.is_dir())
        except OSError as e:
            _warn(report, name, f"Failed to create symlink for {name}: {e}")
            continue
        report.created[name] = link
        logger.debug("Created symlink: %s -> %s", link, target)

    logger.info("Created %d development symlinks", len(report.created))
    return report
