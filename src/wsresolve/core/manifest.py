"""Build and write the workspace resolution manifest."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from wsresolve.core.errors import ManifestError
from wsresolve.core.graph import DependencyGraph

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0.0"

# How workspace packages are consumed in each phase.
RESOLUTION_STRATEGY = {
    "development": "symlink",
    "build": "external",
    "publishing": "version",
}


def build_manifest(
    graph: DependencyGraph,
    build_order: list[str],
    *,
    generated: datetime | None = None,
) -> dict:
    """Assemble the manifest document for a resolved graph."""
    if generated is None:
        generated = datetime.now(timezone.utc)
    return {
        "version": MANIFEST_VERSION,
        "generated": generated.isoformat(),
        "strategy": dict(RESOLUTION_STRATEGY),
        "workspaces": [pkg.to_dict() for pkg in graph.nodes.values()],
        "resolutions": {
            f"{src}->{dst}": version for (src, dst), version in graph.resolved_versions.items()
        },
        "dependencyGraph": graph.to_dict(),
        "buildOrder": list(build_order),
    }


def write_manifest(manifest: dict, path: Path) -> Path:
    """
    Write manifest as JSON to path, replacing any previous manifest.

    The document goes to a temporary file next to path first and is then
    moved into place, so readers never see a partial manifest.

    Raises:
        ManifestError: if serialization or any filesystem step fails.
    """
    try:
        content = json.dumps(manifest, indent=2) + "\n"
    except (TypeError, ValueError) as e:
        raise ManifestError(f"Cannot serialize manifest: {e}") from e

    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise ManifestError(f"Cannot write manifest {path}: {e}") from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    logger.info("Generated workspace resolution manifest: %s", path)
    return path


def read_manifest(path: Path) -> dict | None:
    """Load a previously written manifest, or None if there is none or it is unreadable."""
    if not path.exists() or not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable manifest %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None
