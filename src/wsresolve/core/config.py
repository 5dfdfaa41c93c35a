"""Resolver configuration and workspace definition loading."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wsresolve.core.errors import ConfigError

DEFAULT_CONFIG_FILE = "workspace-config.json"
DEFAULT_MANIFEST_FILE = "workspace-resolution-manifest.json"
DEFAULT_LINK_DIR = "node_modules"
DEFAULT_PLACEHOLDER = "workspace:*"

_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ResolverConfig:
    """Explicit paths and switches for one resolution run."""

    workspace_root: Path
    link_root: Path | None = None
    manifest_path: Path | None = None
    config_file: Path | None = None
    placeholder: str = DEFAULT_PLACEHOLDER
    workspace_scope: str | None = None
    strict_versions: bool = True
    dry_run: bool = False

    def __post_init__(self) -> None:
        self.workspace_root = Path(self.workspace_root).resolve()
        if self.link_root is None:
            self.link_root = self.workspace_root / DEFAULT_LINK_DIR
        if self.manifest_path is None:
            self.manifest_path = self.workspace_root / DEFAULT_MANIFEST_FILE
        if self.config_file is None:
            self.config_file = self.workspace_root / DEFAULT_CONFIG_FILE
        self.link_root = self._anchor(self.link_root)
        self.manifest_path = self._anchor(self.manifest_path)
        self.config_file = self._anchor(self.config_file)

    def _anchor(self, path: Path | str) -> Path:
        """Relative paths are taken relative to the workspace root."""
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = self.workspace_root / p
        return p

    @classmethod
    def from_env(cls, workspace_root: Path | str, **overrides: Any) -> ResolverConfig:
        """
        Build a config for workspace_root, honoring WSRESOLVE_* environment variables.

        Keyword overrides whose value is not None win over the environment.
        """
        values: dict[str, Any] = {}
        for env, key in (
            ("WSRESOLVE_LINK_ROOT", "link_root"),
            ("WSRESOLVE_MANIFEST", "manifest_path"),
            ("WSRESOLVE_CONFIG", "config_file"),
        ):
            raw = os.environ.get(env, "").strip()
            if raw:
                values[key] = Path(raw)
        scope = os.environ.get("WSRESOLVE_SCOPE", "").strip()
        if scope:
            values["workspace_scope"] = scope
        strict = os.environ.get("WSRESOLVE_STRICT_VERSIONS", "").strip().lower()
        if strict:
            values["strict_versions"] = strict not in _FALSE_VALUES
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(workspace_root=Path(workspace_root), **values)


def load_workspace_definition(path: Path) -> dict[str, dict[str, Any]]:
    """
    Read a workspace definition file and return the workspaces mapping.

    The file holds either {"workspaces": {key: {...}}} or the mapping itself.
    Raises ConfigError if the file is missing, is not JSON, or has the wrong shape.
    """
    if not path.exists() or not path.is_file():
        raise ConfigError(f"Workspace definition not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read workspace definition {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if isinstance(data, dict) and "workspaces" in data:
        data = data["workspaces"]
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping of workspaces")
    return data
