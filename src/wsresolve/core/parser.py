"""Parse a workspace definition into WorkspacePackage records."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wsresolve.core.config import DEFAULT_PLACEHOLDER
from wsresolve.core.errors import ConfigError

# Build outputs live here unless an entry says otherwise.
BUILD_OUTPUT_DIR = Path("dist") / "workspaces"

PLACEHOLDER_PREFIX = "workspace:"


@dataclass
class WorkspacePackage:
    """One workspace member as declared in the workspace definition."""

    name: str
    version: str
    entry_point: str
    source_path: Path
    build_output_path: Path
    dependencies: dict[str, str] = field(default_factory=dict)
    workspace_key: str = ""

    def __post_init__(self) -> None:
        self.source_path = Path(self.source_path)
        self.build_output_path = Path(self.build_output_path)

    @property
    def scope(self) -> str:
        """Scope part of a scoped name ("@acme" for "@acme/core"), else ""."""
        if self.name.startswith("@") and "/" in self.name:
            return self.name.split("/", 1)[0]
        return ""

    @property
    def base_name(self) -> str:
        """Name without its scope ("core" for "@acme/core")."""
        if self.scope:
            return self.name.split("/", 1)[1]
        return self.name

    def to_dict(self) -> dict:
        """Package summary in manifest form."""
        return {
            "name": self.name,
            "version": self.version,
            "main": self.entry_point,
            "dependencies": dict(self.dependencies),
            "buildOutput": str(self.build_output_path),
        }


def is_placeholder(spec: str, placeholder: str = DEFAULT_PLACEHOLDER) -> bool:
    """True if spec asks for the sibling package's version instead of naming one."""
    spec = spec.strip()
    return spec == placeholder or spec.startswith(PLACEHOLDER_PREFIX)


def is_valid_package_name(name: str) -> bool:
    """
    True for "name" or "@scope/name" with non-empty segments.

    Names become link paths, so "." and ".." segments, extra slashes and
    backslashes are rejected.
    """
    if "\\" in name:
        return False
    parts = name.split("/")
    if name.startswith("@"):
        if len(parts) != 2 or parts[0] == "@":
            return False
        parts = [parts[0][1:], parts[1]]
    elif len(parts) != 1:
        return False
    return all(part and part not in (".", "..") for part in parts)


def _entry_path(raw: Any, workspace_root: Path, default: Path) -> Path:
    if not raw:
        return default
    p = Path(str(raw)).expanduser()
    return p if p.is_absolute() else workspace_root / p


def parse_workspace_entry(
    key: str,
    entry: Any,
    workspace_root: Path,
) -> tuple[WorkspacePackage | None, list[str]]:
    """
    Parse one workspace entry; return (package, problems).

    The package is None when the entry is unusable. Problems are
    human-readable and name the workspace key.
    """
    if not isinstance(entry, dict):
        return None, [f"Workspace '{key}': entry must be a mapping"]
    problems: list[str] = []
    name = str(entry.get("name") or "").strip()
    version = str(entry.get("version") or "").strip()
    if not name:
        problems.append(f"Workspace '{key}': missing package name")
    elif not is_valid_package_name(name):
        problems.append(f"Workspace '{key}': invalid package name {name!r}")
    if not version:
        problems.append(f"Workspace '{key}': missing version")
    raw_deps = entry.get("dependencies") or {}
    if not isinstance(raw_deps, dict):
        problems.append(f"Workspace '{key}': dependencies must be a mapping")
        raw_deps = {}
    deps: dict[str, str] = {}
    for dep_name, spec in raw_deps.items():
        dep_name = str(dep_name).strip()
        if not dep_name:
            problems.append(f"Workspace '{key}': empty dependency name")
            continue
        deps[dep_name] = str(spec).strip()
    if problems:
        return None, problems

    default_out = workspace_root / BUILD_OUTPUT_DIR / key
    return (
        WorkspacePackage(
            name=name,
            version=version,
            entry_point=str(entry.get("main") or ""),
            source_path=_entry_path(entry.get("sourcePath"), workspace_root, default_out),
            build_output_path=_entry_path(entry.get("buildOutput"), workspace_root, default_out),
            dependencies=deps,
            workspace_key=key,
        ),
        [],
    )


def parse_workspace_definition(
    definition: dict[str, Any],
    workspace_root: Path,
) -> list[WorkspacePackage]:
    """
    Turn a workspaces mapping into packages, keeping definition order.

    Raises ConfigError listing every malformed entry and every duplicate name.
    """
    packages: list[WorkspacePackage] = []
    problems: list[str] = []
    seen: dict[str, str] = {}
    for key, entry in definition.items():
        pkg, entry_problems = parse_workspace_entry(str(key), entry, workspace_root)
        problems.extend(entry_problems)
        if pkg is None:
            continue
        if pkg.name in seen:
            problems.append(
                f"Workspace '{key}': package name {pkg.name} already used by '{seen[pkg.name]}'"
            )
            continue
        seen[pkg.name] = str(key)
        packages.append(pkg)
    if problems:
        raise ConfigError("; ".join(problems))
    return packages
