"""wsresolve: resolve, validate and link the packages of a multi-package workspace (library, TUI, CLI)."""

from importlib.metadata import version, PackageNotFoundError

from wsresolve.api import (
    build_order,
    check_workspace,
    load_workspace,
    resolve_workspace,
    ResolverConfig,
    RunResult,
)

__all__ = [
    "build_order",
    "check_workspace",
    "load_workspace",
    "resolve_workspace",
    "ResolverConfig",
    "RunResult",
    "__version__",
]

try:
    __version__ = version("wsresolve")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"  # Not installed as package
