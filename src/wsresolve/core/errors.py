"""Exceptions raised by the resolution engine."""

from __future__ import annotations


class ResolverError(Exception):
    """Base class for fatal resolution errors."""


class ConfigError(ResolverError):
    """The workspace definition is missing, unreadable or malformed."""


class CycleError(ResolverError):
    """A dependency cycle was hit while computing the build order."""

    def __init__(self, package: str) -> None:
        super().__init__(f"Circular dependency detected involving {package}")
        self.package = package


class ManifestError(ResolverError):
    """The resolution manifest could not be serialized or written."""
