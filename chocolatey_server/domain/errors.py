"""Exceptions raised while loading packages and serving feed requests."""

from __future__ import annotations

from pathlib import Path
from typing import Union


class ChocolateyServerError(Exception):
    """Base class for all errors raised by this package."""


# ---------------------------------------------------------------------------
# Load-time errors (fatal: serving without metadata is meaningless)
# ---------------------------------------------------------------------------


class ExtractionError(ChocolateyServerError):
    """Reading or parsing a package archive failed."""

    def __init__(self, source: Union[str, Path], reason: str):
        self.source = str(source)
        self.reason = reason
        super().__init__(f"Unable to read package {self.source}: {reason}")


class ManifestNotFoundError(ExtractionError):
    """The archive has no relationship pointing at a nuspec manifest."""

    def __init__(self, source: Union[str, Path]):
        super().__init__(source, "unable to locate nupkg manifest")


class DuplicatePackageError(ChocolateyServerError):
    """Two loaded packages share the same identifier."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"Duplicate package id: {package_id}")


class CatalogError(ChocolateyServerError):
    """The catalog of externally hosted packages could not be loaded."""


# ---------------------------------------------------------------------------
# Request-time errors (contained to a single request)
# ---------------------------------------------------------------------------


class UnrecognizedFilterError(ChocolateyServerError):
    """The `$filter` expression matches neither supported shape."""

    def __init__(self, expression: str):
        self.expression = expression
        super().__init__(f"Unrecognized filter: {expression!r}")


class PackageNotFoundError(ChocolateyServerError):
    """No locally hosted archive exists for the requested id."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        super().__init__(f"Package not found: {package_id}")
