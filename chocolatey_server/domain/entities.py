from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from chocolatey_server.domain.errors import (
    DuplicatePackageError,
    PackageNotFoundError,
    UnrecognizedFilterError,
)
from chocolatey_server.domain.models import FilterQuery, PackageMetadata
from chocolatey_server.domain.odata_filters import parse_filter
from chocolatey_server.services.feed_renderer import FeedRenderer

logger = logging.getLogger(__name__)


class PackageFeed:
    """
    The read-only set of packages served under one route prefix, together
    with the renderer for its feed documents.

    Built once at startup; request handlers only read from it. Reloading
    means building a new PackageFeed and swapping it in whole.
    """

    def __init__(self, packages: Sequence[PackageMetadata], renderer: FeedRenderer):
        self.packages: List[PackageMetadata] = list(packages)
        self.renderer = renderer
        self._by_id: Dict[str, PackageMetadata] = {}
        for entry in self.packages:
            if entry.id in self._by_id:
                raise DuplicatePackageError(entry.id)
            self._by_id[entry.id] = entry

    @property
    def prefix(self) -> str:
        return self.renderer.prefix

    def __len__(self) -> int:
        return len(self.packages)

    def find_by_id(self, package_id: str) -> List[PackageMetadata]:
        """Exact, case-sensitive id match (FindPackagesById)."""
        entry = self._by_id.get(package_id)
        return [entry] if entry else []

    def find_by_id_insensitive(self, package_id: str) -> List[PackageMetadata]:
        """Id match for `tolower(Id) eq '...'` filters."""
        wanted = package_id.lower()
        return [entry for entry in self.packages if entry.id.lower() == wanted]

    def search(self, substring: str) -> List[PackageMetadata]:
        """
        Case-insensitive substring search over id and summary, plus whole-tag
        matching against the padded tag string.
        """
        needle = substring.lower()
        tag_needle = f" {needle.strip()} "
        return [
            entry
            for entry in self.packages
            if needle in entry.id.lower()
            or needle in entry.summary.lower()
            or tag_needle in entry.flat_tags.lower()
        ]

    def query(self, query: FilterQuery) -> List[PackageMetadata]:
        if query.kind == "exact_id":
            matched = self.find_by_id_insensitive(query.term)
            logger.debug(f"Name filter {query.term!r} matched {[e.id for e in matched]}")
            return matched
        if query.kind == "substring":
            matched = self.search(query.term)
            logger.debug(f"Search filter {query.term!r} matched {[e.id for e in matched]}")
            return matched
        raise UnrecognizedFilterError(query.term or "")

    def query_filter(self, expression: Optional[str]) -> List[PackageMetadata]:
        """
        Interpret a raw `$filter` value and return the matching packages.

        Raises UnrecognizedFilterError for anything but the two supported shapes.
        """
        query = parse_filter(expression)
        if not query.recognized:
            raise UnrecognizedFilterError(expression or "")
        return self.query(query)

    def get_archive(self, package_id: str) -> bytes:
        entry = self._by_id.get(package_id)
        if entry is None or entry.nupkg_data is None:
            raise PackageNotFoundError(package_id)
        return entry.nupkg_data
