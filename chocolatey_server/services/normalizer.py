"""
Derive template-ready fields from raw package metadata.
"""
from __future__ import annotations

import logging
from typing import Iterable, List

from chocolatey_server.domain.models import PackageDependency, PackageMetadata

logger = logging.getLogger(__name__)

# Replaced by the request's scheme and host right before a response is sent,
# so the server never needs to be configured with its own address.
URL_ROOT_PLACEHOLDER = "{FEED_URL_ROOT}"


def normalize_prefix(prefix: str) -> str:
    """
    Route prefixes always start and end with a slash.
    """
    if not prefix.startswith("/"):
        prefix = "/" + prefix
    if not prefix.endswith("/"):
        prefix += "/"
    return prefix


def flatten_dependencies(dependencies: Iterable[PackageDependency]) -> str:
    """
    The feed's dependency format combines id and version, each followed by a
    colon, with multiple dependencies separated by pipes: `a:1.0:|b::`.
    """
    return "|".join(dep.flatten() for dep in dependencies)


def parse_flat_dependencies(flat: str) -> List[PackageDependency]:
    """
    Inverse of flatten_dependencies().
    """
    deps: List[PackageDependency] = []
    if not flat:
        return deps
    for segment in flat.split("|"):
        dep_id, _, rest = segment.partition(":")
        version = rest[:-1] if rest.endswith(":") else rest
        deps.append(PackageDependency(id=dep_id, version=version or None))
    return deps


def pad_tags(tags: str) -> str:
    """
    Clients expect tags with both a leading and a trailing space, which also
    lets whole tags be found with a plain substring test.
    """
    return f" {tags} " if tags else ""


def download_url(prefix: str, package_id: str) -> str:
    return f"{URL_ROOT_PLACEHOLDER}{prefix}download/{package_id}"


def normalize_package(prefix: str, entry: PackageMetadata) -> PackageMetadata:
    updates = {
        "flat_deps": flatten_dependencies(entry.dependencies),
        "flat_tags": pad_tags(entry.tags),
    }

    # Locally hosted archives get a URL pointing back at this server.
    # Packages hosted elsewhere keep their explicit URL.
    if entry.is_hosted:
        updates["url"] = download_url(prefix, entry.id)
    elif not entry.url:
        logger.warning(f"Package {entry.id} has neither archive data nor a URL; it cannot be downloaded")

    return entry.model_copy(update=updates)


def normalize_packages(prefix: str, packages: Iterable[PackageMetadata]) -> List[PackageMetadata]:
    """
    Return normalized copies of `packages`, in the same order.

    Deterministic and idempotent for a given prefix.
    """
    prefix = normalize_prefix(prefix)
    return [normalize_package(prefix, entry) for entry in packages]
