from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import aiofiles

from chocolatey_server.core.config import ServerSettings
from chocolatey_server.domain.entities import PackageFeed
from chocolatey_server.domain.errors import CatalogError, ExtractionError
from chocolatey_server.domain.models import PackageMetadata
from chocolatey_server.services.feed_renderer import FeedRenderer, FeedTemplates, load_templates
from chocolatey_server.services.normalizer import normalize_packages, normalize_prefix
from chocolatey_server.services.nupkg_reader import build_package_metadata, load_package_metadata

logger = logging.getLogger(__name__)


async def load_packages(paths: Iterable[Union[str, Path]]) -> List[PackageMetadata]:
    """
    Read every archive concurrently. The first failure aborts the load.
    """
    return list(await asyncio.gather(*(load_package_metadata(p) for p in paths)))


async def load_catalog(path: Union[str, Path]) -> List[PackageMetadata]:
    """
    Load a JSON list of packages hosted elsewhere.

    Each object uses manifest field names and must carry an explicit `url`.
    """
    path = Path(path)
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            raw = json.loads(await f.read())
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Unable to read catalog {path}: {e}") from e

    if not isinstance(raw, list):
        raise CatalogError(f"Catalog {path} must contain a JSON list")

    packages: List[PackageMetadata] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise CatalogError(f"Catalog {path} entry {index} is not an object")
        try:
            entry = build_package_metadata(item, path)
        except ExtractionError as e:
            raise CatalogError(f"Catalog {path} entry {index}: {e.reason}") from e
        if not entry.url:
            raise CatalogError(f"Catalog {path} entry {entry.id} has no url")
        packages.append(entry)
    return packages


def build_feed(
    packages: Iterable[PackageMetadata],
    templates: FeedTemplates,
    prefix: str = "/",
) -> PackageFeed:
    """
    Normalize `packages` for `prefix` and wrap them in a PackageFeed.

    Raises DuplicatePackageError if two packages share an id.
    """
    prefix = normalize_prefix(prefix)
    return PackageFeed(normalize_packages(prefix, packages), FeedRenderer(templates, prefix))


async def load_feed(settings: ServerSettings, extra_packages: Optional[Iterable[PackageMetadata]] = None) -> PackageFeed:
    """
    Load everything the server needs before it starts taking requests.
    """
    packages = await load_packages(settings.package_paths)
    if settings.catalog_path:
        packages.extend(await load_catalog(settings.catalog_path))
    if extra_packages:
        packages.extend(extra_packages)

    templates = await load_templates(settings.template_dir)
    feed = build_feed(packages, templates, settings.prefix)

    for entry in feed.packages:
        logger.info(f"Loaded package {entry.id} {entry.version} ({'hosted' if entry.is_hosted else entry.url})")
    logger.info(f"Serving {len(feed)} package(s) under {feed.prefix}")
    return feed
