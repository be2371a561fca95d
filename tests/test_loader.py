import asyncio
import json
from pathlib import Path

import pytest

from chocolatey_server.core.config import ServerSettings
from chocolatey_server.data.loader import load_catalog, load_feed
from chocolatey_server.domain.errors import CatalogError, DuplicatePackageError, ExtractionError


def write_catalog(path: Path, entries) -> Path:
    path.write_text(json.dumps(entries), encoding="utf-8")
    return path


def test_load_feed_keeps_argument_order(nupkg_factory):
    paths = [nupkg_factory("zeta"), nupkg_factory("alpha"), nupkg_factory("mid")]
    feed = asyncio.run(load_feed(ServerSettings(package_paths=paths, prefix="feed")))

    assert [entry.id for entry in feed.packages] == ["zeta", "alpha", "mid"]
    assert feed.prefix == "/feed/"
    assert feed.packages[0].url == "{FEED_URL_ROOT}/feed/download/zeta"


def test_load_feed_rejects_duplicates(nupkg_factory, tmp_path: Path):
    first = nupkg_factory("same", version="1.0.0")
    second = nupkg_factory("same", version="2.0.0")
    with pytest.raises(DuplicatePackageError):
        asyncio.run(load_feed(ServerSettings(package_paths=[first, second])))


def test_load_feed_propagates_extraction_errors(tmp_path: Path):
    broken = tmp_path / "broken.nupkg"
    broken.write_bytes(b"garbage")
    with pytest.raises(ExtractionError):
        asyncio.run(load_feed(ServerSettings(package_paths=[broken])))


def test_catalog_packages_are_served_by_url(nupkg_factory, tmp_path: Path):
    catalog = write_catalog(tmp_path / "catalog.json", [
        {
            "id": "remote",
            "version": "3.1",
            "summary": "Hosted on a CDN",
            "projectUrl": "https://example.com",
            "dependencies": [{"id": "local"}],
            "url": "https://cdn.example.com/remote.3.1.nupkg",
        }
    ])
    settings = ServerSettings(package_paths=[nupkg_factory("local")], catalog_path=catalog)
    feed = asyncio.run(load_feed(settings))

    local, remote = feed.packages
    assert local.is_hosted
    assert not remote.is_hosted
    assert remote.url == "https://cdn.example.com/remote.3.1.nupkg"
    assert remote.project_url == "https://example.com"
    assert remote.flat_deps == "local::"


def test_catalog_entry_without_url(tmp_path: Path):
    catalog = write_catalog(tmp_path / "catalog.json", [{"id": "nourl"}])
    with pytest.raises(CatalogError):
        asyncio.run(load_catalog(catalog))


def test_catalog_must_be_a_list(tmp_path: Path):
    catalog = write_catalog(tmp_path / "catalog.json", {"id": "x"})
    with pytest.raises(CatalogError):
        asyncio.run(load_catalog(catalog))


def test_unreadable_catalog(tmp_path: Path):
    catalog = tmp_path / "catalog.json"
    catalog.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError):
        asyncio.run(load_catalog(catalog))


def test_catalog_accepts_native_json_scalars(tmp_path: Path):
    catalog = write_catalog(tmp_path / "catalog.json", [
        {
            "id": "typed",
            "version": 2,
            "requireLicenseAcceptance": True,
            "url": "https://cdn.example.com/typed.nupkg",
        },
        {"id": "other", "requireLicenseAcceptance": False, "url": "https://cdn.example.com/other.nupkg"},
    ])
    typed, other = asyncio.run(load_catalog(catalog))
    assert typed.version == "2"
    assert typed.require_license_acceptance == "true"
    assert other.require_license_acceptance == "false"
