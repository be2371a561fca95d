import pytest

from chocolatey_server.domain.models import PackageDependency, PackageMetadata
from chocolatey_server.services.normalizer import (
    URL_ROOT_PLACEHOLDER,
    flatten_dependencies,
    normalize_packages,
    normalize_prefix,
    pad_tags,
    parse_flat_dependencies,
)


@pytest.mark.parametrize(
    "prefix, expected",
    [("/", "/"), ("", "/"), ("choco", "/choco/"), ("/choco", "/choco/"), ("choco/", "/choco/")],
)
def test_normalize_prefix(prefix, expected):
    assert normalize_prefix(prefix) == expected


def test_flatten_dependencies():
    deps = [PackageDependency(id="a", version="1.0"), PackageDependency(id="b")]
    assert flatten_dependencies(deps) == "a:1.0:|b::"
    assert flatten_dependencies([]) == ""


@pytest.mark.parametrize("flat", ["", "a::", "a:1.0:", "a:1.0:|b::|c:[2.0,3.0):"])
def test_flattened_dependencies_reflatten_identically(flat):
    assert flatten_dependencies(parse_flat_dependencies(flat)) == flat


@pytest.mark.parametrize(
    "tags, expected",
    [("", ""), ("foo", " foo "), ("foo bar", " foo bar ")],
)
def test_pad_tags(tags, expected):
    assert pad_tags(tags) == expected


def test_hosted_package_gets_deferred_download_url():
    entry = PackageMetadata(id="foo", tags="a b", nupkg_data=b"zip",
                            dependencies=[PackageDependency(id="bar", version="2")])
    (normalized,) = normalize_packages("choco", [entry])

    assert normalized.url == f"{URL_ROOT_PLACEHOLDER}/choco/download/foo"
    assert normalized.flat_deps == "bar:2:"
    assert normalized.flat_tags == " a b "
    # Normalization returns new records.
    assert entry.url is None
    assert entry.flat_tags == ""


def test_external_package_keeps_explicit_url():
    entry = PackageMetadata(id="ext", url="https://cdn.example.com/ext.nupkg")
    (normalized,) = normalize_packages("/", [entry])
    assert normalized.url == "https://cdn.example.com/ext.nupkg"


def test_normalization_is_idempotent():
    entries = [
        PackageMetadata(id="foo", tags="x", nupkg_data=b"1"),
        PackageMetadata(id="bar", url="https://example.com/bar.nupkg"),
    ]
    once = normalize_packages("/feed/", entries)
    twice = normalize_packages("/feed/", once)
    assert once == twice
    assert [e.id for e in once] == ["foo", "bar"]
