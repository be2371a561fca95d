"""
Read package metadata out of nupkg archives.

A nupkg is a zip file. Its `_rels/.rels` descriptor points at the nuspec
manifest, whose `<metadata>` block becomes the package record.
"""
from __future__ import annotations

import io
import logging
import zipfile
import zlib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Union

import aiofiles

from chocolatey_server.domain.errors import ExtractionError, ManifestNotFoundError
from chocolatey_server.domain.models import PackageDependency, PackageMetadata

logger = logging.getLogger(__name__)

RELS_PATH = "_rels/.rels"
MANIFEST_RELATIONSHIP_SUFFIX = "/manifest"

# Reserved key for the raw archive bytes in the extracted mapping.
NUPKG_DATA_KEY = "nupkgData"

# Elements whose children are themselves containers, e.g.
#   <dependencies><group targetFramework="..."><dependency .../></group></dependencies>
_CONTAINER_CHILDREN = {"group"}


def _local_name(tag: str) -> str:
    """Strip the `{namespace}` prefix ElementTree puts on qualified tags."""
    return tag.rsplit("}", 1)[-1]


def _find_manifest_path(zip_ref: zipfile.ZipFile, source: str) -> str:
    rels_root = ET.fromstring(zip_ref.read(RELS_PATH))
    for element in rels_root:
        if _local_name(element.tag) != "Relationship":
            continue
        if element.get("Type", "").endswith(MANIFEST_RELATIONSHIP_SUFFIX):
            # Archive-internal paths may carry a leading slash.
            return element.get("Target", "").lstrip("/")
    raise ManifestNotFoundError(source)


def _element_value(element: ET.Element) -> Union[str, List[Dict[str, str]]]:
    """
    Convert one child of `<metadata>` to a plain value.

    Elements with children become a list of their children's attributes:
        <dependencies><dependency id="foo" version="bar"/></dependencies>
    becomes
        [{"id": "foo", "version": "bar"}]
    Anything else is the element's text.
    """
    children = list(element)
    if not children:
        return element.text or ""

    items: List[Dict[str, str]] = []
    for child in children:
        grandchildren = list(child)
        if grandchildren and _local_name(child.tag) in _CONTAINER_CHILDREN:
            items.extend(dict(grandchild.attrib) for grandchild in grandchildren)
        else:
            items.append(dict(child.attrib))
    return items


def extract_metadata(data: bytes, source: Union[str, Path]) -> Dict[str, Any]:
    """
    Extract the nuspec metadata block from in-memory archive bytes.

    Returns a mapping of field name to value (string or list of attribute
    mappings), with the complete archive bytes under NUPKG_DATA_KEY.
    """
    source = str(source)
    try:
        with zipfile.ZipFile(io.BytesIO(data), "r") as zip_ref:
            manifest_path = _find_manifest_path(zip_ref, source)
            manifest_root = ET.fromstring(zip_ref.read(manifest_path))
    except (
        zipfile.BadZipFile,
        zlib.error,
        KeyError,
        EOFError,
        ET.ParseError,
        OSError,
        NotImplementedError,
        RuntimeError,
    ) as e:
        # RuntimeError: encrypted member; NotImplementedError: unsupported compression.
        raise ExtractionError(source, str(e)) from e

    metadata_element = None
    for child in manifest_root:
        if _local_name(child.tag) == "metadata":
            metadata_element = child
            break
    if metadata_element is None:
        raise ExtractionError(source, f"no <metadata> element in {manifest_path}")

    metadata: Dict[str, Any] = {}
    for element in metadata_element:
        # Comments and processing instructions have non-string tags.
        if not isinstance(element.tag, str):
            continue
        metadata[_local_name(element.tag)] = _element_value(element)

    metadata[NUPKG_DATA_KEY] = data
    return metadata


def build_package_metadata(raw: Dict[str, Any], source: Union[str, Path] = "<memory>") -> PackageMetadata:
    """
    Turn an extracted (or catalog-supplied) mapping into a PackageMetadata.

    Known manifest fields map onto model attributes; the rest land in `extra`.
    """
    known = set()
    for name, field in PackageMetadata.model_fields.items():
        known.add(name)
        if field.alias:
            known.add(field.alias)
    known.discard("extra")

    fields: Dict[str, Any] = {}
    extra: Dict[str, Any] = dict(raw.get("extra") or {})
    for key, value in raw.items():
        if key == NUPKG_DATA_KEY:
            fields["nupkg_data"] = value
        elif key == "extra":
            continue
        elif key in known:
            fields[key] = value
        else:
            extra[key] = value

    deps = fields.get("dependencies")
    if isinstance(deps, str):
        # An empty <dependencies/> element extracts as text.
        fields["dependencies"] = []
    elif deps:
        fields["dependencies"] = [
            PackageDependency(**dep) for dep in deps if isinstance(dep, dict) and dep.get("id")
        ]

    if not fields.get("id"):
        raise ExtractionError(source, "manifest has no <id>")

    try:
        return PackageMetadata(**fields, extra=extra)
    except ValueError as e:
        raise ExtractionError(source, str(e)) from e


def read_package_metadata(path: Union[str, Path]) -> PackageMetadata:
    """
    Read package metadata from a nupkg file on disk.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ExtractionError(path, str(e)) from e
    return build_package_metadata(extract_metadata(data, path), path)


async def load_package_metadata(path: Union[str, Path]) -> PackageMetadata:
    """
    Async variant of read_package_metadata(); the file read goes through aiofiles.
    """
    path = Path(path)
    logger.debug(f"Reading package archive {path}")
    try:
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
    except OSError as e:
        raise ExtractionError(path, str(e)) from e
    return build_package_metadata(extract_metadata(data, path), path)
