import asyncio
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from chocolatey_server.core.dependencies import set_feed
from chocolatey_server.services.feed_renderer import load_templates

NUSPEC_NS = "http://schemas.microsoft.com/packaging/2015/06/nuspec.xsd"
RELS_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
MANIFEST_TYPE = "http://schemas.microsoft.com/packaging/2010/07/manifest"


def nuspec_xml(fields: Dict[str, str], dependencies: Optional[List[Tuple[str, Optional[str]]]] = None) -> str:
    parts = [f"<{name}>{value}</{name}>" for name, value in fields.items()]
    if dependencies is not None:
        deps = []
        for dep_id, version in dependencies:
            attrs = f'id="{dep_id}"' + (f' version="{version}"' if version else "")
            deps.append(f"<dependency {attrs} />")
        parts.append("<dependencies>" + "".join(deps) + "</dependencies>")
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<package xmlns="{NUSPEC_NS}">\n'
        "  <metadata>\n    " + "\n    ".join(parts) + "\n  </metadata>\n"
        "</package>\n"
    )


def rels_xml(target: str, rel_type: str = MANIFEST_TYPE) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        f'<Relationships xmlns="{RELS_NS}">\n'
        f'  <Relationship Type="{rel_type}" Target="{target}" Id="R1" />\n'
        "</Relationships>\n"
    )


def write_nupkg(
    path: Path,
    package_id: str,
    version: str = "1.0.0",
    extra_fields: Optional[Dict[str, str]] = None,
    dependencies: Optional[List[Tuple[str, Optional[str]]]] = None,
    rels: Optional[str] = None,
) -> Path:
    fields = {"id": package_id, "version": version}
    fields.update(extra_fields or {})
    nuspec_name = f"{package_id}.nuspec"
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("_rels/.rels", rels if rels is not None else rels_xml(f"/{nuspec_name}"))
        zf.writestr(nuspec_name, nuspec_xml(fields, dependencies))
        zf.writestr("tools/chocolateyInstall.ps1", "Write-Host 'installed'\n")
    return path


@pytest.fixture
def nupkg_factory(tmp_path: Path):
    def _make(package_id: str, **kwargs) -> Path:
        version = kwargs.get("version", "1.0.0")
        return write_nupkg(tmp_path / f"{package_id}.{version}.nupkg", package_id, **kwargs)

    return _make


@pytest.fixture(scope="session")
def templates():
    return asyncio.run(load_templates())


@pytest.fixture(autouse=True)
def reset_feed():
    yield
    set_feed(None)
