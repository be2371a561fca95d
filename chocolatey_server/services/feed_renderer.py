"""
Render Atom/OData feed documents from templates.

Templates contain `{identifier}` placeholders. Rendering happens in two
passes: per-entry fields are substituted first, and the
`{FEED_URL_ROOT}` placeholder is resolved last, once per response, with the
scheme and host of the current request.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping, Union
from xml.sax.saxutils import escape

import aiofiles
from pydantic import BaseModel

from chocolatey_server.domain.models import PackageMetadata
from chocolatey_server.services.normalizer import URL_ROOT_PLACEHOLDER

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_URL_ROOT_KEY = URL_ROOT_PLACEHOLDER.strip("{}")

# Values also land inside double-quoted attributes (e.g. content src).
_ATTRIBUTE_ENTITIES = {'"': "&quot;"}

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "static"

TEMPLATE_FILES = {
    "root": "root.atom",
    "metadata": "metadata.atom",
    "error": "error.atom",
    "entry": "entry-template.atom",
    "packages": "packages-template.atom",
}


class FeedTemplates(BaseModel):
    """The five feed templates, as opaque strings."""

    root: str
    metadata: str
    error: str
    entry: str
    packages: str


async def load_templates(template_dir: Union[str, Path, None] = None) -> FeedTemplates:
    """
    Read all feed templates from `template_dir` (the bundled ones by default).
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    contents: Dict[str, str] = {}
    for key, filename in TEMPLATE_FILES.items():
        async with aiofiles.open(template_dir / filename, "r", encoding="utf-8") as f:
            contents[key] = await f.read()
    logger.debug(f"Loaded feed templates from {template_dir}")
    return FeedTemplates(**contents)


def substitute(template: str, values: Mapping[str, str]) -> str:
    """
    Replace every `{field}` with its value; unknown fields become "".

    The request-origin placeholder is left in place for resolve_url_root().
    """

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key == _URL_ROOT_KEY:
            return match.group(0)
        return values.get(key, "")

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def resolve_url_root(document: str, url_root: str) -> str:
    """
    Second pass: substitute the request's `scheme://host` everywhere.
    """
    return document.replace(URL_ROOT_PLACEHOLDER, url_root)


class FeedRenderer:
    """
    Renders package collections for one route prefix.
    """

    def __init__(self, templates: FeedTemplates, prefix: str):
        self.templates = templates
        self.prefix = prefix

    @property
    def service_document(self) -> str:
        return self.templates.root

    @property
    def metadata_document(self) -> str:
        return self.templates.metadata

    @property
    def error_document(self) -> str:
        return self.templates.error

    def render_entry(self, entry: PackageMetadata) -> str:
        values = {k: escape(v, _ATTRIBUTE_ENTITIES) for k, v in entry.template_values().items()}
        values["prefix"] = self.prefix
        return substitute(self.templates.entry, values)

    def render_collection(self, entries: Iterable[PackageMetadata]) -> str:
        """
        First pass only: the wrapper with every entry filled in, in order.
        The origin placeholder is still unresolved.
        """
        rendered = "".join(self.render_entry(entry) for entry in entries)
        return substitute(
            self.templates.packages,
            {"entries": rendered, "prefix": self.prefix},
        )

    def render_packages(self, entries: Iterable[PackageMetadata], url_root: str) -> str:
        return resolve_url_root(self.render_collection(entries), url_root)
