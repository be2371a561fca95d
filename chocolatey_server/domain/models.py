"""
Pydantic models for the Chocolatey package feed.

This module defines the data models used throughout the application:
- Package metadata as read from a nupkg manifest (nuspec)
- Package dependencies
- The tagged result of interpreting an OData `$filter` expression

Manifest element names are camelCase (`iconUrl`, `requireLicenseAcceptance`),
so every field that differs from its Python name carries the manifest name as
its alias. Feed templates address fields by these manifest names.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Package Models
# ---------------------------------------------------------------------------


class PackageDependency(BaseModel):
    """
    A single `<dependency id="..." version="..."/>` entry from a nuspec.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(description="Identifier of the package depended upon.")
    version: Optional[str] = Field(
        default=None,
        description="Version range of the dependency, if the manifest gives one.",
    )

    def flatten(self) -> str:
        """
        Serialize as `id:version:`, keeping the trailing colon even when
        the version is empty.
        """
        return f"{self.id}:{self.version or ''}:"


class PackageMetadata(BaseModel):
    """
    Metadata for one hosted package.

    Known nuspec fields are enumerated; anything else found in the manifest's
    metadata block is kept in `extra` so templates can still reference it.
    Records are frozen: normalization produces new instances via model_copy().
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(description="Package identifier, unique across the feed.")
    version: str = ""
    title: str = ""
    summary: str = ""
    description: str = ""
    authors: str = ""
    owners: str = ""
    copyright: str = ""
    language: str = ""
    tags: str = Field(default="", description="Space-delimited tag list.")
    release_notes: str = Field(default="", alias="releaseNotes")
    dependencies: List[PackageDependency] = Field(default_factory=list)

    icon_url: Optional[str] = Field(default=None, alias="iconUrl")
    license_url: Optional[str] = Field(default=None, alias="licenseUrl")
    project_url: Optional[str] = Field(default=None, alias="projectUrl")
    project_source_url: Optional[str] = Field(default=None, alias="projectSourceUrl")
    package_source_url: Optional[str] = Field(default=None, alias="packageSourceUrl")
    docs_url: Optional[str] = Field(default=None, alias="docsUrl")
    mailing_list_url: Optional[str] = Field(default=None, alias="mailingListUrl")
    bug_tracker_url: Optional[str] = Field(default=None, alias="bugTrackerUrl")
    require_license_acceptance: str = Field(
        default="false",
        alias="requireLicenseAcceptance",
        description="Boolean-like string, rendered as-is into the feed.",
    )

    extra: Dict[str, Any] = Field(
        default_factory=dict,
        description="Manifest fields without a dedicated attribute.",
    )

    url: Optional[str] = Field(
        default=None,
        description=(
            "Download URL. Either supplied explicitly for packages hosted "
            "elsewhere, or synthesized for locally hosted archives."
        ),
    )
    nupkg_data: Optional[bytes] = Field(
        default=None,
        exclude=True,
        repr=False,
        description="Raw archive bytes when the package is hosted by this server.",
    )

    # Derived by the normalizer, never recomputed per request.
    flat_deps: str = Field(default="", exclude=True)
    flat_tags: str = Field(default="", exclude=True)

    @field_validator(
        "version", "title", "summary", "description", "authors", "owners",
        "copyright", "language", "tags", "release_notes", "require_license_acceptance",
        mode="before",
    )
    @classmethod
    def _coerce_json_scalars(cls, value: Any) -> Any:
        """
        Catalog JSON may use native booleans and numbers; the feed renders
        them as nuspec text (`true`, `1.0`).
        """
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @property
    def is_hosted(self) -> bool:
        return self.nupkg_data is not None

    def template_values(self) -> Dict[str, str]:
        """
        Flatten this record into the `{field}` mapping used by feed templates.

        Keys are manifest names. Absent values are omitted, which the
        renderer turns into empty strings.
        """
        values: Dict[str, str] = {}
        for key, value in self.extra.items():
            if isinstance(value, str):
                values[key] = value

        dumped = self.model_dump(
            by_alias=True,
            exclude={"dependencies", "extra"},
            exclude_none=True,
        )
        values.update({k: str(v) for k, v in dumped.items()})

        values["_flat_deps"] = self.flat_deps
        values["_flat_tags"] = self.flat_tags
        return values


# ---------------------------------------------------------------------------
# Query Models
# ---------------------------------------------------------------------------


FilterKind = Literal["exact_id", "substring", "unrecognized"]


class FilterQuery(BaseModel):
    """
    The search intent extracted from an OData `$filter` expression.

    `term` is the literal package id for `exact_id`, the literal fragment for
    `substring`, and None when the filter is `unrecognized`.
    """

    model_config = ConfigDict(frozen=True)

    kind: FilterKind
    term: Optional[str] = None

    @property
    def recognized(self) -> bool:
        return self.kind != "unrecognized"
