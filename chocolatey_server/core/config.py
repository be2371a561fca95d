"""
Server configuration.

Priority for every setting:
1. Explicit overrides (command-line options)
2. Environment variables
3. Built-in defaults
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from chocolatey_server.services.normalizer import normalize_prefix

PORT_ENV_VARS = ("CHOCO_SERVER_PORT", "PORT")
HOST_ENV_VAR = "CHOCO_SERVER_HOST"
PREFIX_ENV_VAR = "CHOCO_SERVER_PREFIX"
PACKAGES_ENV_VAR = "CHOCO_SERVER_PACKAGES"
CATALOG_ENV_VAR = "CHOCO_SERVER_CATALOG"
TEMPLATE_DIR_ENV_VAR = "CHOCO_SERVER_TEMPLATE_DIR"
LOG_LEVEL_ENV_VAR = "CHOCO_SERVER_LOG_LEVEL"


class ServerSettings(BaseModel):
    """
    Everything needed to load the feed and start serving it.
    """

    host: str = Field(default="0.0.0.0", description="Interface to listen on.")
    port: int = Field(default=8000, description="TCP port to listen on.")
    prefix: str = Field(
        default="/",
        description="Route prefix; all feed routes begin with this path.",
    )
    package_paths: List[Path] = Field(
        default_factory=list,
        description="nupkg archives to host.",
    )
    catalog_path: Optional[Path] = Field(
        default=None,
        description="Optional JSON list of packages hosted elsewhere (each with an explicit url).",
    )
    template_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding the feed templates. Defaults to the bundled ones.",
    )
    log_level: str = Field(default="INFO")

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return normalize_prefix(value)

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


def _settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    raw: Dict[str, Any] = {}
    for var in PORT_ENV_VARS:
        if environ.get(var):
            raw["port"] = environ[var]
            break
    if environ.get(HOST_ENV_VAR):
        raw["host"] = environ[HOST_ENV_VAR]
    if environ.get(PREFIX_ENV_VAR):
        raw["prefix"] = environ[PREFIX_ENV_VAR]
    if environ.get(PACKAGES_ENV_VAR):
        raw["package_paths"] = [p for p in environ[PACKAGES_ENV_VAR].split(os.pathsep) if p]
    if environ.get(CATALOG_ENV_VAR):
        raw["catalog_path"] = environ[CATALOG_ENV_VAR]
    if environ.get(TEMPLATE_DIR_ENV_VAR):
        raw["template_dir"] = environ[TEMPLATE_DIR_ENV_VAR]
    if environ.get(LOG_LEVEL_ENV_VAR):
        raw["log_level"] = environ[LOG_LEVEL_ENV_VAR]
    return raw


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServerSettings:
    """
    Build settings from the environment, with `overrides` taking precedence.
    None-valued and empty overrides are ignored so unset CLI options fall through.
    """
    raw = _settings_from_env(os.environ if environ is None else environ)
    for key, value in (overrides or {}).items():
        if value is None or value == () or value == []:
            continue
        raw[key] = value
    return ServerSettings(**raw)
