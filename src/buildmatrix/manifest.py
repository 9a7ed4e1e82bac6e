"""Package manifest reader."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Manifest(BaseModel):
    """Declared name, version and direct dependencies of the package."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    dependencies: tuple[str, ...] = ()


def _dependency_names(table: object) -> list[str]:
    if table is None:
        return []
    if not isinstance(table, dict):
        raise ConfigurationError("[dependencies] must be a table")
    names: list[str] = []
    for key, value in table.items():
        # `alias = { package = "real-name", ... }` renames the crate
        if isinstance(value, dict) and "package" in value:
            names.append(str(value["package"]))
        else:
            names.append(key)
    return names


def read_manifest(path: str | Path) -> Manifest:
    """Read the [package] table of a Cargo.toml-format manifest."""
    path = Path(path)
    logger.debug("Reading manifest %s", path)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError:
        raise ConfigurationError(f"Manifest not found: {path}") from None
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{path}: {exc}") from exc

    package = data.get("package")
    if not isinstance(package, dict):
        raise ConfigurationError(f"{path}: missing [package] table")

    try:
        manifest = Manifest(
            name=package.get("name", ""),
            version=package.get("version", ""),
            dependencies=tuple(sorted(set(_dependency_names(data.get("dependencies"))))),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"{path}: invalid [package] table: {exc}") from exc

    logger.info("Loaded manifest %s %s", manifest.name, manifest.version)
    return manifest
