"""Dependency lock import.

The lockfile is imported, not resolved: its entries are taken as the pinned
closure and only checked for completeness against the manifest.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigurationError
from .manifest import Manifest

logger = logging.getLogger(__name__)


class LockedPackage(BaseModel):
    """One pinned entry of the dependency closure."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    source: str | None = None
    checksum: str | None = None
    dependencies: tuple[str, ...] = ()


class LockedDependencies(BaseModel):
    """The imported closure, minus the root package itself."""

    model_config = ConfigDict(frozen=True)

    root: LockedPackage
    packages: tuple[LockedPackage, ...] = ()

    def names(self) -> set[str]:
        return {pkg.name for pkg in self.packages}


def _dep_name(entry: str) -> str:
    # lock entries reference dependencies as "name", "name version" or
    # "name version (source)"
    return entry.split(" ", 1)[0]


def import_lock(path: str | Path, manifest: Manifest) -> LockedDependencies:
    """Import a Cargo.lock-format file and verify it covers `manifest`."""
    path = Path(path)
    logger.debug("Importing lockfile %s", path)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError:
        raise ConfigurationError(f"Lockfile not found: {path}") from None
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{path}: {exc}") from exc

    entries = data.get("package")
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path}: no [[package]] entries")

    try:
        locked = [LockedPackage(**entry) for entry in entries]
    except (ValidationError, TypeError) as exc:
        raise ConfigurationError(f"{path}: malformed [[package]] entry: {exc}") from exc

    root: LockedPackage | None = None
    packages: list[LockedPackage] = []
    for pkg in locked:
        if pkg.name == manifest.name and pkg.source is None:
            root = pkg
        else:
            packages.append(pkg)

    if root is None:
        raise ConfigurationError(f"{path}: does not lock package '{manifest.name}'")
    if root.version != manifest.version:
        raise ConfigurationError(
            f"{path}: locks {root.name} {root.version}, manifest declares {manifest.version}"
        )

    available = {pkg.name for pkg in packages}
    required = set(manifest.dependencies) | {_dep_name(d) for d in root.dependencies}
    for pkg in packages:
        required.update(_dep_name(d) for d in pkg.dependencies)
    missing = sorted(required - available)
    if missing:
        raise ConfigurationError(f"{path}: missing locked dependencies: {', '.join(missing)}")

    packages.sort(key=lambda pkg: (pkg.name, pkg.version))
    logger.info("Imported %d locked dependencies from %s", len(packages), path.name)
    return LockedDependencies(root=root, packages=tuple(packages))
