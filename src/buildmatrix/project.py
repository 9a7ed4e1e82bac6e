"""BuildMatrix model: the top-level, evaluable build description."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .context import Context
from .descriptor import ArtifactDescriptor, _descriptor_registry
from .devshell import DevShell
from .environment import Overlay
from .errors import ConfigurationError
from .image import ContainerImage
from .lockfile import LockedDependencies, import_lock
from .manifest import Manifest, read_manifest
from .matrix import Matrix
from .package import PackageArtifact
from .platforms import PlatformSet
from .sources import SourceTree, hash_source_tree
from .toolchain import ToolchainConfig, read_toolchain_file, toolchain_overlays

logger = logging.getLogger(__name__)


class Outputs(BaseModel):
    """The three per-platform output mappings."""

    model_config = ConfigDict(frozen=True)

    packages: dict[str, PackageArtifact] = Field(default_factory=dict)
    dev_shells: dict[str, DevShell] = Field(default_factory=dict)
    images: dict[str, ContainerImage] = Field(default_factory=dict)


def _order_descriptors(descriptors: Sequence[ArtifactDescriptor]) -> list[ArtifactDescriptor]:
    """Order descriptors so each comes after the outputs it requires."""
    by_output: dict[str, ArtifactDescriptor] = {}
    for desc in descriptors:
        if desc.output in by_output:
            raise ConfigurationError(f"Duplicate descriptor for output '{desc.output}'")
        by_output[desc.output] = desc

    ordered: list[ArtifactDescriptor] = []
    done: set[str] = set()

    def visit(name: str, resolving: set[str]) -> None:
        if name in done:
            return
        if name in resolving:
            raise ConfigurationError(f"Circular output requirement: '{name}'")
        if name not in by_output:
            raise ConfigurationError(f"Unknown output required: '{name}'")
        resolving.add(name)
        for required in by_output[name].requires:
            visit(required, resolving)
        resolving.discard(name)
        done.add(name)
        ordered.append(by_output[name])

    for desc in descriptors:
        visit(desc.output, set())
    return ordered


def _default_descriptors() -> list[ArtifactDescriptor]:
    """One descriptor per registered output, with default settings."""
    return [desc_cls() for desc_cls in _descriptor_registry.values()]


class BuildMatrix(BaseModel):
    """One package, its inputs, and the descriptors fanned out over the platforms.

    The manifest, lock closure, source digest and toolchain pin are read once,
    when the model is created, and shared read-only by every descriptor and
    every platform.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    manifest: Manifest
    lock: LockedDependencies
    source: SourceTree
    toolchain: ToolchainConfig | None = None
    platforms: PlatformSet = Field(default_factory=PlatformSet.default)
    catalog: dict[str, str] = Field(default_factory=dict)
    descriptors: list[ArtifactDescriptor] = Field(default_factory=_default_descriptors)

    @classmethod
    def from_files(
        cls,
        *,
        manifest: str | Path,
        lockfile: str | Path,
        source: str | Path,
        toolchain: str | Path | None = None,
        **kwargs: Any,
    ) -> BuildMatrix:
        """Read every external input and build the model."""
        pkg_manifest = read_manifest(manifest)
        return cls(
            manifest=pkg_manifest,
            lock=import_lock(lockfile, pkg_manifest),
            source=hash_source_tree(source),
            toolchain=read_toolchain_file(toolchain) if toolchain is not None else None,
            **kwargs,
        )

    @property
    def overlays(self) -> list[Overlay]:
        return toolchain_overlays(self.toolchain) if self.toolchain is not None else []

    def matrix(self) -> Matrix:
        return Matrix(self.platforms, catalog=self.catalog, overlays=self.overlays)

    def evaluate(self) -> Outputs:
        """Evaluate every descriptor on every platform."""
        logger.info(
            "Evaluating %s %s for %d platform(s)",
            self.manifest.name,
            self.manifest.version,
            len(self.platforms),
        )
        matrix = self.matrix()
        results: dict[str, Mapping[str, Any]] = {}
        for desc in _order_descriptors([d.prepare() for d in self.descriptors]):
            logger.debug("Evaluating output '%s'", desc.output)
            results[desc.output] = matrix.for_all(
                lambda env, desc=desc: desc.build(Context(self, env, outputs=results))
            )
        unknown = set(results) - set(Outputs.model_fields)
        if unknown:
            raise ConfigurationError(f"Unsupported outputs: {', '.join(sorted(unknown))}")
        missing = [name for name in Outputs.model_fields if name not in results]
        if missing:
            raise ConfigurationError(f"No descriptor for outputs: {', '.join(missing)}")
        return Outputs(**results)
