"""Package build descriptor.

Produces the reproducible build specification of the compiled package. The
compilation itself is left to an external builder; what is fixed here is
every input it will see, summarised by a content digest.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from .context import Context
from .descriptor import ArtifactDescriptor, descriptor
from .environment import Environment, Tool
from .lockfile import LockedDependencies, LockedPackage
from .manifest import Manifest
from .platforms import Platform
from .sources import SourceTree
from .toolchain import TOOLCHAIN_ATTR, Toolchain

if TYPE_CHECKING:
    from .project import BuildMatrix

logger = logging.getLogger(__name__)

STORE_DIR = "/store"


class PackageArtifact(BaseModel):
    """Build specification of the package for one platform."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    platform: Platform
    toolchain: Toolchain | Tool
    source: str
    dependencies: tuple[LockedPackage, ...]
    executables: tuple[str, ...]
    digest: str

    @property
    def main_program(self) -> str:
        """Installed path of the primary executable, relative to the output root."""
        return self.executables[0]

    @property
    def out_path(self) -> str:
        return f"{STORE_DIR}/{self.digest[:32]}-{self.name}-{self.version}"


def _digest(inputs: dict[str, Any]) -> str:
    payload = json.dumps(inputs, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode()).hexdigest()


def build_package(
    env: Environment,
    manifest: Manifest,
    source: SourceTree,
    lock: LockedDependencies,
) -> PackageArtifact:
    """Describe the package build for `env`'s platform."""
    toolchain = env[TOOLCHAIN_ATTR] if TOOLCHAIN_ATTR in env else env.base_tools[0]
    executables = (f"bin/{manifest.name}",)
    inputs = {
        "name": manifest.name,
        "version": manifest.version,
        "platform": str(env.platform),
        "toolchain": toolchain.model_dump(mode="json"),
        "source": source.digest,
        "dependencies": [pkg.model_dump(mode="json") for pkg in lock.packages],
        "executables": list(executables),
    }
    artifact = PackageArtifact(
        name=manifest.name,
        version=manifest.version,
        platform=env.platform,
        toolchain=toolchain,
        source=source.digest,
        dependencies=lock.packages,
        executables=executables,
        digest=_digest(inputs),
    )
    logger.debug("Package %s for %s: %s", manifest.name, env.platform, artifact.out_path)
    return artifact


@descriptor("packages")
class PackageDescriptor(ArtifactDescriptor):
    """Compiled package, named and versioned from the manifest."""

    def build(self, ctx: Context[BuildMatrix]) -> PackageArtifact:
        matrix = ctx.target
        return build_package(ctx.env, matrix.manifest, matrix.source, matrix.lock)
