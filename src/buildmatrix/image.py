"""Container-image descriptor.

The image root holds exactly the package's executables and its command is
the package's primary executable, so the two cannot drift apart.

`created = "now"` stamps the evaluation's wall-clock time: images built that
way are not reproducible. Configure a fixed ISO-8601 timestamp to make the
image description reproducible.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, field_validator

from .context import Context
from .descriptor import ArtifactDescriptor, descriptor
from .errors import ConfigurationError
from .manifest import Manifest
from .package import PackageArtifact
from .platforms import Platform

if TYPE_CHECKING:
    from .project import BuildMatrix

logger = logging.getLogger(__name__)

CREATED_NOW = "now"


class ContainerImage(BaseModel):
    """Description of a container image for one platform."""

    model_config = ConfigDict(frozen=True)

    name: str
    tag: str
    platform: Platform
    created: datetime
    contents: tuple[str, ...]
    cmd: tuple[str, ...]
    source_package: str

    @property
    def reference(self) -> str:
        return f"{self.name}:{self.tag}"


def _parse_created(created: str) -> datetime:
    if created == CREATED_NOW:
        logger.warning("Image creation time is wall-clock derived; image is not reproducible")
        return datetime.now(UTC)
    try:
        stamp = datetime.fromisoformat(created)
    except ValueError:
        raise ConfigurationError(f"Invalid image creation time: '{created}'") from None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=UTC)
    return stamp


def build_image(
    package: PackageArtifact,
    manifest: Manifest,
    *,
    created: str = CREATED_NOW,
) -> ContainerImage:
    """Describe the container image wrapping `package`."""
    # the image root links /bin from the package output
    contents = tuple(f"{package.out_path}/{exe}" for exe in package.executables)
    image = ContainerImage(
        name=manifest.name,
        tag=manifest.version,
        platform=package.platform,
        created=_parse_created(created),
        contents=contents,
        cmd=(f"/{package.main_program}",),
        source_package=package.out_path,
    )
    logger.debug("Image %s for %s runs %s", image.reference, package.platform, list(image.cmd))
    return image


@descriptor("images")
class ImageDescriptor(ArtifactDescriptor):
    """Minimal image running the package's primary executable."""

    requires: ClassVar[tuple[str, ...]] = ("packages",)

    created: str = CREATED_NOW

    @field_validator("created")
    @classmethod
    def _check_created(cls, value: str) -> str:
        if value != CREATED_NOW:
            _parse_created(value)
        return value

    def prepare(self) -> ImageDescriptor:
        """Pin "now" to one timestamp shared by every platform."""
        if self.created != CREATED_NOW:
            return self
        return self.model_copy(update={"created": _parse_created(CREATED_NOW).isoformat()})

    def build(self, ctx: Context[BuildMatrix]) -> ContainerImage:
        package: PackageArtifact = ctx.output("packages")
        return build_image(package, ctx.target.manifest, created=self.created)
