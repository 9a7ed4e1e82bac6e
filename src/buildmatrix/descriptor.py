"""Artifact descriptor ABC and registration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from .context import Context

_descriptor_registry: dict[str, type[ArtifactDescriptor]] = {}


def descriptor(output: str):
    """Register an ArtifactDescriptor class as the producer of an output mapping."""

    def decorator(cls):
        cls.output = output
        _descriptor_registry[output] = cls
        return cls

    return decorator


class ArtifactDescriptor(BaseModel, ABC):
    """Produces one artifact per platform for a named output."""

    model_config = ConfigDict(frozen=True)

    output: ClassVar[str] = ""
    requires: ClassVar[tuple[str, ...]] = ()

    def prepare(self) -> ArtifactDescriptor:
        """Fix per-evaluation values before fanning out; called once per evaluation."""
        return self

    @abstractmethod
    def build(self, ctx: Context[Any]) -> Any:
        """Build the artifact for `ctx.platform`."""
