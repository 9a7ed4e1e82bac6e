"""Per-platform environments and the overlay chain that builds them."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError
from .platforms import Platform

logger = logging.getLogger(__name__)

STDENV = "stdenv"


class Tool(BaseModel):
    """A named, versioned tool or library available in an environment."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = ""

    def __str__(self) -> str:
        return f"{self.name}-{self.version}" if self.version else self.name


class Environment(BaseModel):
    """Platform-scoped bag of tools, toolchains and providers.

    Environments are never modified; `extend` returns a new one.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    platform: Platform
    attrs: dict[str, Any] = Field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        try:
            return self.attrs[name]
        except KeyError:
            raise ConfigurationError(
                f"'{name}' is not available in the {self.platform} environment"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self.attrs

    def get(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def extend(self, **attrs: Any) -> Environment:
        """Return a copy with `attrs` added, replacing existing names."""
        return Environment(platform=self.platform, attrs={**self.attrs, **attrs})

    @property
    def base_tools(self) -> list[Tool]:
        """Tools every shell and build on this platform starts from."""
        return [self[STDENV]]


Overlay = Callable[[Environment], Environment]


def base_environment(platform: Platform, catalog: Mapping[str, str]) -> Environment:
    """Build the baseline environment for a platform from a name -> version catalog."""
    attrs: dict[str, Any] = {STDENV: Tool(name=STDENV, version=str(platform))}
    for name, version in catalog.items():
        attrs[name] = Tool(name=name, version=version)
    return Environment(platform=platform, attrs=attrs)


def apply_overlays(env: Environment, overlays: Iterable[Overlay]) -> Environment:
    """Fold overlays over `env` left to right."""
    for overlay in overlays:
        name = getattr(overlay, "__name__", type(overlay).__name__)
        logger.debug("Applying overlay %s on %s", name, env.platform)
        result = overlay(env)
        if not isinstance(result, Environment):
            raise ConfigurationError(f"Overlay {name} did not return an Environment")
        if result.platform != env.platform:
            raise ConfigurationError(
                f"Overlay {name} changed the platform from {env.platform} to {result.platform}"
            )
        env = result
    return env


def resolve_environment(
    platform: Platform,
    catalog: Mapping[str, str] | None = None,
    overlays: Iterable[Overlay] = (),
) -> Environment:
    """Return the fully composed environment for one platform."""
    env = base_environment(platform, catalog or {})
    return apply_overlays(env, overlays)
