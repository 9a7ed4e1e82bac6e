"""Pinned compiler toolchain and the overlays that inject it.

The toolchain file is read once per evaluation. Each platform then gets the
same channel and component set, with the binary selected for its own target
triple:

    config = read_toolchain_file("rust-toolchain.toml")
    overlays = toolchain_overlays(config)
    env = resolve_environment(platform, catalog, overlays)
    env["rust-toolchain"].host  # e.g. "aarch64-apple-darwin"
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .environment import Environment, Overlay
from .errors import ConfigurationError
from .platforms import Platform

logger = logging.getLogger(__name__)

DIST_ATTR = "toolchain-dist"
TOOLCHAIN_ATTR = "rust-toolchain"

_VENDOR_OS = {
    "linux": "unknown-linux-gnu",
    "darwin": "apple-darwin",
}

_DEFAULT_COMPONENTS = ("cargo", "rustc", "rust-std")


def target_triple(platform: Platform) -> str:
    """Map a platform to the compiler's target triple."""
    try:
        suffix = _VENDOR_OS[platform.os]
    except KeyError:
        raise ConfigurationError(f"No toolchain target for platform '{platform}'") from None
    return f"{platform.arch}-{suffix}"


class ToolchainConfig(BaseModel):
    """Contents of a rust-toolchain.toml [toolchain] table."""

    model_config = ConfigDict(frozen=True)

    channel: str = Field(min_length=1)
    components: tuple[str, ...] = ()
    targets: tuple[str, ...] = ()
    profile: str = "default"


class Toolchain(BaseModel):
    """The pinned toolchain as resolved for one platform."""

    model_config = ConfigDict(frozen=True)

    name: str = TOOLCHAIN_ATTR
    version: str
    host: str
    profile: str
    components: tuple[str, ...]
    targets: tuple[str, ...]

    @property
    def artifact(self) -> str:
        """Identifier of the binary distribution for this host."""
        return f"rust-{self.version}-{self.host}"

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


class ToolchainDist:
    """Provider of versioned toolchain binaries for one platform."""

    def __init__(self, platform: Platform) -> None:
        self.platform = platform

    def from_config(self, config: ToolchainConfig) -> Toolchain:
        host = target_triple(self.platform)
        components = tuple(dict.fromkeys((*_DEFAULT_COMPONENTS, *config.components)))
        targets = tuple(dict.fromkeys((host, *config.targets)))
        logger.debug("Selecting toolchain %s for %s", config.channel, host)
        return Toolchain(
            version=config.channel,
            host=host,
            profile=config.profile,
            components=components,
            targets=targets,
        )

    def __repr__(self) -> str:
        return f"ToolchainDist({self.platform})"


def read_toolchain_file(path: str | Path) -> ToolchainConfig:
    """Read the pinned toolchain configuration."""
    path = Path(path)
    logger.debug("Reading toolchain file %s", path)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError:
        raise ConfigurationError(f"Toolchain file not found: {path}") from None
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"{path}: {exc}") from exc

    table = data.get("toolchain")
    if not isinstance(table, dict):
        raise ConfigurationError(f"{path}: missing [toolchain] table")
    try:
        config = ToolchainConfig(**table)
    except (ValidationError, TypeError) as exc:
        raise ConfigurationError(f"{path}: invalid [toolchain] table: {exc}") from exc

    logger.info("Pinned toolchain channel %s", config.channel)
    return config


def dist_overlay(env: Environment) -> Environment:
    """Make the toolchain distribution available to later overlays."""
    return env.extend(**{DIST_ATTR: ToolchainDist(env.platform)})


def pin_overlay(config: ToolchainConfig) -> Overlay:
    """Overlay binding the pinned toolchain, selected through the distribution."""

    def pin_toolchain(env: Environment) -> Environment:
        dist: ToolchainDist = env[DIST_ATTR]
        return env.extend(**{TOOLCHAIN_ATTR: dist.from_config(config)})

    return pin_toolchain


def toolchain_overlays(config: ToolchainConfig) -> list[Overlay]:
    """Overlay chain that injects the pinned toolchain into every environment."""
    return [dist_overlay, pin_overlay(config)]
