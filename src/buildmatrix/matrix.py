"""Matrix generator: fan one function out over every platform."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TypeVar

from .environment import Environment, Overlay, resolve_environment
from .errors import ConfigurationError
from .platforms import Platform, PlatformSet

logger = logging.getLogger(__name__)

R = TypeVar("R")


def for_all_platforms(platforms: PlatformSet, f: Callable[[Platform], R]) -> dict[str, R]:
    """Call `f` once per platform and key the results by platform identifier.

    A failure for any platform aborts the whole call.
    """
    result: dict[str, R] = {}
    for platform in platforms:
        try:
            result[str(platform)] = f(platform)
        except Exception as exc:
            exc.add_note(f"while evaluating platform {platform}")
            raise

    if tuple(result) != platforms.ids:
        raise ConfigurationError(
            f"Matrix keys {sorted(result)} do not match platform set {list(platforms.ids)}"
        )
    return result


class Matrix:
    """Platform set plus the recipe for each platform's environment.

    Environments are resolved lazily, once per platform, and are never shared
    between platforms.
    """

    def __init__(
        self,
        platforms: PlatformSet,
        *,
        catalog: Mapping[str, str] | None = None,
        overlays: Iterable[Overlay] = (),
    ) -> None:
        self.platforms = platforms
        self._catalog = dict(catalog or {})
        self._overlays = tuple(overlays)
        self._envs: dict[Platform, Environment] = {}

    def environment(self, platform: Platform) -> Environment:
        if platform not in self.platforms:
            raise ConfigurationError(f"Platform '{platform}' is not in the platform set")
        env = self._envs.get(platform)
        if env is None:
            logger.debug("Resolving environment for %s", platform)
            env = resolve_environment(platform, self._catalog, self._overlays)
            self._envs[platform] = env
        return env

    def for_all(self, f: Callable[[Environment], R]) -> dict[str, R]:
        """Like `for_all_platforms`, handing `f` the resolved environment."""
        return for_all_platforms(self.platforms, lambda p: f(self.environment(p)))

    def __repr__(self) -> str:
        return f"Matrix(platforms={list(self.platforms.ids)}, overlays={len(self._overlays)})"
