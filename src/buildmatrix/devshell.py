"""Development-environment descriptor."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .context import Context
from .descriptor import ArtifactDescriptor, descriptor
from .environment import Environment, Tool
from .errors import ConfigurationError
from .manifest import Manifest
from .platforms import Platform
from .resolve import Resolver
from .toolchain import TOOLCHAIN_ATTR, Toolchain

if TYPE_CHECKING:
    from .project import BuildMatrix

logger = logging.getLogger(__name__)


class PlatformPredicate(BaseModel):
    """Matches platforms by OS and/or architecture; unset fields match anything."""

    model_config = ConfigDict(frozen=True)

    os: str | None = None
    arch: str | None = None

    def __call__(self, platform: Platform) -> bool:
        if self.os is not None and platform.os != self.os:
            return False
        if self.arch is not None and platform.arch != self.arch:
            return False
        return True

    def __str__(self) -> str:
        parts = [f"{k}={v}" for k, v in (("os", self.os), ("arch", self.arch)) if v]
        return ",".join(parts) or "any"


class DevShell(BaseModel):
    """An interactive development environment for one platform."""

    model_config = ConfigDict(frozen=True)

    name: str
    platform: Platform
    packages: tuple[Tool | Toolchain, ...]
    env: dict[str, str] = Field(default_factory=dict)
    shell_hook: str = ""

    @property
    def package_names(self) -> list[str]:
        return [pkg.name for pkg in self.packages]


def _lookup(env: Environment, name: str) -> Tool | Toolchain:
    tool = env[name]
    if not isinstance(tool, (Tool, Toolchain)):
        raise ConfigurationError(f"'{name}' in the {env.platform} environment is not a tool")
    return tool


def _union(groups: Iterable[Iterable[Any]]) -> tuple[Any, ...]:
    seen: dict[str, Any] = {}
    for group in groups:
        for tool in group:
            seen.setdefault(tool.name, tool)
    return tuple(seen.values())


def build_dev_shell(
    env: Environment,
    extra_tools: Sequence[str],
    platform_tools: Mapping[PlatformPredicate, Sequence[str]] | None = None,
    *,
    name: str = "shell",
    variables: Mapping[str, str] | None = None,
    shell_hook: str = "",
) -> DevShell:
    """Compose the dev shell for `env`'s platform.

    The tool set is the environment's base tools, plus `extra_tools`, plus the
    tools of every predicate matching the platform. A tool named more than once
    appears once.
    """
    groups: list[list[Any]] = [env.base_tools, [_lookup(env, t) for t in extra_tools]]
    for predicate, tools in (platform_tools or {}).items():
        if predicate(env.platform):
            logger.debug("Predicate %s matches %s: adding %s", predicate, env.platform, list(tools))
            groups.append([_lookup(env, t) for t in tools])

    return DevShell(
        name=name,
        platform=env.platform,
        packages=_union(groups),
        env=dict(variables or {}),
        shell_hook=shell_hook,
    )


class ConditionalTools(BaseModel):
    """A `when` block: extra tools for platforms matching a predicate."""

    model_config = ConfigDict(frozen=True)

    os: str | None = None
    arch: str | None = None
    packages: tuple[str, ...] = ()

    @property
    def predicate(self) -> PlatformPredicate:
        return PlatformPredicate(os=self.os, arch=self.arch)


@descriptor("dev_shells")
class DevShellDescriptor(ArtifactDescriptor):
    """Development shell with unconditional and platform-conditional tools."""

    packages: tuple[str, ...] = ()
    when: tuple[ConditionalTools, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)
    shell_hook: str = ""

    def platform_tools(self) -> dict[PlatformPredicate, list[str]]:
        """Merge `when` blocks sharing a predicate."""
        merged: dict[PlatformPredicate, list[str]] = {}
        for block in self.when:
            merged.setdefault(block.predicate, []).extend(block.packages)
        return merged

    def build(self, ctx: Context[BuildMatrix]) -> DevShell:
        manifest: Manifest = ctx.target.manifest
        resolver = Resolver(
            {
                "manifest": manifest,
                "platform": ctx.platform,
                "toolchain": ctx.env.get(TOOLCHAIN_ATTR),
            }
        )
        variables = {k: str(v) for k, v in resolver.resolve(self.env).items()}
        hook = resolver.resolve({"hook": self.shell_hook})["hook"]
        return build_dev_shell(
            ctx.env,
            self.packages,
            self.platform_tools(),
            name=f"{manifest.name}-shell",
            variables=variables,
            shell_hook=str(hook),
        )
