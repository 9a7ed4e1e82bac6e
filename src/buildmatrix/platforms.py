"""Platform identifiers and the ordered platform set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from pydantic import BaseModel, ConfigDict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

KNOWN_ARCHES = frozenset({"x86_64", "aarch64", "i686", "armv7l", "riscv64"})
KNOWN_OSES = frozenset({"linux", "darwin"})

DEFAULT_PLATFORMS = (
    "x86_64-linux",
    "aarch64-linux",
    "x86_64-darwin",
    "aarch64-darwin",
)


class Platform(BaseModel):
    """One (architecture, OS) build target."""

    model_config = ConfigDict(frozen=True)

    arch: str
    os: str

    @classmethod
    def parse(cls, ident: str) -> Platform:
        """Parse an identifier such as 'aarch64-darwin'."""
        arch, sep, os_name = ident.partition("-")
        if not sep or not arch or not os_name:
            raise ConfigurationError(f"Malformed platform identifier: '{ident}'")
        if arch not in KNOWN_ARCHES:
            raise ConfigurationError(f"Unknown architecture '{arch}' in platform '{ident}'")
        if os_name not in KNOWN_OSES:
            raise ConfigurationError(f"Unknown OS '{os_name}' in platform '{ident}'")
        return cls(arch=arch, os=os_name)

    @property
    def is_darwin(self) -> bool:
        return self.os == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    def __str__(self) -> str:
        return f"{self.arch}-{self.os}"


class PlatformSet:
    """Immutable, ordered collection of unique platforms."""

    __slots__ = ("_platforms",)

    def __init__(self, platforms: Iterable[Platform | str]) -> None:
        items: list[Platform] = []
        for entry in platforms:
            platform = entry if isinstance(entry, Platform) else Platform.parse(entry)
            if platform in items:
                raise ConfigurationError(f"Duplicate platform: '{platform}'")
            items.append(platform)
        if not items:
            raise ConfigurationError("Platform set is empty")
        self._platforms = tuple(items)

    @classmethod
    def default(cls) -> PlatformSet:
        return cls(DEFAULT_PLATFORMS)

    def __iter__(self) -> Iterator[Platform]:
        return iter(self._platforms)

    def __len__(self) -> int:
        return len(self._platforms)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return any(str(p) == item for p in self._platforms)
        return item in self._platforms

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlatformSet):
            return NotImplemented
        return self._platforms == other._platforms

    def __hash__(self) -> int:
        return hash(self._platforms)

    @property
    def ids(self) -> tuple[str, ...]:
        """Platform identifiers in declared order."""
        return tuple(str(p) for p in self._platforms)

    def __repr__(self) -> str:
        return f"PlatformSet({list(self.ids)!r})"
