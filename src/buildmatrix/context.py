"""Per-platform evaluation context passed to artifact descriptors."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from .environment import Environment
from .errors import ConfigurationError
from .platforms import Platform


P = TypeVar("P")


class Context(Generic[P]):
    """Runtime state handed to a descriptor for one platform."""

    def __init__(
        self,
        target: P,
        env: Environment,
        *,
        outputs: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        self.target = target
        self.env = env
        self._outputs = outputs or {}

    @property
    def platform(self) -> Platform:
        return self.env.platform

    def output(self, name: str) -> Any:
        """Return this platform's artifact from an already evaluated output."""
        if name not in self._outputs:
            raise ConfigurationError(f"Output '{name}' has not been evaluated")
        return self._outputs[name][str(self.platform)]
