"""Resolver for ${...} references in per-platform string values."""

from __future__ import annotations

import logging
import re
from typing import Any

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|(\$\{([^{}]+)\})")
_FULL_PATTERN = re.compile(r"\$\{([^{}]+)\}")


class Resolver:
    """Resolve ${a.b} references against a dict of named values.

    Each dotted part is looked up as a key, then as an attribute, so both
    plain dicts and models (`manifest.name`, `platform.os`) can be referenced.
    """

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        self._context = context or {}

    def lookup(self, ref: str) -> Any:
        current: Any = self._context
        for part in ref.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            elif current is not None and not isinstance(current, dict) and hasattr(current, part):
                current = getattr(current, part)
            else:
                raise ConfigurationError(f"undefined variable '{ref}'")
        if current is None:
            raise ConfigurationError(f"variable '{ref}' has no value")
        return current

    def interpolate(self, value: str) -> Any:
        """Interpolate one string.

        A string that is exactly one ${ref} yields the referenced object;
        otherwise each reference is stringified in place. $${ escapes ${.
        """
        if "${" not in value:
            return value

        match = _FULL_PATTERN.fullmatch(value)
        if match:
            return self.lookup(match.group(1).strip())

        def _replace(m: re.Match) -> str:  # type: ignore[type-arg]
            if m.group(0) == "$${":
                return "${"
            return str(self.lookup(m.group(2).strip()))

        return _INTERP_PATTERN.sub(_replace, value)

    def resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        """Interpolate every string found in `data`, recursively."""
        return self._walk(data)

    def _walk(self, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: self._walk(v) for k, v in obj.items()}
        if isinstance(obj, (list, tuple)):
            return [self._walk(item) for item in obj]
        if isinstance(obj, str):
            return self.interpolate(obj)
        return obj
