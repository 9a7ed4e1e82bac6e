"""Error types raised while evaluating a build matrix."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """The build matrix configuration cannot be evaluated.

    Raised for missing or malformed input files, unknown platforms,
    unresolvable environment attributes and invalid descriptor wiring.
    Evaluation stops at the first one; there is no partial output.
    """
