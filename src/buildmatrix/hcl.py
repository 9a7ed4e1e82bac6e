"""HCL loading: parse matrix.hcl files into a BuildMatrix."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import hcl2
import jinja2
from pydantic import ValidationError

from .descriptor import ArtifactDescriptor, _descriptor_registry
from .errors import ConfigurationError
from .platforms import DEFAULT_PLATFORMS, PlatformSet
from .project import BuildMatrix

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "matrix.hcl"

# block name in matrix.hcl -> output it configures
_DESCRIPTOR_BLOCKS: dict[str, str] = {
    "package": "packages",
    "devshell": "dev_shells",
    "image": "images",
}

_PATH_ATTRS = ("manifest", "lockfile", "toolchain", "source")

_PATH_DEFAULTS: dict[str, str | None] = {
    "manifest": "Cargo.toml",
    "lockfile": "Cargo.lock",
    "toolchain": "rust-toolchain.toml",
    "source": ".",
}

# keys some python-hcl2 releases attach to parsed blocks
_META_KEYS = frozenset({"__is_block__", "__start_line__", "__end_line__"})


def _clean(obj: Any) -> Any:
    """Normalize parser output: drop block metadata and surrounding string quotes."""
    if isinstance(obj, dict):
        return {_clean(k): _clean(v) for k, v in obj.items() if k not in _META_KEYS}
    if isinstance(obj, list):
        return [_clean(item) for item in obj]
    if isinstance(obj, str) and len(obj) >= 2 and obj[0] == obj[-1] == '"':
        return obj[1:-1]
    return obj


def load(
    file: Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates with context."""
    try:
        text = file.read_text()
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration not found: {file}") from None
    ctx = {"env": dict(os.environ)}
    ctx.update(context or {})
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        text = env.from_string(text).render(ctx)
    except jinja2.TemplateError as exc:
        raise ConfigurationError(f"{file}: {exc}") from exc
    try:
        return _clean(hcl2.loads(text))
    except Exception as exc:
        # hcl2 surfaces lark parse errors of several types
        raise ConfigurationError(f"{file}: {exc}") from exc


def _single_block(data: dict[str, Any], name: str) -> dict[str, Any]:
    blocks = data.get(name, [])
    if not isinstance(blocks, list):
        blocks = [blocks]
    if len(blocks) > 1:
        raise ConfigurationError(f"Only one '{name}' block is allowed")
    return dict(blocks[0]) if blocks else {}


def _decode_descriptor(block_name: str, attrs: dict[str, Any]) -> ArtifactDescriptor:
    """Decode a descriptor block using the registry."""
    output = _DESCRIPTOR_BLOCKS[block_name]
    if output not in _descriptor_registry:
        raise ConfigurationError(f"No descriptor registered for output '{output}'")
    desc_cls = _descriptor_registry[output]
    logger.debug("Decoding block '%s' -> %s", block_name, desc_cls.__name__)
    try:
        return desc_cls(**attrs)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid '{block_name}' block: {exc}") from exc


def parse(data: dict[str, Any], *, base_dir: Path) -> BuildMatrix:
    """Build a BuildMatrix from parsed configuration data.

    Input paths are relative to `base_dir`. Every output is produced even when
    its block is omitted.
    """
    unknown = set(data) - set(_PATH_ATTRS) - set(_DESCRIPTOR_BLOCKS) - {"platforms", "catalog"}
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    paths: dict[str, Path | None] = {}
    for attr in _PATH_ATTRS:
        value = data.get(attr, _PATH_DEFAULTS[attr])
        if not value and attr != "toolchain":
            raise ConfigurationError(f"'{attr}' must name a path")
        paths[attr] = base_dir / value if value else None

    toolchain = paths["toolchain"]
    if toolchain is not None and "toolchain" not in data and not toolchain.exists():
        logger.debug("No toolchain file at %s; using the base compiler", toolchain)
        toolchain = None

    descriptors = [
        _decode_descriptor(name, _single_block(data, name)) for name in _DESCRIPTOR_BLOCKS
    ]

    catalog = data.get("catalog", {})
    if not isinstance(catalog, dict):
        raise ConfigurationError("'catalog' must be an object of name = version")

    try:
        return BuildMatrix.from_files(
            manifest=paths["manifest"],
            lockfile=paths["lockfile"],
            source=paths["source"],
            toolchain=toolchain,
            platforms=PlatformSet(data.get("platforms", DEFAULT_PLATFORMS)),
            catalog={str(k): str(v) for k, v in catalog.items()},
            descriptors=descriptors,
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_matrix(
    path: str | Path = DEFAULT_CONFIG,
    *,
    context: dict[str, Any] | None = None,
) -> BuildMatrix:
    """Load a matrix.hcl file, or the one inside a directory."""
    path = Path(path)
    if path.is_dir():
        path = path / DEFAULT_CONFIG
    logger.info("Loading %s", path)
    return parse(load(path, context=context), base_dir=path.parent)
