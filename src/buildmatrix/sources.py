"""Content digest of the package source tree."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDES = frozenset({".git", "target", "result", "__pycache__"})


class SourceTree(BaseModel):
    """A source directory identified by the hash of its contents."""

    model_config = ConfigDict(frozen=True)

    path: Path
    digest: str
    file_count: int


def _walk(root: Path, excludes: frozenset[str]) -> Iterator[Path]:
    for entry in sorted(root.iterdir()):
        if entry.name in excludes:
            continue
        if entry.is_dir() and not entry.is_symlink():
            yield from _walk(entry, excludes)
        elif entry.is_file():
            yield entry


def hash_source_tree(path: str | Path, excludes: Iterable[str] = DEFAULT_EXCLUDES) -> SourceTree:
    """Hash every file below `path`, in sorted order, with its relative name."""
    root = Path(path)
    if not root.is_dir():
        raise ConfigurationError(f"Source tree not found: {root}")

    h = hashlib.sha256()
    count = 0
    for file in _walk(root, frozenset(excludes)):
        rel = file.relative_to(root).as_posix()
        h.update(rel.encode())
        h.update(b"\0")
        h.update(hashlib.sha256(file.read_bytes()).digest())
        count += 1

    digest = h.hexdigest()
    logger.debug("Hashed %d source files under %s: %s", count, root, digest[:12])
    return SourceTree(path=root, digest=f"sha256:{digest}", file_count=count)
