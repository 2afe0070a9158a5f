"""Portable relative paths between generated files."""

from __future__ import annotations

import os
from pathlib import PurePath
from typing import Tuple, Union

from .errors import InvalidPathError

PathLike = Union[str, "os.PathLike[str]"]


def _split(path: PathLike) -> Tuple[str, Tuple[str, ...]]:
    normalized = PurePath(os.path.normpath(os.fspath(path)))
    parts = normalized.parts
    if normalized.anchor:
        parts = parts[1:]
    if parts == (".",):
        parts = ()
    return normalized.anchor, parts


def relativize(path: PathLike, start: PathLike) -> str:
    """Return ``path`` as a relative POSIX path seen from directory ``start``.

    Both arguments are normalized lexically; the filesystem is never
    consulted, so symlinks are not resolved.

    Raises:
        InvalidPathError: the two paths do not share a common root.
    """
    path_anchor, path_parts = _split(path)
    start_anchor, start_parts = _split(start)
    if path_anchor != start_anchor:
        raise InvalidPathError(
            f"'{os.fspath(path)}' and '{os.fspath(start)}' share no common root"
        )

    common = 0
    for path_part, start_part in zip(path_parts, start_parts):
        if path_part != start_part:
            break
        common += 1

    remaining = start_parts[common:]
    if ".." in remaining:
        raise InvalidPathError(
            f"Cannot express '{os.fspath(path)}' relative to '{os.fspath(start)}'"
        )

    segments = [".."] * len(remaining) + list(path_parts[common:])
    return "/".join(segments) or "."


def resolve(relative: str, start: PathLike) -> str:
    """Inverse of :func:`relativize`: join and normalize."""
    return os.path.normpath(os.path.join(os.fspath(start), relative))
