"""Utility helpers for working with the content tree."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Callable, Iterable

HIDDEN_PREFIX = "."
MARKDOWN_SUFFIXES = frozenset({".md", ".markdown"})

Visitor = Callable[[bool, Path], bool]


def walk(root: Path, visit: Visitor) -> None:
    """Depth-first traversal of ``root`` calling ``visit(is_dir, path)``.

    Directories are visited before their children and only descended into
    when ``visit`` returns true. A root that is a plain file is visited once.
    ``OSError`` from the filesystem propagates to the caller.
    """
    root = Path(root)
    if not root.is_dir():
        visit(False, root)
        return

    for child in sorted(root.iterdir(), key=lambda item: item.name):
        if child.is_dir():
            if visit(True, child):
                walk(child, visit)
        else:
            visit(False, child)


def is_hidden_name(name: str) -> bool:
    return name.startswith(HIDDEN_PREFIX)


def has_hidden_segment(parts: Iterable[str]) -> bool:
    """Return whether any path segment is hidden (``.`` and ``..`` included)."""
    return any(is_hidden_name(part) for part in parts)


def is_markdown(path: Path | PurePosixPath) -> bool:
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def relative_posix(path: Path, root: Path) -> PurePosixPath:
    """Express ``path`` relative to ``root`` with ``/`` separators."""
    return PurePosixPath(*path.relative_to(root).parts)
