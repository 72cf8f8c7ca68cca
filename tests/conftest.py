"""Shared fixtures for building content trees."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from mdserve.index.ignore import NullIgnoreFilter
from mdserve.index.indexer import build_snapshot
from mdserve.models import Snapshot


def document(title: str, date: str, body: str = "Body text.", **extra: str) -> str:
    """Markdown source with a ``meta`` block."""
    lines = [f'title = "{title}"', f"date = {date}"]
    lines += [f'{key} = "{value}"' for key, value in extra.items()]
    return "```meta\n" + "\n".join(lines) + "\n```\n\n" + body + "\n"


@pytest.fixture
def write(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write ``text`` to ``relative`` under the content root."""
    root = tmp_path / "content"
    root.mkdir(exist_ok=True)

    def _write(relative: str, text: str) -> Path:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def content_dir(tmp_path: Path, write: Callable[[str, str], Path]) -> Path:
    """A small site: one root document, a blog section and some noise."""
    write("about.md", document("About", "2024-02-01", "All about us."))
    write("blog/.section.toml", "")
    write("blog/first.md", document("First post", "2024-03-01", "Hello **world**."))
    write("blog/second.markdown", document("Second post", "2024-04-01", "More words."))
    write("blog/draft.md", "# No metadata here\n")
    write("notes/.section.toml", "")
    write("notes/plain.md", "Nothing indexed.\n")
    write(".hidden/secret.md", document("Secret", "2024-05-01"))
    write("blog/image.txt", "not markdown")
    return tmp_path / "content"


@pytest.fixture
def snapshot(content_dir: Path) -> Snapshot:
    return build_snapshot(content_dir, ignore_filter=NullIgnoreFilter())
