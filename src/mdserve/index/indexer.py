"""Content scanning pipeline."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import List, Sequence

from mdserve.index.ignore import IgnoreFilter, IgnoreFilterError, select_ignore_filter
from mdserve.models import IndexEntry, Snapshot
from mdserve.rendering.markdown import Renderer
from mdserve.utils.files import is_hidden_name, is_markdown, relative_posix, walk

LOGGER = logging.getLogger(__name__)

SECTION_MARKER = ".section.toml"


class ScanError(RuntimeError):
    """A scan could not be completed; no snapshot was produced."""


def _text(path: PurePosixPath) -> str:
    text = path.as_posix()
    # Undecodable names surface as surrogate escapes.
    text.encode("utf-8")
    return text


class Indexer:
    """Coordinates the walk, rendering and ignore filtering of one scan."""

    def __init__(self, renderer: Renderer, ignore_filter: IgnoreFilter) -> None:
        self.renderer = renderer
        self.ignore_filter = ignore_filter

    def build(self, content_root: Path) -> Snapshot:
        """Scan ``content_root`` and return a fresh snapshot."""
        root = Path(content_root)
        if not root.is_dir():
            raise ScanError(f"Content root is not a readable directory: {root}")

        sections: List[str] = []
        entries: List[IndexEntry] = []

        def visit(is_dir: bool, path: Path) -> bool:
            name = path.name
            if name == SECTION_MARKER and not is_dir:
                self._record_section(root, path, sections)
            if is_hidden_name(name):
                return False
            if not is_dir and is_markdown(path):
                entry = self._index_document(root, path, sections)
                if entry is not None:
                    entries.append(entry)
            return True

        try:
            walk(root, visit)
        except (OSError, UnicodeError) as exc:
            raise ScanError(f"Failed to scan {root}: {exc}") from exc

        indexed = {entry.section for entry in entries}
        candidates = [name for name in sorted(set(sections)) if name in indexed]

        if candidates:
            ignored = self._ignored(root, candidates)
            if ignored:
                LOGGER.debug("Removing ignored sections: %s", sorted(ignored))
            candidates = [name for name in candidates if name not in ignored]

        if entries:
            ignored = self._ignored(root, [entry.path for entry in entries])
            if ignored:
                LOGGER.debug("Removing ignored documents from the index: %s", sorted(ignored))
            entries = [entry for entry in entries if entry.path not in ignored]

        # Root section is always present.
        snapshot = Snapshot(
            sections=tuple(sorted({"", *candidates})),
            index=tuple(sorted(entries, key=lambda entry: entry.metadata.date, reverse=True)),
        )
        LOGGER.info(
            "Indexed %d documents in %d sections from %s",
            len(snapshot.index),
            len(snapshot.sections),
            root,
        )
        return snapshot

    def _record_section(self, root: Path, marker: Path, sections: List[str]) -> None:
        relative = relative_posix(marker, root)
        # A marker directly under the root does not name a section.
        if len(relative.parts) > 1:
            sections.append(_text(PurePosixPath(relative.parts[0])))

    def _index_document(
        self, root: Path, path: Path, sections: Sequence[str]
    ) -> IndexEntry | None:
        source = path.read_text(encoding="utf-8")
        _, metadata = self.renderer.render(sections, source)
        if metadata is None:
            LOGGER.debug("No metadata in %s, leaving it out of the index", path)
            return None

        relative = relative_posix(path, root)
        section = relative.parts[0] if len(relative.parts) > 1 else ""
        return IndexEntry(metadata=metadata, section=section, path=_text(relative))

    def _ignored(self, root: Path, paths: Sequence[str]) -> set[str]:
        try:
            ignored = self.ignore_filter(root, paths)
        except IgnoreFilterError as exc:
            raise ScanError(str(exc)) from exc
        return {PurePosixPath(item).as_posix() for item in ignored}


def build_snapshot(
    content_root: Path,
    *,
    ignore_filter: IgnoreFilter | None = None,
    renderer: Renderer | None = None,
) -> Snapshot:
    """Scan ``content_root`` once, detecting git when no filter is given."""
    if ignore_filter is None:
        ignore_filter = select_ignore_filter()
    return Indexer(renderer or Renderer(), ignore_filter).build(content_root)
