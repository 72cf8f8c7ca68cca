"""Lookups over a snapshot's index."""

from __future__ import annotations

from typing import Iterable, List

from mdserve.models import IndexEntry


def in_section(entry: IndexEntry, section: str) -> bool:
    """Whether ``entry``'s path starts with the section name."""
    return entry.path.startswith(section.strip("/"))


def matches(entry: IndexEntry, query: str) -> bool:
    needle = query.casefold()
    meta = entry.metadata
    haystack = (meta.title, meta.desc or "", entry.path)
    return any(needle in field.casefold() for field in haystack)


def filter_entries(
    entries: Iterable[IndexEntry],
    *,
    section: str | None = None,
    query: str | None = None,
) -> List[IndexEntry]:
    """Filter entries by section and a case-insensitive text query, keeping order."""
    results: List[IndexEntry] = []
    query = (query or "").strip()
    for entry in entries:
        if section is not None and not in_section(entry, section):
            continue
        if query and not matches(entry, query):
            continue
        results.append(entry)
    return results
