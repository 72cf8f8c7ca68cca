"""Core mdserve data models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel

DEFAULT_TITLE = "UNTITLED!"
DEFAULT_DATE = dt.date(2024, 1, 1)


class Metadata(BaseModel):
    """Front matter read from a document's ``meta`` block."""

    title: str
    date: dt.date
    lang: Optional[str] = None
    desc: Optional[str] = None

    @classmethod
    def default(cls) -> "Metadata":
        return cls(title=DEFAULT_TITLE, date=DEFAULT_DATE)


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """A document that yielded metadata during a scan."""

    metadata: Metadata
    section: str
    path: str


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Immutable result of one content scan.

    ``sections`` is sorted, unique and always holds the root section ``""``.
    ``index`` is ordered by date, newest first.
    """

    sections: Tuple[str, ...] = ("",)
    index: Tuple[IndexEntry, ...] = ()

    def contains(self, path: str) -> bool:
        """Return whether ``path`` is the path of an indexed document."""
        return any(entry.path == path for entry in self.index)
