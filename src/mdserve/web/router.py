"""Request resolution and access control.

Only three kinds of content are reachable: the generated index pages, the
embedded assets and styles, and documents present in the current snapshot's
index. Anything else resolves to not-found.
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from mdserve.index.search import filter_entries
from mdserve.models import Snapshot
from mdserve.rendering.markdown import Renderer
from mdserve.utils.files import has_hidden_segment, is_markdown
from mdserve.web.frontend import STATIC_ASSETS_DIR, STYLES_DIR, load_asset, render_index_page

LOGGER = logging.getLogger(__name__)

INDEX_PAGE = "/index.html"
STATIC_ASSETS_PREFIX = "/.static-assets/"
STYLES_PREFIX = "/.styles/"


class ResolutionKind(enum.Enum):
    REDIRECT = "redirect"
    INDEX = "index"
    DOCUMENT = "document"
    RAW = "raw"
    ASSET = "asset"
    NOT_FOUND = "not_found"
    DROPPED = "dropped"


@dataclass(frozen=True, slots=True)
class Resolution:
    kind: ResolutionKind
    body: bytes = b""
    location: str | None = None
    filename: str | None = None


NOT_FOUND = Resolution(ResolutionKind.NOT_FOUND)


def resolve(path: str, snapshot: Snapshot, content_root: Path, renderer: Renderer) -> Resolution:
    """Map a decoded request path to what should be sent back."""
    if path == "/":
        return Resolution(ResolutionKind.REDIRECT, location=INDEX_PAGE)

    if path == INDEX_PAGE:
        return _index(snapshot, None)
    if path.endswith(INDEX_PAGE):
        return _index(snapshot, path[1 : -len(INDEX_PAGE)])

    for prefix, directory in ((STATIC_ASSETS_PREFIX, STATIC_ASSETS_DIR), (STYLES_PREFIX, STYLES_DIR)):
        if path.startswith(prefix):
            remainder = path[len(prefix) :]
            data = load_asset(directory, remainder)
            if data is None:
                return NOT_FOUND
            return Resolution(ResolutionKind.ASSET, body=data, filename=remainder)

    return _document(path, snapshot, content_root, renderer)


def _index(snapshot: Snapshot, section: str | None) -> Resolution:
    entries = filter_entries(snapshot.index, section=section)
    page = render_index_page(snapshot.sections, entries)
    return Resolution(ResolutionKind.INDEX, body=page.encode("utf-8"))


def _document(path: str, snapshot: Snapshot, content_root: Path, renderer: Renderer) -> Resolution:
    candidate = path[1:] if path.startswith("/") else path

    # Only indexed documents are served, which also honours ignore rules.
    if not snapshot.contains(candidate):
        return NOT_FOUND

    root = os.path.abspath(content_root)
    target = os.path.abspath(os.path.join(root, candidate))
    if not (target + os.sep).startswith(root + os.sep):
        LOGGER.warning("Rejecting request escaping the content root: %s", path)
        return NOT_FOUND
    if has_hidden_segment(Path(target).relative_to(root).parts) or not os.path.isfile(target):
        return NOT_FOUND

    LOGGER.info('Responding to request for "%s"', target)
    try:
        data = Path(target).read_bytes()
    except OSError as exc:
        LOGGER.error('Error getting "%s": %s', target, exc)
        return Resolution(ResolutionKind.DROPPED)

    if not is_markdown(Path(target)):
        return Resolution(ResolutionKind.RAW, body=data, filename=target)

    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        LOGGER.error('"%s" is not valid UTF-8: %s', target, exc)
        return Resolution(ResolutionKind.DROPPED)
    page, _ = renderer.render(snapshot.sections, source)
    return Resolution(ResolutionKind.DOCUMENT, body=page.encode("utf-8"))
