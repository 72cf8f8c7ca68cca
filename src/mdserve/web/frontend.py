"""HTML templates and embedded assets for the mdserve web UI."""

from __future__ import annotations

from functools import lru_cache
from importlib.resources import files
from typing import TYPE_CHECKING, Iterable, Sequence
from urllib.parse import quote

from jinja2 import Environment, FunctionLoader, select_autoescape

if TYPE_CHECKING:
    from mdserve.models import IndexEntry, Metadata

STATIC_ASSETS_DIR = "static-assets"
STYLES_DIR = "styles"
STYLESHEET = "styles.css"


def _load_template(name: str) -> str:
    template = files("mdserve.web").joinpath("templates", name)
    return template.read_text(encoding="utf-8")


def section_href(section: str) -> str:
    return f"/{quote(section)}/index.html" if section else "/index.html"


_ENV = Environment(
    loader=FunctionLoader(_load_template),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_ENV.filters["section_href"] = section_href


@lru_cache(maxsize=None)
def load_styles() -> str:
    return files("mdserve.web").joinpath(STYLES_DIR, STYLESHEET).read_text(encoding="utf-8")


def load_asset(directory: str, remainder: str) -> bytes | None:
    """Return the embedded file ``directory/remainder`` or ``None``.

    Only plain downward paths are accepted; empty, ``.`` and ``..`` segments
    are rejected.
    """
    parts = remainder.split("/")
    if not remainder or any(part in ("", ".", "..") or "\\" in part for part in parts):
        return None

    resource = files("mdserve.web").joinpath(directory)
    for part in parts:
        resource = resource.joinpath(part)
    if not resource.is_file():
        return None
    return resource.read_bytes()


def render_index_page(sections: Sequence[str], entries: Iterable["IndexEntry"]) -> str:
    template = _ENV.get_template("index.html")
    return template.render(sections=list(sections), docs=list(entries), styles=load_styles())


def render_document_page(sections: Sequence[str], metadata: "Metadata", body: str) -> str:
    template = _ENV.get_template("document.html")
    return template.render(
        sections=list(sections),
        meta=metadata,
        markdown=body,
        styles=load_styles(),
    )
