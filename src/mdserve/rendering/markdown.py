"""Markdown rendering pipeline.

Documents are tokenised with markdown-it-py. Fenced code blocks drive a small
state machine: a block labelled ``meta`` carries TOML front matter and is
dropped from the output, every other fenced block is highlighted with
Pygments. The converted body is wrapped in the document template.
"""

from __future__ import annotations

import enum
import html
import logging
import tomllib
from typing import Any, List, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin
from pydantic import ValidationError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.lexers.special import TextLexer
from pygments.util import ClassNotFound

from mdserve.models import Metadata
from mdserve.web.frontend import render_document_page

LOGGER = logging.getLogger(__name__)

META_LANGUAGE = "meta"
HIGHLIGHT_STYLE = "monokai"


class ParseState(enum.Enum):
    NORMAL = enum.auto()
    IN_META_BLOCK = enum.auto()
    IN_HIGHLIGHT_BLOCK = enum.auto()


def parse_metadata(text: str) -> Metadata | None:
    """Parse a ``meta`` block; logs and returns ``None`` on bad input."""
    try:
        return Metadata.model_validate(tomllib.loads(text))
    except (tomllib.TOMLDecodeError, ValidationError) as exc:
        LOGGER.error("Failed to parse metadata: %s", exc)
        return None


def resolve_lexer(info: str) -> Lexer:
    """Find a grammar for a fence label, falling back to plain text."""
    words = info.split()
    if words:
        name = words[0].lower()
        try:
            return get_lexer_by_name(name)
        except ClassNotFound:
            pass
        try:
            return get_lexer_for_filename(f"block.{name}")
        except ClassNotFound:
            pass
    return TextLexer()


class _FenceMachine:
    """Per-document parse state. Never shared between render calls."""

    def __init__(self, renderer: "Renderer") -> None:
        self._renderer = renderer
        self.state = ParseState.NORMAL
        self.metadata: Metadata | None = None
        self._code: List[str] = []
        self._lexer: Lexer = TextLexer()

    def start(self, info: str) -> None:
        label = info.strip()
        if label == META_LANGUAGE:
            self.state = ParseState.IN_META_BLOCK
        else:
            self.state = ParseState.IN_HIGHLIGHT_BLOCK
            self._lexer = resolve_lexer(label)

    def text(self, content: str) -> None:
        if self.state is ParseState.IN_META_BLOCK:
            parsed = parse_metadata(content)
            if parsed is not None:
                self.metadata = parsed
        elif self.state is ParseState.IN_HIGHLIGHT_BLOCK:
            self._code.append(content)

    def end(self) -> str | None:
        """Close the current block, returning the HTML to emit if any."""
        state, self.state = self.state, ParseState.NORMAL
        if state is ParseState.IN_META_BLOCK:
            return None
        code = "".join(self._code)
        self._code.clear()
        return self._renderer.highlight(code, self._lexer)


class Renderer:
    """Turns Markdown source into a full HTML page plus optional metadata.

    The parser and formatter are built once and only read afterwards, so one
    instance can serve every worker thread.
    """

    def __init__(self, *, style: str = HIGHLIGHT_STYLE) -> None:
        self._md = MarkdownIt("gfm-like").use(tasklists_plugin).use(footnote_plugin)
        self._formatter = HtmlFormatter(noclasses=True, style=style)

    def highlight(self, code: str, lexer: Lexer) -> str:
        try:
            return highlight(code, lexer, self._formatter)
        except Exception as exc:
            LOGGER.warning("Highlighting failed, emitting plain code: %s", exc)
            return f"<pre><code>{html.escape(code)}</code></pre>\n"

    def convert(self, source: str) -> tuple[str, Metadata | None]:
        """Convert Markdown to an HTML fragment and extract front matter."""
        env: dict[str, Any] = {}
        machine = _FenceMachine(self)
        tokens: List[Token] = []

        for token in self._md.parse(source, env):
            if token.type != "fence":
                tokens.append(token)
                continue
            machine.start(token.info)
            machine.text(token.content)
            fragment = machine.end()
            if fragment is not None:
                replacement = Token("html_block", "", 0, block=True)
                replacement.content = fragment
                replacement.map = token.map
                tokens.append(replacement)

        body = self._md.renderer.render(tokens, self._md.options, env)
        return body, machine.metadata

    def render(self, sections: Sequence[str], source: str) -> tuple[str, Metadata | None]:
        body, metadata = self.convert(source)
        page = render_document_page(sections, metadata or Metadata.default(), body)
        return page, metadata
