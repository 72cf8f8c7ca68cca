"""Tests for the Markdown rendering pipeline."""

from __future__ import annotations

import datetime as dt
import logging
from unittest.mock import patch

import pytest
from pygments.lexers.special import TextLexer

from mdserve.rendering.markdown import ParseState, Renderer, _FenceMachine, parse_metadata, resolve_lexer

from conftest import document


@pytest.fixture(scope="module")
def renderer() -> Renderer:
    return Renderer()


class TestParseMetadata:
    """Test front matter parsing."""

    def test_valid_block(self) -> None:
        meta = parse_metadata('title = "T"\ndate = 2024-05-01\nlang = "de"\ndesc = "Short"\n')

        assert meta is not None
        assert meta.title == "T"
        assert meta.date == dt.date(2024, 5, 1)
        assert meta.lang == "de"
        assert meta.desc == "Short"

    def test_invalid_toml_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR):
            assert parse_metadata('title = "T\ndate = ') is None
        assert "Failed to parse metadata" in caplog.text

    def test_missing_required_field(self) -> None:
        assert parse_metadata('title = "T"\n') is None

    def test_wrong_type(self) -> None:
        assert parse_metadata('title = "T"\ndate = "not a date"\n') is None


class TestResolveLexer:
    """Test grammar lookup for fence labels."""

    def test_by_name(self) -> None:
        assert "python" in resolve_lexer("python").aliases

    def test_case_insensitive(self) -> None:
        assert "python" in resolve_lexer("Python").aliases

    def test_by_extension(self) -> None:
        assert "rust" in resolve_lexer("rs").aliases

    def test_extra_words_ignored(self) -> None:
        assert "python" in resolve_lexer("python title=x").aliases

    @pytest.mark.parametrize("label", ["", "   ", "no-such-language-here"])
    def test_falls_back_to_plain_text(self, label: str) -> None:
        assert isinstance(resolve_lexer(label), TextLexer)


class TestFenceMachine:
    """Test ParseState transitions."""

    def test_meta_block(self, renderer: Renderer) -> None:
        machine = _FenceMachine(renderer)
        assert machine.state is ParseState.NORMAL

        machine.start(" meta ")
        assert machine.state is ParseState.IN_META_BLOCK
        machine.text('title = "T"\ndate = 2024-05-01\n')
        assert machine.end() is None

        assert machine.state is ParseState.NORMAL
        assert machine.metadata is not None
        assert machine.metadata.title == "T"

    def test_highlight_block(self, renderer: Renderer) -> None:
        machine = _FenceMachine(renderer)

        machine.start("python")
        assert machine.state is ParseState.IN_HIGHLIGHT_BLOCK
        machine.text("print('hi')\n")
        fragment = machine.end()

        assert machine.state is ParseState.NORMAL
        assert fragment is not None
        assert "print" in fragment
        assert "style=" in fragment

    def test_failed_meta_keeps_earlier_metadata(self, renderer: Renderer) -> None:
        machine = _FenceMachine(renderer)
        machine.start("meta")
        machine.text('title = "First"\ndate = 2024-05-01\n')
        machine.end()

        machine.start("meta")
        machine.text("not = = toml")
        machine.end()

        assert machine.metadata is not None
        assert machine.metadata.title == "First"

    def test_accumulator_cleared_between_blocks(self, renderer: Renderer) -> None:
        machine = _FenceMachine(renderer)
        machine.start("text")
        machine.text("alpha\n")
        machine.end()

        machine.start("text")
        machine.text("beta\n")
        fragment = machine.end()

        assert fragment is not None
        assert "beta" in fragment
        assert "alpha" not in fragment


class TestConvert:
    """Test Markdown to HTML conversion."""

    def test_round_trip(self, renderer: Renderer) -> None:
        source = '```meta\ntitle = "T"\ndate = 2024-05-01\n```\n\nSome body text.\n'

        body, meta = renderer.convert(source)

        assert "<p>Some body text.</p>" in body
        assert meta is not None
        assert meta.title == "T"
        assert meta.date == dt.date(2024, 5, 1)

    def test_meta_block_not_emitted(self, renderer: Renderer) -> None:
        body, _ = renderer.convert(document("T", "2024-05-01", "Body."))

        assert "title =" not in body
        assert "<code" not in body

    def test_invalid_meta_still_renders_body(self, renderer: Renderer) -> None:
        source = "```meta\ntitle = = broken\n```\n\nStill *here*.\n"

        body, meta = renderer.convert(source)

        assert meta is None
        assert "<em>here</em>" in body

    def test_no_meta(self, renderer: Renderer) -> None:
        body, meta = renderer.convert("# Heading\n")

        assert meta is None
        assert "<h1>Heading</h1>" in body

    def test_code_block_highlighted(self, renderer: Renderer) -> None:
        body, _ = renderer.convert("```python\ndef f():\n    return 1\n```\n")

        assert 'class="highlight"' in body
        assert "<span" in body
        assert "language-python" not in body

    def test_unlabelled_fence_rendered_as_plain_text(self, renderer: Renderer) -> None:
        body, _ = renderer.convert("```\n<b>raw</b>\n```\n")

        assert 'class="highlight"' in body
        assert "&lt;b&gt;raw&lt;/b&gt;" in body

    def test_indented_code_passes_through(self, renderer: Renderer) -> None:
        body, _ = renderer.convert("Para.\n\n    indented code\n")

        assert "<pre><code>indented code\n</code></pre>" in body

    def test_highlight_failure_falls_back_to_plain_code(self, renderer: Renderer) -> None:
        with patch("mdserve.rendering.markdown.highlight", side_effect=RuntimeError("boom")):
            body, _ = renderer.convert("```python\nx = 1 < 2\n```\n")

        assert "<pre><code>x = 1 &lt; 2\n</code></pre>" in body

    def test_gfm_extensions(self, renderer: Renderer) -> None:
        source = (
            "| a | b |\n|---|---|\n| 1 | 2 |\n\n"
            "~~gone~~\n\n"
            "- [x] done\n- [ ] todo\n\n"
            "Visit https://example.com today.\n\n"
            "Note[^1].\n\n[^1]: The footnote.\n"
        )

        body, _ = renderer.convert(source)

        assert "<table>" in body
        assert "<s>gone</s>" in body
        assert 'type="checkbox"' in body
        assert 'href="https://example.com"' in body
        assert "The footnote." in body


class TestRender:
    """Test full page rendering."""

    def test_page_uses_metadata(self, renderer: Renderer) -> None:
        page, meta = renderer.render(["", "blog"], document("My Title", "2024-05-01", "Body.", lang="fr", desc="About it"))

        assert meta is not None
        assert "<title>My Title</title>" in page
        assert '<html lang="fr">' in page
        assert 'content="About it"' in page
        assert "2024-05-01" in page
        assert "<p>Body.</p>" in page

    def test_page_defaults_without_metadata(self, renderer: Renderer) -> None:
        page, meta = renderer.render([""], "Just text.\n")

        assert meta is None
        assert "UNTITLED!" in page
        assert "2024-01-01" in page

    def test_navigation_lists_sections(self, renderer: Renderer) -> None:
        page, _ = renderer.render(["", "blog", "notes"], "Text.\n")

        assert 'href="/index.html"' in page
        assert 'href="/blog/index.html"' in page
        assert 'href="/notes/index.html"' in page

    def test_title_is_escaped(self, renderer: Renderer) -> None:
        page, _ = renderer.render([""], document("<script>x</script>", "2024-05-01"))

        assert "<script>x</script>" not in page
        assert "&lt;script&gt;" in page
