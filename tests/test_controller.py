"""Tests for mdv.controller and mdv.composer -- full render passes."""

from __future__ import annotations

import logging

import pytest

from mdv.composer import join_blocks
from mdv.config import CodeBlockStyle, FromSelector, HeadingLayout, LayoutConfig, LinkStyle, WrapMode
from mdv.controller import RenderController, select_from
from mdv.document import Document, Paragraph, Table, Text
from mdv.fragments import Fragment, line_text
from mdv.highlight import Highlighter
from mdv.palette import Palette
from mdv.parser import parse
from mdv.utils import strip_ansi, visible_width

THREE = "A\n\nB\n\nC\n"


def _controller(**overrides: object) -> RenderController:
    config = LayoutConfig(**{"width": 40, **overrides})
    return RenderController(config, Palette.builtin("terminal"), Highlighter())


def _plain_lines(md_text: str, **overrides: object) -> list[str]:
    """Render markdown and return lines with ANSI stripped."""
    out = _controller(**overrides).render_text(md_text)
    return [strip_ansi(line) for line in out.split("\n")[:-1]]


def _lines(*texts: str) -> list[list[Fragment]]:
    return [[Fragment(t)] if t else [] for t in texts]


# ---------------------------------------------------------------------------
# Block joining
# ---------------------------------------------------------------------------


class TestJoinBlocks:
    """Exactly one blank line between blocks."""

    def test_single_separator(self) -> None:
        out = join_blocks([_lines("a"), _lines("b")])
        assert [line_text(line) for line in out] == ["a", "", "b"]

    def test_no_double_blank(self) -> None:
        out = join_blocks([_lines("a", ""), _lines("b")])
        assert [line_text(line) for line in out] == ["a", "", "b"]

    def test_empty_blocks_skipped(self) -> None:
        out = join_blocks([_lines("a"), [], _lines("b")])
        assert [line_text(line) for line in out] == ["a", "", "b"]

    def test_tight(self) -> None:
        out = join_blocks([_lines("a"), _lines("b")], blank=False)
        assert [line_text(line) for line in out] == ["a", "b"]


# ---------------------------------------------------------------------------
# Reverse and from
# ---------------------------------------------------------------------------


class TestReverseAndFrom:
    """Post-composition block reversal and line selection."""

    def test_reverse(self) -> None:
        assert _plain_lines(THREE, reverse=True) == ["C", "", "B", "", "A"]

    def test_from_text(self) -> None:
        assert _plain_lines(THREE, from_selector=FromSelector("B")) == ["B", "", "C"]

    def test_from_with_limit(self) -> None:
        assert _plain_lines(THREE, from_selector=FromSelector("A", 3)) == ["A", "", "B"]

    def test_from_not_found_starts_at_top(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            lines = select_from(_lines("a", "b"), FromSelector("zzz"))
        assert [line_text(line) for line in lines] == ["a", "b"]
        assert "not found" in caplog.text

    def test_reverse_keeps_forward_numbering(self) -> None:
        md = "[a](http://a)\n\n[b](http://b)\n"
        lines = _plain_lines(md, reverse=True, link_style=LinkStyle.INLINE_TABLE)
        assert lines[0] == "b[2]"


# ---------------------------------------------------------------------------
# Block rendering
# ---------------------------------------------------------------------------


class TestBlocks:
    """Lists, quotes, rules and code blocks."""

    def test_tight_list(self) -> None:
        assert _plain_lines("- a\n- b") == ["- a", "- b"]

    def test_loose_list(self) -> None:
        assert _plain_lines("- a\n\n- b") == ["- a", "", "- b"]

    def test_nested_list(self) -> None:
        assert _plain_lines("- a\n  - b") == ["- a", "  - b"]

    def test_ordered_start(self) -> None:
        assert _plain_lines("3. x\n4. y") == ["3. x", "4. y"]

    def test_list_item_wraps_under_marker(self) -> None:
        lines = _plain_lines("- " + "word " * 12, wrap=WrapMode.WORD)
        assert lines[0].startswith("- word")
        assert all(line.startswith("  word") for line in lines[1:])

    def test_blockquote(self) -> None:
        assert _plain_lines("> hi\n>\n> there") == ["│ hi", "│", "│ there"]

    def test_quoted_paragraph_is_italic(self) -> None:
        lines = _controller().render(parse("> > deep\n\nplain"))
        quoted = [f for f in lines[0] if f.text.strip() == "deep"]
        assert quoted and quoted[0].style.italic
        plain = [f for f in lines[-1] if f.text == "plain"]
        assert plain and not plain[0].style.italic

    def test_rule_spans_width(self) -> None:
        assert _plain_lines("---", width=10) == ["◈────────◈"]

    def test_pretty_code_block(self) -> None:
        lines = _plain_lines("```python\nx = 1\n```")
        assert lines[0].startswith("╭─ Python ")
        assert lines[1].startswith("│ x = 1")
        assert lines[-1].startswith("╰")
        assert all(visible_width(line) == 40 for line in lines)

    def test_simple_code_block(self) -> None:
        lines = _plain_lines("```python\nx = 1\n```", code_block_style=CodeBlockStyle.SIMPLE)
        assert lines == ["Python", "│ x = 1"]

    def test_code_block_without_language_label(self) -> None:
        lines = _plain_lines(
            "```\nplain\n```",
            code_block_style=CodeBlockStyle.SIMPLE,
            show_language=False,
        )
        assert lines == ["│ plain"]

    def test_footnote(self) -> None:
        lines = _plain_lines("x[^1]\n\n[^1]: note")
        assert lines[0] == "x[^1]"
        assert lines[-1] == "[^1]: note"

    def test_definition_list(self) -> None:
        assert _plain_lines("Term\n: meaning") == ["Term", "  : meaning"]


# ---------------------------------------------------------------------------
# Empty elements
# ---------------------------------------------------------------------------


def _stripped(md_text: str, **overrides: object) -> list[str]:
    return [line.rstrip() for line in _plain_lines(md_text, **overrides)]


class TestShowEmptyElements:
    """Empty blocks are dropped by default and kept with show_empty_elements."""

    def test_empty_heading_keeps_both_separators(self) -> None:
        md = "a\n\n#\n\nb"
        assert _stripped(md, heading_layout=HeadingLayout.NONE) == ["a", "", "b"]
        assert _stripped(md, heading_layout=HeadingLayout.NONE, show_empty_elements=True) == [
            "a", "", "#", "", "b",
        ]

    def test_empty_paragraph_never_removes_separator(self) -> None:
        doc = Document()
        doc.roots = [
            doc.add(Paragraph([Text("a")])),
            doc.add(Paragraph([])),
            doc.add(Paragraph([Text("b")])),
        ]
        for show_empty in (False, True):
            out = _controller(show_empty_elements=show_empty).render_to_string(doc)
            assert strip_ansi(out).split("\n")[:-1] == ["a", "", "b"]

    def test_empty_list_item(self) -> None:
        assert _stripped("- \n- x") == ["- x"]
        assert _stripped("- \n- x", show_empty_elements=True) == ["-", "- x"]

    def test_empty_blockquote(self) -> None:
        assert _stripped("a\n\n>\n\nb") == ["a", "", "b"]
        assert _stripped("a\n\n>\n\nb", show_empty_elements=True) == ["a", "", "│", "", "b"]

    def test_empty_code_block(self) -> None:
        options = {"code_block_style": CodeBlockStyle.SIMPLE, "show_language": False}
        assert _stripped("a\n\n```\n```\n\nb", **options) == ["a", "", "b"]
        assert _stripped("a\n\n```\n```\n\nb", show_empty_elements=True, **options) == [
            "a", "", "│", "", "b",
        ]


# ---------------------------------------------------------------------------
# Degradation and sinks
# ---------------------------------------------------------------------------


class TestDegradation:
    """Malformed blocks render as text instead of failing the pass."""

    def test_ragged_table_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        doc = Document()
        doc.roots = [
            doc.add(Table(header=[[Text("a")], [Text("b")]], rows=[[[Text("1")]]])),
            doc.add(Paragraph([Text("after")])),
        ]
        with caplog.at_level(logging.WARNING):
            out = _controller().render_to_string(doc)
        assert strip_ansi(out).split("\n")[:-1] == ["a | b", "1", "", "after"]
        assert "malformed" in caplog.text

    def test_html_output(self) -> None:
        out = _controller().render_text("# Hi", html=True)
        assert out.startswith('<pre class="mdv">')
        assert "Hi" in out
