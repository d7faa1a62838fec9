"""Tests for mdv.headings -- heading placement and smart indent."""

from __future__ import annotations

from mdv.config import HeadingLayout, LayoutConfig
from mdv.controller import RenderController
from mdv.fragments import Fragment, line_text
from mdv.headings import HeadingLayoutEngine
from mdv.palette import Palette
from mdv.utils import strip_ansi


def _plain_lines(md_text: str, **overrides: object) -> list[str]:
    """Render markdown and return lines with ANSI stripped."""
    config = LayoutConfig(**{"width": 40, **overrides})
    out = RenderController(config, Palette.builtin("terminal")).render_text(md_text)
    return [strip_ansi(line) for line in out.split("\n")[:-1]]


# ---------------------------------------------------------------------------
# Level layout
# ---------------------------------------------------------------------------


class TestLevelLayout:
    """Headings indented by level, content one step deeper."""

    def test_indent_by_level(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL)
        placed = engine.place(3, [[Fragment("T")]], 80)
        assert line_text(placed[0]) == "  T"
        assert engine.content_indent() == 3

    def test_content_follows_heading(self) -> None:
        lines = _plain_lines("# A\n\ntext\n\n## B\n\nmore")
        assert lines == ["A", "", " text", "", " B", "", "  more"]

    def test_heading_inside_list_keeps_content_indent(self) -> None:
        lines = _plain_lines("# T\n\n- ### x\n\npara")
        assert lines[0] == "T"
        assert lines[2].startswith(" - ")
        assert lines[-1] == " para"

    def test_wrap_width_accounts_for_indent(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL)
        assert engine.wrap_width(3, 80) == 78


class TestSmartIndent:
    """Smart indent follows the heading hierarchy, not the raw level."""

    def test_skipped_levels_indent_one_step(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL, smart_indent=True)
        assert engine.heading_indent(1) == 0
        # An H4 directly under an H1 sits where an H2 would
        assert engine.heading_indent(4) == 1
        assert engine.heading_indent(2) == 1
        assert engine.heading_indent(3) == 2

    def test_new_top_level_resets(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL, smart_indent=True)
        engine.heading_indent(2)
        engine.heading_indent(3)
        assert engine.heading_indent(1) == 0

    def test_wrap_width_does_not_mutate(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL, smart_indent=True)
        engine.heading_indent(1)
        assert engine.wrap_width(4, 80) == 79
        assert engine.heading_indent(2) == 1

    def test_untracked_place_leaves_state(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.LEVEL, smart_indent=True)
        engine.place(1, [[Fragment("A")]], 80)
        placed = engine.place(4, [[Fragment("x")]], 80, track=False)
        assert line_text(placed[0]) == " x"
        assert engine.content_indent() == 1
        assert engine.heading_indent(2) == 1

    def test_rendered(self) -> None:
        lines = _plain_lines("# A\n\n#### D\n\nbody", smart_indent=True)
        assert lines == ["A", "", " D", "", "  body"]


# ---------------------------------------------------------------------------
# Other layouts
# ---------------------------------------------------------------------------


class TestOtherLayouts:
    """center, flat and none."""

    def test_center(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.CENTER)
        placed = engine.place(1, [[Fragment("abcd")]], 20)
        assert line_text(placed[0]) == " " * 8 + "abcd"
        assert engine.content_indent() == 0

    def test_flat(self) -> None:
        engine = HeadingLayoutEngine(HeadingLayout.FLAT)
        placed = engine.place(3, [[Fragment("T")]], 80)
        assert line_text(placed[0]) == "T"
        assert engine.content_indent() == 1

    def test_none(self) -> None:
        lines = _plain_lines("### T\n\nbody", heading_layout=HeadingLayout.NONE)
        assert lines == ["T", "", "body"]

    def test_empty_heading_hidden(self) -> None:
        assert _plain_lines("#\n\nbody") == ["body"]

    def test_empty_heading_placeholder(self) -> None:
        lines = _plain_lines("##\n", show_empty_elements=True)
        assert lines == [" ##"]
