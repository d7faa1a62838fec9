"""Heading placement: per-level indent, centering, flat layout, smart indent."""

from __future__ import annotations

from mdv.config import HeadingLayout
from mdv.fragments import PLAIN, Fragment, Line, line_width

INDENT_STEP = 1


class HeadingLayoutEngine:
    """Places wrapped heading lines and tracks the indent of following content.

    One engine lives for a whole render pass: smart indent depends on the
    top-level headings seen so far.  Headings nested in lists or quotes are
    placed with ``track=False`` and leave that state alone.
    """

    def __init__(self, mode: HeadingLayout, smart_indent: bool = False) -> None:
        self.mode = mode
        self.smart_indent = smart_indent
        self._stack: list[tuple[int, int]] = []  # (level, indent)
        self._content_indent = 0

    def _peek_indent(self, level: int) -> int:
        if self.mode is not HeadingLayout.LEVEL:
            return 0
        if not self.smart_indent:
            return (level - 1) * INDENT_STEP
        stack = [entry for entry in self._stack if entry[0] < level]
        return stack[-1][1] + INDENT_STEP if stack else 0

    def heading_indent(self, level: int) -> int:
        """Indent (in cells) of a heading of *level*; updates smart-indent state."""
        indent = self._peek_indent(level)
        if self.mode is HeadingLayout.LEVEL and self.smart_indent:
            while self._stack and self._stack[-1][0] >= level:
                self._stack.pop()
            self._stack.append((level, indent))
        return indent

    def content_indent(self) -> int:
        """Indent applied to blocks after the most recent top-level heading."""
        return self._content_indent

    def _track_content_indent(self, indent: int) -> None:
        if self.mode is HeadingLayout.LEVEL:
            self._content_indent = indent + INDENT_STEP
        elif self.mode is HeadingLayout.FLAT:
            self._content_indent = INDENT_STEP
        else:
            self._content_indent = 0

    def place(self, level: int, lines: list[Line], width: int, track: bool = True) -> list[Line]:
        """Position the already wrapped *lines* of a heading."""
        indent = self.heading_indent(level) if track else self._peek_indent(level)
        if track:
            self._track_content_indent(indent)

        if self.mode is HeadingLayout.CENTER:
            placed: list[Line] = []
            for line in lines:
                pad = max(0, (width - line_width(line)) // 2)
                placed.append([Fragment(" " * pad, PLAIN), *line] if pad else list(line))
            return placed

        if not indent:
            return [list(line) for line in lines]
        pad = Fragment(" " * indent, PLAIN)
        return [[pad, *line] for line in lines]

    def wrap_width(self, level: int, width: int) -> int:
        """Width available for heading text before placement."""
        return max(1, width - self._peek_indent(level))
