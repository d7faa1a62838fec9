"""Render controller: one full pass from document to serialized output."""

from __future__ import annotations

import logging

from mdv.composer import BlockComposer, ComposedBlock, join_blocks
from mdv.config import FromSelector, LayoutConfig
from mdv.document import Document
from mdv.fragments import Line, line_text
from mdv.highlight import Highlighter
from mdv.palette import Palette
from mdv.parser import parse
from mdv.sink import AnsiSink, HtmlSink, OutputSink, serialize

logger = logging.getLogger(__name__)


def select_from(lines: list[Line], selector: FromSelector) -> list[Line]:
    """Start at the first line containing ``selector.text``; clip to its limit."""
    start = 0
    for idx, line in enumerate(lines):
        if selector.text in line_text(line):
            start = idx
            break
    else:
        logger.warning("Text '%s' not found, rendering from the beginning", selector.text)

    selected = lines[start:]
    if selector.limit is not None:
        selected = selected[:selector.limit]
    return selected


class RenderController:
    """Runs the composer over a document and applies reverse/from/clip."""

    def __init__(
        self,
        config: LayoutConfig,
        palette: Palette,
        highlighter: Highlighter | None = None,
    ) -> None:
        self.config = config
        self.palette = palette
        self.highlighter = highlighter

    def compose_blocks(self, document: Document) -> list[ComposedBlock]:
        """Compose every top-level block in document order.

        Composition always runs forward so heading indentation and link
        numbering see the blocks in source order, even when reversed later.
        """
        composer = BlockComposer(document, self.config, self.palette, self.highlighter)
        return list(composer.compose())

    def render(self, document: Document) -> list[Line]:
        blocks = self.compose_blocks(document)
        if self.config.reverse:
            blocks.reverse()
        lines = join_blocks([block.lines for block in blocks])
        if self.config.from_selector is not None:
            lines = select_from(lines, self.config.from_selector)
        return lines

    def make_sink(self, html: bool = False) -> OutputSink:
        if html:
            return HtmlSink(self.palette.background, no_colors=self.config.no_colors)
        return AnsiSink(no_colors=self.config.no_colors)

    def render_to_string(self, document: Document, html: bool = False) -> str:
        return serialize(self.render(document), self.make_sink(html))

    def render_text(self, source: str, html: bool = False) -> str:
        """Parse Markdown *source* and render it in one call."""
        return self.render_to_string(parse(source), html)
