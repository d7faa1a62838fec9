"""Block composer: walks the document arena and drives the layout engines.

Every block composes to lines relative to its own container; containers add
their prefixes (list markers, quote bars, indentation).  The nesting state
travels in an explicit :class:`ComposeContext` copied into nested calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterator

from mdv.config import CodeBlockStyle, LayoutConfig
from mdv.document import (
    Block,
    BlockQuote,
    CodeBlock,
    DefinitionList,
    Document,
    FootnoteDefinition,
    Heading,
    HtmlBlock,
    ListBlock,
    Paragraph,
    Table,
    ThematicBreak,
)
from mdv.errors import MalformedBlockError
from mdv.fragments import PLAIN, Fragment, Line, Style, line_width
from mdv.headings import HeadingLayoutEngine
from mdv.highlight import Highlighter, PLAIN_ROLE
from mdv.inline import InlineRenderer, LinkReferences, is_html_comment
from mdv.palette import Palette
from mdv.table import TableLayoutEngine, raw_lines
from mdv.utils import visible_width
from mdv.wrap import wrap

logger = logging.getLogger(__name__)

QUOTE_BAR = "│"
CODE_GUTTER = "│ "
RULE_END = "◈"
DEFINITION_MARKER = "  : "
MIN_PRETTY_WIDTH = 8


# ---------------------------------------------------------------------------
# Context and helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComposeContext:
    """Nesting state for one composition call.

    ``width`` is what remains for content after every enclosing prefix;
    ``quote_depth`` counts the enclosing block quotes.
    """

    width: int
    quote_depth: int = 0


@dataclass
class ComposedBlock:
    """Lines of one top-level block, ready to be joined."""

    index: int
    lines: list[Line]


def join_blocks(parts: list[list[Line]], blank: bool = True) -> list[Line]:
    """Concatenate block outputs, separated by exactly one blank line.

    A separator is skipped when either side already has a blank line there,
    so blanks never double up and never vanish between two non-blank blocks.
    """
    out: list[Line] = []
    for lines in parts:
        if not lines:
            continue
        last_blank = bool(out) and not out[-1]
        if blank and out and not last_blank and lines[0]:
            out.append([])
        out.extend(lines)
    return out


def prefix_lines(lines: list[Line], first: Line, rest: Line) -> list[Line]:
    """Prepend *first* to the first line and *rest* to the others.

    Blank lines after the first stay blank instead of carrying trailing
    padding.
    """
    out: list[Line] = []
    for i, line in enumerate(lines):
        if i == 0:
            out.append([*first, *line])
        elif not line:
            out.append([])
        else:
            out.append([*rest, *line])
    return out


def indent_lines(lines: list[Line], indent: int) -> list[Line]:
    if indent <= 0:
        return lines
    pad = Fragment(" " * indent, PLAIN)
    return [[pad, *line] if line else [] for line in lines]


# ---------------------------------------------------------------------------
# Composer
# ---------------------------------------------------------------------------


class BlockComposer:
    """Composes the blocks of one document for one render pass."""

    def __init__(
        self,
        document: Document,
        config: LayoutConfig,
        palette: Palette,
        highlighter: Highlighter | None = None,
    ) -> None:
        self.document = document
        self.config = config
        self.palette = palette
        self.highlighter = highlighter
        self.references = LinkReferences()
        self.inline = InlineRenderer(config, palette, self.references)
        self.tables = TableLayoutEngine(config, palette, self.inline)
        self.headings = HeadingLayoutEngine(config.heading_layout, config.smart_indent)
        self._width_warned = False

    def style(self, role: str, **attrs: object) -> Style:
        return Style(fg=self.palette.color(role), **attrs)

    def compose(self) -> Iterator[ComposedBlock]:
        """Yield the top-level blocks in document order."""
        for idx, block in self.document.top_level():
            yield ComposedBlock(idx, self.compose_top(idx, block))

    def compose_top(self, idx: int, block: Block) -> list[Line]:
        width = self.config.width
        if isinstance(block, Heading):
            return self._heading(block, ComposeContext(width=width), track=True)
        indent = self.headings.content_indent()
        ctx = self._nest(ComposeContext(width=width), indent)
        return indent_lines(self.block(idx, ctx), indent)

    def _nest(self, ctx: ComposeContext, indent: int, **changes: object) -> ComposeContext:
        remaining = ctx.width - indent
        if remaining < 1 and not self._width_warned:
            logger.debug("Width %d too small for nesting; output will overflow", self.config.width)
            self._width_warned = True
        return replace(ctx, width=max(1, remaining), **changes)

    def children(self, ids: list[int], ctx: ComposeContext, blank: bool = True) -> list[Line]:
        return join_blocks([self.block(i, ctx) for i in ids], blank)

    def block(self, idx: int, ctx: ComposeContext) -> list[Line]:
        """Compose the block at *idx*; malformed blocks degrade to raw text."""
        block = self.document[idx]
        try:
            return self._dispatch(block, ctx)
        except MalformedBlockError as exc:
            logger.warning("Rendering malformed block as text: %s", exc)
            return self._raw_fallback(block, ctx)

    def _dispatch(self, block: Block, ctx: ComposeContext) -> list[Line]:
        if isinstance(block, Paragraph):
            return self._paragraph(block, ctx)
        if isinstance(block, Heading):
            return self._heading(block, ctx)
        if isinstance(block, ListBlock):
            return self._list(block, ctx)
        if isinstance(block, BlockQuote):
            return self._blockquote(block, ctx)
        if isinstance(block, CodeBlock):
            return self._code_block(block, ctx)
        if isinstance(block, Table):
            return self._table(block, ctx)
        if isinstance(block, ThematicBreak):
            return self._rule(ctx)
        if isinstance(block, HtmlBlock):
            return self._html(block, ctx)
        if isinstance(block, DefinitionList):
            return self._definition_list(block, ctx)
        if isinstance(block, FootnoteDefinition):
            return self._footnote(block, ctx)
        return []

    def _raw_fallback(self, block: Block, ctx: ComposeContext) -> list[Line]:
        texts = raw_lines(block) if isinstance(block, Table) else []
        frags: list[Fragment] = []
        for text in texts:
            if frags:
                frags.append(Fragment("\n", PLAIN))
            frags.append(Fragment(text, self.style("text")))
        return wrap(frags, ctx.width, self.config.wrap)

    # -- leaf blocks -----------------------------------------------------------

    def _references(self, width: int) -> list[Line]:
        """``[n] url`` lines for links collected since the last drain."""
        refs = self.references.drain()
        if not refs:
            return []
        lines: list[Line] = [[]]
        for number, url in refs:
            frags = self.inline.reference_fragments(number, url, width)
            lines.extend(wrap(frags, width, self.config.wrap))
        return lines

    def _paragraph(self, block: Paragraph, ctx: ComposeContext) -> list[Line]:
        quoted = ctx.quote_depth > 0
        base = self.style("quote" if quoted else "text", italic=quoted)
        frags = self.inline.render(block.inlines, base, available=ctx.width)
        lines = wrap(frags, ctx.width, self.config.wrap, self.config.show_empty_elements)
        return lines + self._references(ctx.width)

    def _heading(self, block: Heading, ctx: ComposeContext, track: bool = False) -> list[Line]:
        style = self.style(f"h{block.level}", bold=True)
        wrap_width = self.headings.wrap_width(block.level, ctx.width)
        frags = self.inline.render(block.inlines, style, available=wrap_width)
        if not any(f.text.strip() for f in frags):
            if not self.config.show_empty_elements:
                return []
            frags = [Fragment("#" * block.level, style)]
        lines = wrap(frags, wrap_width, self.config.wrap)
        placed = self.headings.place(block.level, lines, ctx.width, track=track)
        return placed + self._references(ctx.width)

    def _rule(self, ctx: ComposeContext) -> list[Line]:
        width = ctx.width
        text = RULE_END + "─" * (width - 2) + RULE_END if width >= 2 else "─" * width
        return [[Fragment(text, self.style("border"))]]

    def _html(self, block: HtmlBlock, ctx: ComposeContext) -> list[Line]:
        if not is_html_comment(block.raw) or self.config.hide_comments:
            return []
        frags = [Fragment(block.raw, self.style("text_light"))]
        return wrap(frags, ctx.width, self.config.wrap)

    def _table(self, block: Table, ctx: ComposeContext) -> list[Line]:
        lines = self.tables.layout(block, ctx.width)
        return lines + self._references(ctx.width)

    # -- code blocks -----------------------------------------------------------

    def _code_fragments(self, code_lines: list[str], language: str | None) -> list[Line]:
        """One fragment list per source line, colored by syntax role."""
        tokens = None
        if self.highlighter is not None:
            tokens = self.highlighter.tokenize("\n".join(code_lines), language)
        if tokens is None:
            plain = self.style(PLAIN_ROLE)
            return [[Fragment(text, plain)] if text else [] for text in code_lines]

        lines: list[Line] = [[]]
        for text, role in tokens:
            style = self.style(role)
            for i, part in enumerate(text.split("\n")):
                if i:
                    lines.append([])
                if part:
                    lines[-1].append(Fragment(part, style))
        while len(lines) < len(code_lines):
            lines.append([])
        return lines[:len(code_lines)]

    def _wrap_code(self, source: list[Line], width: int) -> list[Line]:
        out: list[Line] = []
        for line in source:
            out.extend(wrap(line, width, self.config.wrap, show_empty=True))
        return out

    def _code_block(self, block: CodeBlock, ctx: ComposeContext) -> list[Line]:
        tab = " " * self.config.tab_length
        code_lines = [text.replace("\t", tab) for text in block.lines]
        if not any(text.strip() for text in code_lines):
            if not self.config.show_empty_elements:
                return []
            code_lines = code_lines or [""]

        source = self._code_fragments(code_lines, block.language)
        label = self.highlighter.language_label(block.language) if self.highlighter else (
            block.language or "Text"
        )

        if self.config.code_block_style is CodeBlockStyle.PRETTY and ctx.width >= MIN_PRETTY_WIDTH:
            return self._pretty_code(source, label, ctx.width)
        return self._simple_code(source, label, ctx.width)

    def _simple_code(self, source: list[Line], label: str, width: int) -> list[Line]:
        border = self.style("border")
        lines: list[Line] = []
        if self.config.show_language:
            lines.append([Fragment(label, self.style("text_light", italic=True))])
        inner = max(1, width - visible_width(CODE_GUTTER))
        for line in self._wrap_code(source, inner):
            lines.append([Fragment(CODE_GUTTER, border), *line])
        return lines

    def _pretty_code(self, source: list[Line], label: str, width: int) -> list[Line]:
        border = self.style("border")
        inner = width - 4

        title = f" {label} " if self.config.show_language else ""
        dashes = width - 3 - visible_width(title)
        if title and dashes >= 1:
            top = [
                Fragment("╭─", border),
                Fragment(title, self.style("text_light", bold=True)),
                Fragment("─" * dashes + "╮", border),
            ]
        else:
            top = [Fragment("╭" + "─" * (width - 2) + "╮", border)]

        lines: list[Line] = [top]
        for line in self._wrap_code(source, inner):
            pad = max(0, inner - line_width(line))
            lines.append([
                Fragment("│ ", border),
                *line,
                Fragment(" " * pad, PLAIN),
                Fragment(" │", border),
            ])
        lines.append([Fragment("╰" + "─" * (width - 2) + "╯", border)])
        return lines

    # -- containers ------------------------------------------------------------

    def _list(self, block: ListBlock, ctx: ComposeContext) -> list[Line]:
        marker_style = self.style("list_marker")
        items: list[list[Line]] = []
        number = block.start

        for item in block.items:
            marker = f"{number}. " if block.ordered else "- "
            marker_width = visible_width(marker)
            item_ctx = self._nest(ctx, marker_width)
            body = self.children(item, item_ctx, blank=not block.tight)
            if not body:
                if not self.config.show_empty_elements:
                    continue
                body = [[]]
            number += 1
            items.append(prefix_lines(
                body,
                [Fragment(marker, marker_style)],
                [Fragment(" " * marker_width, PLAIN)],
            ))

        return join_blocks(items, blank=not block.tight)

    def _blockquote(self, block: BlockQuote, ctx: ComposeContext) -> list[Line]:
        bar = self.style("quote")
        quote_ctx = self._nest(ctx, 2, quote_depth=ctx.quote_depth + 1)
        body = self.children(block.children, quote_ctx)
        if not body:
            if not self.config.show_empty_elements:
                return []
            body = [[]]
        return [
            [Fragment(QUOTE_BAR + " ", bar), *line] if line else [Fragment(QUOTE_BAR, bar)]
            for line in body
        ]

    def _definition_list(self, block: DefinitionList, ctx: ComposeContext) -> list[Line]:
        marker_style = self.style("list_marker")
        marker_width = visible_width(DEFINITION_MARKER)
        def_ctx = self._nest(ctx, marker_width)
        entries: list[list[Line]] = []

        for term, definitions in block.items:
            term_frags = self.inline.render(term, self.style("text", bold=True), available=ctx.width)
            lines = wrap(term_frags, ctx.width, self.config.wrap)
            for definition in definitions:
                body = self.children(definition, def_ctx)
                if not body:
                    continue
                lines.extend(prefix_lines(
                    body,
                    [Fragment(DEFINITION_MARKER, marker_style)],
                    [Fragment(" " * marker_width, PLAIN)],
                ))
            entries.append(lines + self._references(ctx.width))

        return join_blocks(entries)

    def _footnote(self, block: FootnoteDefinition, ctx: ComposeContext) -> list[Line]:
        marker = f"[^{block.label}]: "
        marker_width = visible_width(marker)
        body = self.children(block.body, self._nest(ctx, marker_width))
        if not body:
            body = [[]]
        return prefix_lines(
            body,
            [Fragment(marker, self.style("link"))],
            [Fragment(" " * marker_width, PLAIN)],
        )
