"""Inline renderer: inline nodes to styled fragments, including links."""

from __future__ import annotations

from dataclasses import dataclass, field

from mdv.config import LayoutConfig, LinkStyle, LinkTruncation
from mdv.document import (
    CodeSpan,
    Emphasis,
    Escape,
    FootnoteRef,
    Inline,
    LineBreak,
    Link,
    RawHtml,
    Strikethrough,
    TaskMarker,
    Text,
)
from mdv.fragments import Fragment, Style
from mdv.palette import Palette
from mdv.utils import truncate_to_width

CUT_URL_WIDTH = 40
IMAGE_MARKER = "[IMAGE] "


def is_html_comment(html: str) -> bool:
    stripped = html.strip()
    return stripped.startswith("<!--") and stripped.endswith("-->")


@dataclass
class LinkReferences:
    """Numbered link targets collected for ``inlinetable`` link style.

    Numbers keep increasing for the whole render pass, so two blocks never
    reuse a reference number.
    """

    next_number: int = 1
    pending: list[tuple[int, str]] = field(default_factory=list)

    def add(self, url: str) -> int:
        number = self.next_number
        self.next_number += 1
        self.pending.append((number, url))
        return number

    def drain(self) -> list[tuple[int, str]]:
        refs, self.pending = self.pending, []
        return refs


class InlineRenderer:
    """Renders inline nodes with palette styles and the configured link style."""

    def __init__(
        self,
        config: LayoutConfig,
        palette: Palette,
        references: LinkReferences | None = None,
    ) -> None:
        self.config = config
        self.palette = palette
        self.references = references if references is not None else LinkReferences()

    def style(self, role: str, **attrs: object) -> Style:
        return Style(fg=self.palette.color(role), **attrs)

    @property
    def text_style(self) -> Style:
        return self.style("text")

    def render(
        self,
        inlines: list[Inline],
        base: Style | None = None,
        *,
        in_table: bool = False,
        available: int | None = None,
    ) -> list[Fragment]:
        """Render *inlines* on top of *base* (defaults to the ``text`` role).

        *available* is the line width the fragments will be wrapped to; it
        bounds cut URLs.
        """
        out: list[Fragment] = []
        self._render_into(out, inlines, base or self.text_style, in_table, available)
        return out

    # -- dispatch ------------------------------------------------------------

    def _render_into(
        self,
        out: list[Fragment],
        inlines: list[Inline],
        style: Style,
        in_table: bool,
        available: int | None,
    ) -> None:
        for node in inlines:
            if isinstance(node, (Text, Escape)):
                text = node.text.replace("\t", " " * self.config.tab_length)
                if text:
                    out.append(Fragment(text, style))
            elif isinstance(node, Emphasis):
                self._render_into(out, node.children, self._emphasis_style(node.kind, style),
                                  in_table, available)
            elif isinstance(node, Strikethrough):
                struck = style.merge(fg=self.palette.color("strikethrough"), strikethrough=True)
                self._render_into(out, node.children, struck, in_table, available)
            elif isinstance(node, CodeSpan):
                out.append(Fragment(f"`{node.code}`", style.merge(fg=self.palette.color("code"))))
            elif isinstance(node, Link):
                if node.is_image:
                    self._render_image(out, node, style, in_table, available)
                else:
                    self._render_link(out, node, style, in_table, available)
            elif isinstance(node, FootnoteRef):
                out.append(Fragment(f"[^{node.label}]", self.style("link")))
            elif isinstance(node, TaskMarker):
                out.append(Fragment("[x] " if node.checked else "[ ] ", self.style("list_marker")))
            elif isinstance(node, LineBreak):
                out.append(Fragment("\n" if node.hard else " ", style))
            elif isinstance(node, RawHtml):
                if is_html_comment(node.html) and not self.config.hide_comments:
                    out.append(Fragment(node.html, self.style("text_light")))

    def _emphasis_style(self, kind: str, style: Style) -> Style:
        if kind == "weak":
            return style.merge(fg=self.palette.color("emphasis"), italic=True)
        if kind == "strong":
            return style.merge(fg=self.palette.color("strong"), bold=True)
        return style.merge(fg=self.palette.color("strong"), bold=True, italic=True)

    # -- links ---------------------------------------------------------------

    def _url_fragment(self, url: str, style: Style, available: int | None) -> Fragment:
        mode = self.config.link_truncation
        if mode is LinkTruncation.CUT:
            limit = CUT_URL_WIDTH if available is None else min(CUT_URL_WIDTH, max(available, 1))
            return Fragment(truncate_to_width(url, limit), style, breakable=False)
        if mode is LinkTruncation.NONE:
            return Fragment(url, style, breakable=False)
        return Fragment(url, style)

    def _render_link(
        self,
        out: list[Fragment],
        node: Link,
        style: Style,
        in_table: bool,
        available: int | None,
    ) -> None:
        link_style = self.config.link_style
        label_style = style.merge(fg=self.palette.color("link"))
        url_style = self.style("link")

        if link_style is LinkStyle.CLICKABLE:
            target = None if in_table else node.target
            self._render_into(out, node.children, label_style.merge(underline=True, link=target),
                              in_table, available)
        elif link_style is LinkStyle.FCLICKABLE:
            target = None if in_table else node.target
            out.append(self._url_fragment(node.target, url_style.merge(underline=True, link=target),
                                          available))
        elif link_style is LinkStyle.INLINE:
            self._render_into(out, node.children, label_style, in_table, available)
            out.append(Fragment(" (", url_style))
            out.append(self._url_fragment(node.target, url_style, available))
            out.append(Fragment(")", url_style))
        elif link_style is LinkStyle.INLINE_TABLE:
            self._render_into(out, node.children, label_style, in_table, available)
            number = self.references.add(node.target)
            out.append(Fragment(f"[{number}]", url_style))
        else:
            self._render_into(out, node.children, label_style, in_table, available)

    def _render_image(
        self,
        out: list[Fragment],
        node: Link,
        style: Style,
        in_table: bool,
        available: int | None,
    ) -> None:
        out.append(Fragment(IMAGE_MARKER, self.style("link")))
        self._render_into(out, node.children, style, in_table, available)

    # -- reference lines -------------------------------------------------------

    def reference_fragments(self, number: int, url: str, available: int | None) -> list[Fragment]:
        """Fragments of one ``[n] url`` line appended after a block."""
        url_style = self.style("link")
        return [
            Fragment(f"[{number}] ", self.style("text_light")),
            self._url_fragment(url, url_style, available),
        ]
