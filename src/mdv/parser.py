"""Markdown parsing: markdown-it-py tokens to a :class:`Document` arena.

markdown-it-py emits a flat open/close token stream.  Block tokens are walked
with index arithmetic (``_find_matching_close``); inline content lives in the
``children`` of ``inline`` tokens.
"""

from __future__ import annotations

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from mdv.document import (
    BlockQuote,
    CodeBlock,
    CodeSpan,
    DefinitionList,
    Document,
    Emphasis,
    Escape,
    FootnoteDefinition,
    FootnoteRef,
    Heading,
    HtmlBlock,
    Inline,
    LineBreak,
    Link,
    ListBlock,
    Paragraph,
    RawHtml,
    Strikethrough,
    Table,
    TaskMarker,
    Text,
    ThematicBreak,
)

BOM = "\ufeff"

# ---------------------------------------------------------------------------
# markdown-it singleton (GFM tables + strikethrough, footnotes, deflists, tasks)
# ---------------------------------------------------------------------------

_md_parser = (
    MarkdownIt("gfm-like")
    .use(footnote_plugin)
    .use(deflist_plugin)
    .use(tasklists_plugin)
)

_EMPHASIS_OPEN = {"em_open": "weak", "strong_open": "strong"}
_CLOSE_TYPES = {"em_close", "strong_close", "s_close", "link_close"}


# ---------------------------------------------------------------------------
# Token navigation helpers
# ---------------------------------------------------------------------------


def _skip_to_close(tokens: list[Token], start: int, close_type: str) -> int:
    """Index of the next token of *close_type* after *start*."""
    for idx in range(start + 1, len(tokens)):
        if tokens[idx].type == close_type:
            return idx
    return len(tokens) - 1


def _find_matching_close(tokens: list[Token], start: int, open_type: str, close_type: str) -> int:
    """Index of the *close_type* token that balances the opener at *start*.

    Same-type containers nested inside are counted so an inner close does
    not end the outer block early.
    """
    open_count = 0
    for idx in range(start, len(tokens)):
        kind = tokens[idx].type
        if kind == open_type:
            open_count += 1
        elif kind == close_type:
            open_count -= 1
            if not open_count:
                return idx
    return len(tokens) - 1


def _footnote_label(tok: Token) -> str:
    meta = tok.meta or {}
    label = meta.get("label")
    if label:
        return str(label)
    return str(int(meta.get("id", 0)) + 1)


def _alignment(tok: Token) -> str:
    style = str(tok.attrs.get("style", "") or "")
    for align in ("center", "right", "left"):
        if f"text-align:{align}" in style.replace(" ", ""):
            return align
    return "left"


# ---------------------------------------------------------------------------
# Inline conversion
# ---------------------------------------------------------------------------


def _merge_nested_emphasis(nodes: list[Inline]) -> list[Inline]:
    """Collapse ``em(strong(x))`` and ``strong(em(x))`` into ``both``."""
    for node in nodes:
        if isinstance(node, (Emphasis, Strikethrough, Link)):
            node.children = _merge_nested_emphasis(node.children)
        if (
            isinstance(node, Emphasis)
            and len(node.children) == 1
            and isinstance(node.children[0], Emphasis)
            and {node.kind, node.children[0].kind} == {"weak", "strong"}
        ):
            node.kind = "both"
            node.children = node.children[0].children
    return nodes


def convert_inline(children: list[Token] | None) -> list[Inline]:
    """Convert the children of an ``inline`` token into an inline tree."""
    root: list[Inline] = []
    current = root
    stack: list[list[Inline]] = []

    def open_container(node: Emphasis | Strikethrough | Link) -> None:
        nonlocal current
        current.append(node)
        stack.append(current)
        current = node.children

    for child in children or []:
        ct = child.type

        if ct == "text":
            text = child.content
            if current and isinstance(current[-1], TaskMarker):
                text = text.lstrip(" ")
            if text:
                current.append(Text(text))
        elif ct == "text_special":
            current.append(Escape(child.content))
        elif ct == "softbreak":
            current.append(LineBreak(hard=False))
        elif ct == "hardbreak":
            current.append(LineBreak(hard=True))
        elif ct in _EMPHASIS_OPEN:
            open_container(Emphasis(_EMPHASIS_OPEN[ct]))
        elif ct == "s_open":
            open_container(Strikethrough())
        elif ct == "link_open":
            href = str(child.attrs.get("href", "") or "")
            title = str(child.attrs.get("title", "") or "")
            open_container(Link(href, title=title))
        elif ct in _CLOSE_TYPES:
            if stack:
                current = stack.pop()
        elif ct == "code_inline":
            current.append(CodeSpan(child.content))
        elif ct == "image":
            src = str(child.attrs.get("src", "") or "")
            alt = convert_inline(child.children) or [Text(child.content)]
            current.append(Link(src, alt, is_image=True))
        elif ct == "html_inline":
            if "task-list-item-checkbox" in child.content:
                current.append(TaskMarker('checked="checked"' in child.content))
            else:
                current.append(RawHtml(child.content))
        elif ct == "footnote_ref":
            current.append(FootnoteRef(_footnote_label(child)))
        elif ct == "footnote_anchor":
            continue
        elif child.content:
            current.append(Text(child.content))

    return _merge_nested_emphasis(root)


def _inline_at(tokens: list[Token], idx: int) -> list[Inline]:
    if idx < len(tokens) and tokens[idx].type == "inline":
        return convert_inline(tokens[idx].children)
    return []


# ---------------------------------------------------------------------------
# Block conversion
# ---------------------------------------------------------------------------


class _DocumentBuilder:
    """Walks block tokens and stores the resulting nodes in a document arena."""

    def __init__(self, document: Document) -> None:
        self.doc = document

    def blocks(
        self,
        tokens: list[Token],
        start: int,
        end: int,
        list_depth: int = 0,
        quote_depth: int = 0,
    ) -> list[int]:
        ids: list[int] = []
        i = start

        while i < end:
            tok = tokens[i]
            t = tok.type

            if t == "heading_open":
                level = int(tok.tag[1]) if tok.tag and tok.tag[0] == "h" else 1
                ids.append(self.doc.add(Heading(level, _inline_at(tokens, i + 1))))
                i = _skip_to_close(tokens, i, "heading_close") + 1
                continue

            if t == "paragraph_open":
                ids.append(self.doc.add(Paragraph(_inline_at(tokens, i + 1))))
                i = _skip_to_close(tokens, i, "paragraph_close") + 1
                continue

            if t in ("fence", "code_block"):
                code = tok.content[:-1] if tok.content.endswith("\n") else tok.content
                info = tok.info.strip().split() if t == "fence" and tok.info else []
                ids.append(self.doc.add(CodeBlock(
                    lines=code.split("\n") if code else [],
                    language=info[0] if info else None,
                    fence=tok.markup if t == "fence" else "",
                )))
                i += 1
                continue

            if t in ("bullet_list_open", "ordered_list_open"):
                close_type = t.replace("_open", "_close")
                close_idx = _find_matching_close(tokens, i, t, close_type)
                ids.append(self._list(tokens, i, close_idx, list_depth, quote_depth))
                i = close_idx + 1
                continue

            if t == "blockquote_open":
                close_idx = _find_matching_close(tokens, i, "blockquote_open", "blockquote_close")
                children = self.blocks(tokens, i + 1, close_idx, list_depth, quote_depth + 1)
                ids.append(self.doc.add(BlockQuote(children, depth=quote_depth + 1)))
                i = close_idx + 1
                continue

            if t == "hr":
                ids.append(self.doc.add(ThematicBreak()))
                i += 1
                continue

            if t == "table_open":
                close_idx = _find_matching_close(tokens, i, "table_open", "table_close")
                ids.append(self.doc.add(self._table(tokens, i + 1, close_idx)))
                i = close_idx + 1
                continue

            if t == "html_block":
                ids.append(self.doc.add(HtmlBlock(tok.content.rstrip("\n"))))
                i += 1
                continue

            if t == "dl_open":
                close_idx = _find_matching_close(tokens, i, "dl_open", "dl_close")
                ids.append(self._definition_list(tokens, i + 1, close_idx, list_depth, quote_depth))
                i = close_idx + 1
                continue

            if t == "footnote_block_open":
                close_idx = _find_matching_close(
                    tokens, i, "footnote_block_open", "footnote_block_close"
                )
                ids.extend(self._footnotes(tokens, i + 1, close_idx, list_depth, quote_depth))
                i = close_idx + 1
                continue

            # Closing tokens and anything unknown
            i += 1

        return ids

    # -- containers ------------------------------------------------------------

    def _list(
        self,
        tokens: list[Token],
        open_idx: int,
        close_idx: int,
        list_depth: int,
        quote_depth: int,
    ) -> int:
        open_tok = tokens[open_idx]
        ordered = open_tok.type == "ordered_list_open"
        start = 1
        if ordered:
            try:
                start = int(open_tok.attrs.get("start", 1))
            except (TypeError, ValueError):
                start = 1

        tight = all(
            tok.hidden
            for tok in tokens[open_idx + 1:close_idx]
            if tok.type == "paragraph_open" and tok.level == open_tok.level + 2
        )

        items: list[list[int]] = []
        j = open_idx + 1
        while j < close_idx:
            if tokens[j].type == "list_item_open":
                item_close = _find_matching_close(tokens, j, "list_item_open", "list_item_close")
                items.append(self.blocks(tokens, j + 1, item_close, list_depth + 1, quote_depth))
                j = item_close + 1
            else:
                j += 1

        return self.doc.add(ListBlock(ordered, items, start=start, tight=tight, depth=list_depth))

    def _table(self, tokens: list[Token], start: int, end: int) -> Table:
        table = Table()
        in_head = False
        row: list[list[Inline]] | None = None

        for j in range(start, end):
            tok = tokens[j]
            if tok.type == "thead_open":
                in_head = True
            elif tok.type == "thead_close":
                in_head = False
            elif tok.type == "tr_open":
                row = []
            elif tok.type == "tr_close" and row is not None:
                if in_head:
                    table.header = row
                else:
                    table.rows.append(row)
                row = None
            elif tok.type in ("th_open", "td_open") and row is not None:
                if in_head:
                    table.alignments.append(_alignment(tok))
                row.append(_inline_at(tokens, j + 1))
        return table

    def _definition_list(
        self,
        tokens: list[Token],
        start: int,
        end: int,
        list_depth: int,
        quote_depth: int,
    ) -> int:
        dl = DefinitionList()
        j = start
        while j < end:
            tok = tokens[j]
            if tok.type == "dt_open":
                dl.items.append((_inline_at(tokens, j + 1), []))
                j = _skip_to_close(tokens, j, "dt_close") + 1
            elif tok.type == "dd_open":
                dd_close = _find_matching_close(tokens, j, "dd_open", "dd_close")
                body = self.blocks(tokens, j + 1, dd_close, list_depth, quote_depth)
                if not dl.items:
                    dl.items.append(([], []))
                dl.items[-1][1].append(body)
                j = dd_close + 1
            else:
                j += 1
        return self.doc.add(dl)

    def _footnotes(
        self,
        tokens: list[Token],
        start: int,
        end: int,
        list_depth: int,
        quote_depth: int,
    ) -> list[int]:
        ids: list[int] = []
        j = start
        while j < end:
            if tokens[j].type == "footnote_open":
                fn_close = _find_matching_close(tokens, j, "footnote_open", "footnote_close")
                body = self.blocks(tokens, j + 1, fn_close, list_depth, quote_depth)
                ids.append(self.doc.add(FootnoteDefinition(_footnote_label(tokens[j]), body)))
                j = fn_close + 1
            else:
                j += 1
        return ids


def parse(text: str) -> Document:
    """Parse Markdown *text* into a :class:`Document`."""
    if text.startswith(BOM):
        text = text[len(BOM):]
    tokens = _md_parser.parse(text)
    document = Document()
    document.roots = _DocumentBuilder(document).blocks(tokens, 0, len(tokens))
    return document
