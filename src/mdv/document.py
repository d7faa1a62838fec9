"""Document model: an arena of block nodes plus inline trees.

Blocks live in one flat list and containers refer to their children by
integer index, so walking a deeply nested document never needs Python
recursion proportional to the source nesting of pointers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union


# ---------------------------------------------------------------------------
# Inline nodes
# ---------------------------------------------------------------------------


@dataclass
class Text:
    text: str


@dataclass
class Emphasis:
    kind: str  # "weak" | "strong" | "both"
    children: list[Inline] = field(default_factory=list)


@dataclass
class Strikethrough:
    children: list[Inline] = field(default_factory=list)


@dataclass
class CodeSpan:
    code: str


@dataclass
class Link:
    target: str
    children: list[Inline] = field(default_factory=list)
    is_image: bool = False
    title: str = ""


@dataclass
class FootnoteRef:
    label: str


@dataclass
class RawHtml:
    html: str


@dataclass
class LineBreak:
    hard: bool = False


@dataclass
class Escape:
    text: str


@dataclass
class TaskMarker:
    checked: bool


Inline = Union[
    Text, Emphasis, Strikethrough, CodeSpan, Link, FootnoteRef,
    RawHtml, LineBreak, Escape, TaskMarker,
]


def plain_text(inlines: list[Inline]) -> str:
    """Concatenate the visible text of *inlines* without styling."""
    parts: list[str] = []
    for node in inlines:
        if isinstance(node, (Text, Escape)):
            parts.append(node.text)
        elif isinstance(node, CodeSpan):
            parts.append(node.code)
        elif isinstance(node, (Emphasis, Strikethrough, Link)):
            parts.append(plain_text(node.children))
        elif isinstance(node, LineBreak):
            parts.append("\n" if node.hard else " ")
        elif isinstance(node, FootnoteRef):
            parts.append(f"[^{node.label}]")
        elif isinstance(node, TaskMarker):
            parts.append("[x] " if node.checked else "[ ] ")
    return "".join(parts)


# ---------------------------------------------------------------------------
# Block nodes
# ---------------------------------------------------------------------------


@dataclass
class Paragraph:
    inlines: list[Inline] = field(default_factory=list)


@dataclass
class Heading:
    level: int
    inlines: list[Inline] = field(default_factory=list)


@dataclass
class ListBlock:
    ordered: bool
    items: list[list[int]] = field(default_factory=list)
    start: int = 1
    tight: bool = True
    depth: int = 0


@dataclass
class BlockQuote:
    children: list[int] = field(default_factory=list)
    depth: int = 0


@dataclass
class CodeBlock:
    lines: list[str] = field(default_factory=list)
    language: str | None = None
    fence: str = "```"  # "" for indented code


@dataclass
class Table:
    header: list[list[Inline]] = field(default_factory=list)
    rows: list[list[list[Inline]]] = field(default_factory=list)
    alignments: list[str] = field(default_factory=list)  # "left" | "center" | "right"


@dataclass
class ThematicBreak:
    pass


@dataclass
class HtmlBlock:
    raw: str


@dataclass
class DefinitionList:
    # (term inlines, definitions) where each definition is a list of child ids
    items: list[tuple[list[Inline], list[list[int]]]] = field(default_factory=list)


@dataclass
class FootnoteDefinition:
    label: str
    body: list[int] = field(default_factory=list)


Block = Union[
    Paragraph, Heading, ListBlock, BlockQuote, CodeBlock, Table,
    ThematicBreak, HtmlBlock, DefinitionList, FootnoteDefinition,
]


# ---------------------------------------------------------------------------
# Document arena
# ---------------------------------------------------------------------------


@dataclass
class Document:
    """Flat block arena plus the ordered ids of the top-level blocks."""

    nodes: list[Block] = field(default_factory=list)
    roots: list[int] = field(default_factory=list)

    def add(self, block: Block) -> int:
        self.nodes.append(block)
        return len(self.nodes) - 1

    def __getitem__(self, idx: int) -> Block:
        return self.nodes[idx]

    def top_level(self) -> Iterator[tuple[int, Block]]:
        for idx in self.roots:
            yield idx, self.nodes[idx]

    def __len__(self) -> int:
        return len(self.roots)
