"""Styled text fragments, the unit every layout engine works on."""

from __future__ import annotations

from dataclasses import dataclass, replace

from mdv.palette import ResolvedColor
from mdv.utils import visible_width


@dataclass(frozen=True)
class Style:
    """Resolved color plus text attributes for one run of text."""

    fg: ResolvedColor | None = None
    bg: ResolvedColor | None = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    dim: bool = False
    link: str | None = None

    def merge(self, **changes: object) -> Style:
        return replace(self, **changes)

    @property
    def is_plain(self) -> bool:
        return self == PLAIN


PLAIN = Style()


@dataclass(frozen=True)
class Fragment:
    """A run of text with one style.

    ``breakable=False`` marks an atomic fragment that the wrapping engine
    never splits, even when it is wider than the line.
    """

    text: str
    style: Style = PLAIN
    breakable: bool = True

    @property
    def width(self) -> int:
        return visible_width(self.text)

    def with_text(self, text: str) -> Fragment:
        return Fragment(text, self.style, self.breakable)


Line = list[Fragment]


def line_width(line: Line) -> int:
    return sum(f.width for f in line)


def line_text(line: Line) -> str:
    return "".join(f.text for f in line)


def coalesce(line: Line) -> Line:
    """Merge adjacent fragments that share a style."""
    merged: Line = []
    for frag in line:
        if not frag.text:
            continue
        if merged and merged[-1].style == frag.style and merged[-1].breakable and frag.breakable:
            merged[-1] = merged[-1].with_text(merged[-1].text + frag.text)
        else:
            merged.append(frag)
    return merged
