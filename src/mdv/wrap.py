"""Wrapping engine: pack styled fragments into width-bounded lines.

Each fragment keeps its style when it is split, so color and attributes
never bleed across a break.  Continuation-line prefixes (list markers,
quote bars) are added later by the block composer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import grapheme

from mdv.config import WrapMode
from mdv.fragments import Fragment, Line, coalesce
from mdv.utils import take_columns

_SPACE_SPLIT_RE = re.compile(r"([ \t]+)")


# ---------------------------------------------------------------------------
# Line builder
# ---------------------------------------------------------------------------


class _LineBuilder:
    """Accumulates fragments for the current line and emits finished lines."""

    def __init__(self, width: int) -> None:
        self.width = width
        self.lines: list[Line] = []
        self.current: Line = []
        self.used = 0
        self.continuation = False

    @property
    def remaining(self) -> int:
        return self.width - self.used

    @property
    def has_content(self) -> bool:
        return any(f.text.strip() for f in self.current)

    def add(self, frag: Fragment) -> None:
        if frag.text:
            self.current.append(frag)
            self.used += frag.width

    def flush(self) -> None:
        """Finish the current line, dropping its trailing whitespace."""
        line = list(self.current)
        while line and line[-1].breakable:
            stripped = line[-1].text.rstrip(" \t")
            if stripped:
                line[-1] = line[-1].with_text(stripped)
                break
            line.pop()
        self.lines.append(coalesce(line))
        self.current = []
        self.used = 0
        self.continuation = True

    def break_if_content(self) -> None:
        if self.has_content:
            self.flush()
        else:
            self.current = []
            self.used = 0

    def place_atomic(self, frag: Fragment) -> None:
        """Place an unsplittable fragment, overflowing on its own line if needed."""
        if frag.width <= self.remaining:
            self.add(frag)
            return
        self.break_if_content()
        self.add(frag)
        if frag.width > self.width:
            self.flush()

    def place_split(self, frag: Fragment) -> None:
        """Place *frag*, splitting it at cell boundaries when it overflows."""
        text = frag.text
        while text:
            if self.used == 0 and self.continuation:
                text = text.lstrip(" \t")
                if not text:
                    break
            head, rest = take_columns(text, self.remaining)
            if not head:
                if self.used == 0:
                    # A single grapheme wider than the whole line
                    head = next(grapheme.graphemes(text))
                    rest = text[len(head):]
                else:
                    self.flush()
                    continue
            self.add(frag.with_text(head))
            text = rest
            if text:
                self.flush()


# ---------------------------------------------------------------------------
# Tokenizing for word mode
# ---------------------------------------------------------------------------


@dataclass
class _Token:
    is_space: bool
    pieces: list[Fragment] = field(default_factory=list)
    atomic: bool = False

    @property
    def width(self) -> int:
        return sum(p.width for p in self.pieces)


def _tokenize(line: Line) -> list[_Token]:
    """Group fragments into words and whitespace runs.

    A word may span several fragments (``**bo**ld`` is one word).
    """
    tokens: list[_Token] = []
    for frag in line:
        if not frag.breakable:
            tokens.append(_Token(False, [frag], atomic=True))
            continue
        for part in _SPACE_SPLIT_RE.split(frag.text):
            if not part:
                continue
            is_space = part[0] in " \t"
            last = tokens[-1] if tokens else None
            if last is not None and last.is_space == is_space and not last.atomic:
                last.pieces.append(frag.with_text(part))
            else:
                tokens.append(_Token(is_space, [frag.with_text(part)]))
    return tokens


# ---------------------------------------------------------------------------
# Per-mode wrapping
# ---------------------------------------------------------------------------


def _wrap_chars(line: Line, width: int) -> list[Line]:
    builder = _LineBuilder(width)
    for frag in line:
        if frag.breakable:
            builder.place_split(frag)
        else:
            builder.place_atomic(frag)
    if builder.current or not builder.lines:
        builder.flush()
    return builder.lines


def _wrap_words(line: Line, width: int) -> list[Line]:
    builder = _LineBuilder(width)
    pending_space: list[Fragment] = []

    for token in _tokenize(line):
        if token.is_space:
            if builder.used == 0 and builder.continuation:
                continue
            pending_space.extend(token.pieces)
            continue

        space_width = sum(p.width for p in pending_space)
        if builder.used + space_width + token.width <= width:
            for piece in (*pending_space, *token.pieces):
                builder.add(piece)
        elif token.atomic:
            # The dropped space must not glue the atomic onto the previous word
            builder.break_if_content()
            builder.place_atomic(token.pieces[0])
        elif token.width <= width:
            builder.break_if_content()
            for piece in token.pieces:
                builder.add(piece)
        else:
            # Word wider than the whole line: char-split this word only
            builder.break_if_content()
            for piece in token.pieces:
                builder.place_split(piece)
        pending_space = []

    if builder.current or not builder.lines:
        builder.flush()
    return builder.lines


def _split_hard_breaks(fragments: list[Fragment]) -> list[Line]:
    physical: list[Line] = [[]]
    for frag in fragments:
        parts = frag.text.split("\n")
        for i, part in enumerate(parts):
            if i > 0:
                physical.append([])
            if part:
                physical[-1].append(frag.with_text(part))
    return physical


def wrap(
    fragments: list[Fragment],
    width: int,
    mode: WrapMode = WrapMode.CHAR,
    show_empty: bool = False,
) -> list[Line]:
    """Wrap *fragments* into lines of at most *width* display cells.

    A ``"\\n"`` inside a fragment is a hard break.  Atomic fragments wider
    than *width* are kept whole on a line of their own.  Empty input yields
    one empty line when *show_empty* is set, otherwise no lines.
    """
    if not any(f.text for f in fragments):
        return [[]] if show_empty else []

    width = max(width, 1)
    lines: list[Line] = []
    for physical in _split_hard_breaks(fragments):
        if mode is WrapMode.NONE:
            lines.append(coalesce(physical))
        elif mode is WrapMode.WORD:
            lines.extend(_wrap_words(physical, width))
        else:
            lines.extend(_wrap_chars(physical, width))
    return lines
