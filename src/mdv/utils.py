"""Display-width measurement for terminal text.

Every width in mdv is counted in terminal cells: wide CJK and emoji take two
cells, combining and format marks take none.  Strings are cut only at
grapheme cluster boundaries.
"""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth

# ---------------------------------------------------------------------------
# Escape sequences emitted by the ANSI sink
# ---------------------------------------------------------------------------

_ESCAPE_RE = re.compile(
    r"\x1b\[[0-9;]*[mGKHJ]"                  # SGR and cursor/erase CSI
    r"|\x1b\]8;[^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC 8 hyperlink open/close
)

# ---------------------------------------------------------------------------
# Cell-width cache for non-ASCII text
# ---------------------------------------------------------------------------

_CELL_CACHE_LIMIT = 512
_cell_cache: dict[str, int] = {}


def _remember(text: str, cells: int) -> int:
    if len(_cell_cache) >= _CELL_CACHE_LIMIT:
        _cell_cache.clear()
    _cell_cache[text] = cells
    return cells


# ---------------------------------------------------------------------------
# Per-grapheme width
# ---------------------------------------------------------------------------

_EMOJI_JOINERS = frozenset({0xFE0F, 0x200D})  # VS16, ZWJ
_SKIN_TONES = range(0x1F3FB, 0x1F400)
_REGIONAL_INDICATORS = range(0x1F1E6, 0x1F200)


def _is_control(cp: int) -> bool:
    return cp < 0x20 or 0x7F <= cp <= 0x9F


def _is_emoji_sequence(cluster: str) -> bool:
    for ch in cluster:
        cp = ord(ch)
        if cp in _EMOJI_JOINERS or cp in _SKIN_TONES or cp in _REGIONAL_INDICATORS:
            return True
    lead = ord(cluster[0])
    return lead >= 0x1F000 or 0x2600 <= lead <= 0x27BF


def grapheme_width(cluster: str) -> int:
    """Cells taken by one grapheme cluster (0, 1 or 2).

    Multi-codepoint emoji sequences are always two cells wide; anything else
    is measured by wcwidth on its leading codepoint.
    """
    if not cluster:
        return 0

    lead = cluster[0]
    if len(cluster) == 1:
        if _is_control(ord(lead)):
            return 0
        return max(_wcwidth.wcwidth(lead), 0)

    if _is_emoji_sequence(cluster):
        return 2
    if unicodedata.category(lead)[0] == "M" or unicodedata.category(lead) == "Cf":
        return 0
    return max(_wcwidth.wcwidth(lead), 0)


# ---------------------------------------------------------------------------
# String width
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    """Drop SGR and OSC 8 sequences from *text*."""
    return _ESCAPE_RE.sub("", text)


def visible_width(text: str) -> int:
    """Number of terminal cells *text* occupies, ignoring escape sequences."""
    if "\x1b" in text:
        text = strip_ansi(text)
    if not text:
        return 0
    if text.isascii() and text.isprintable():
        return len(text)

    hit = _cell_cache.get(text)
    if hit is not None:
        return hit
    return _remember(text, sum(grapheme_width(g) for g in grapheme.graphemes(text)))


# ---------------------------------------------------------------------------
# Cutting by columns
# ---------------------------------------------------------------------------


def take_columns(text: str, max_cols: int) -> tuple[str, str]:
    """Split *text* into ``(head, rest)`` with *head* at most *max_cols* wide.

    The cut falls on a grapheme boundary, so a wide character that would
    straddle the limit goes to *rest*.
    """
    used = 0
    end = 0
    for cluster in grapheme.graphemes(text):
        cells = grapheme_width(cluster)
        if used + cells > max_cols:
            break
        used += cells
        end += len(cluster)
    return text[:end], text[end:]


def truncate_to_width(text: str, max_width: int, ellipsis: str = "…") -> str:
    """Shorten *text* to *max_width* cells, ending with *ellipsis* when cut."""
    if max_width <= 0:
        return ""
    if visible_width(text) <= max_width:
        return text

    room = max_width - visible_width(ellipsis)
    if room <= 0:
        return take_columns(ellipsis, max_width)[0]
    return take_columns(text, room)[0] + ellipsis
