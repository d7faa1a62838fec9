"""Output sinks: serialize composed lines as ANSI terminal text or HTML.

Layout never looks at the sink; both sinks receive the same runs and line
breaks, so their output is structurally identical.
"""

from __future__ import annotations

import html
from typing import Protocol

from mdv.fragments import Fragment, Line
from mdv.palette import ResolvedColor

# ---------------------------------------------------------------------------
# ANSI helpers
# ---------------------------------------------------------------------------

_RESET = "\x1b[0m"
_BOLD = "1"
_DIM = "2"
_ITALIC = "3"
_UNDERLINE = "4"
_STRIKETHROUGH = "9"

_OSC8_OPEN = "\x1b]8;;{url}\x1b\\"
_OSC8_CLOSE = "\x1b]8;;\x1b\\"


class OutputSink(Protocol):
    def append_run(self, fragment: Fragment) -> None: ...

    def line_break(self) -> None: ...

    def getvalue(self) -> str: ...


class AnsiSink:
    """SGR-colored terminal text with OSC 8 hyperlinks."""

    def __init__(self, no_colors: bool = False) -> None:
        self.no_colors = no_colors
        self._parts: list[str] = []

    def append_run(self, fragment: Fragment) -> None:
        text = fragment.text
        style = fragment.style
        if self.no_colors or style.is_plain:
            self._parts.append(text)
            return

        params: list[str] = []
        if style.bold:
            params.append(_BOLD)
        if style.dim:
            params.append(_DIM)
        if style.italic:
            params.append(_ITALIC)
        if style.underline:
            params.append(_UNDERLINE)
        if style.strikethrough:
            params.append(_STRIKETHROUGH)
        if style.fg is not None and not style.fg.is_default:
            params.append(style.fg.sgr())
        if style.bg is not None and not style.bg.is_default:
            params.append(style.bg.sgr(background=True))

        if params:
            text = f"\x1b[{';'.join(params)}m{text}{_RESET}"
        if style.link:
            text = _OSC8_OPEN.format(url=style.link) + text + _OSC8_CLOSE
        self._parts.append(text)

    def line_break(self) -> None:
        self._parts.append("\n")

    def getvalue(self) -> str:
        return "".join(self._parts)


class HtmlSink:
    """``<pre>`` block with inline-styled ``<span>`` runs and ``<a>`` links.

    With *no_colors* every run is escaped plain text, matching :class:`AnsiSink`.
    """

    def __init__(self, background: ResolvedColor | None = None, no_colors: bool = False) -> None:
        self.background = background
        self.no_colors = no_colors
        self._parts: list[str] = []

    def _css(self, fragment: Fragment) -> str:
        style = fragment.style
        rules: list[str] = []
        if style.fg is not None and style.fg.to_hex():
            rules.append(f"color:{style.fg.to_hex()}")
        if style.bg is not None and style.bg.to_hex():
            rules.append(f"background-color:{style.bg.to_hex()}")
        if style.bold:
            rules.append("font-weight:bold")
        if style.italic:
            rules.append("font-style:italic")
        if style.dim:
            rules.append("opacity:0.7")
        decorations = [
            name
            for flag, name in ((style.underline, "underline"), (style.strikethrough, "line-through"))
            if flag
        ]
        if decorations:
            rules.append(f"text-decoration:{' '.join(decorations)}")
        return ";".join(rules)

    def append_run(self, fragment: Fragment) -> None:
        text = html.escape(fragment.text, quote=False)
        if self.no_colors:
            self._parts.append(text)
            return

        css = self._css(fragment)
        if css:
            text = f'<span style="{css}">{text}</span>'
        if fragment.style.link:
            text = f'<a href="{html.escape(fragment.style.link, quote=True)}">{text}</a>'
        self._parts.append(text)

    def line_break(self) -> None:
        self._parts.append("\n")

    def getvalue(self) -> str:
        style = ""
        if self.background is not None and self.background.to_hex() and not self.no_colors:
            style = f' style="background-color:{self.background.to_hex()}"'
        return f'<pre class="mdv"{style}>' + "".join(self._parts) + "</pre>\n"


def serialize(lines: list[Line], sink: OutputSink) -> str:
    """Feed *lines* into *sink*, one line break after each line."""
    for line in lines:
        for fragment in line:
            sink.append_run(fragment)
        sink.line_break()
    return sink.getvalue()
