"""Table layout: column sizing, box-drawing borders and the table-wrap policy."""

from __future__ import annotations

from mdv.config import LayoutConfig, TableWrapMode, WrapMode
from mdv.document import Table, plain_text
from mdv.errors import MalformedBlockError
from mdv.fragments import PLAIN, Fragment, Line, Style, coalesce, line_width
from mdv.inline import InlineRenderer
from mdv.palette import Palette
from mdv.utils import take_columns
from mdv.wrap import wrap

MIN_COL_WIDTH = 3
ELLIPSIS = "…"


def border_overhead(num_cols: int) -> int:
    """Cells used by borders and padding: ``│ a │ b │`` -> (n + 1) + 2n."""
    return (num_cols + 1) + num_cols * 2


def shrink_widths(natural: list[int], available: int) -> list[int]:
    """Shrink *natural* column widths proportionally to fit *available* cells.

    No column drops below ``MIN_COL_WIDTH``.  Leftover cells go to the
    columns with the largest fractional share, so the content budget is used
    exactly whenever it allows every column its minimum.
    """
    num_cols = len(natural)
    budget = max(num_cols * MIN_COL_WIDTH, available - border_overhead(num_cols))
    total = sum(natural)
    if total <= budget:
        return list(natural)

    exact = [nw * budget / total for nw in natural]
    widths = [max(MIN_COL_WIDTH, int(share)) for share in exact]

    remaining = budget - sum(widths)
    by_fraction = sorted(range(num_cols), key=lambda i: exact[i] - int(exact[i]), reverse=True)
    for ci in by_fraction[:max(remaining, 0)]:
        widths[ci] += 1

    # Minimum bumps can overshoot the budget; take it back from the widest
    while sum(widths) > budget:
        widest = max(range(num_cols), key=lambda i: widths[i])
        if widths[widest] <= MIN_COL_WIDTH:
            break
        widths[widest] -= 1
    return widths


def truncate_fragments(frags: list[Fragment], width: int) -> list[Fragment]:
    """Cut *frags* to *width* cells, ending with an ellipsis when shortened."""
    if line_width(frags) <= width:
        return list(frags)
    if width <= 0:
        return []

    out: list[Fragment] = []
    budget = width - 1
    last_style = frags[0].style
    for frag in frags:
        if budget <= 0:
            break
        head, _rest = take_columns(frag.text, budget)
        if head:
            out.append(frag.with_text(head))
            budget -= Fragment(head).width
        last_style = frag.style
        if head != frag.text:
            break
    out.append(Fragment(ELLIPSIS, last_style))
    return out


def align_fragments(frags: list[Fragment], width: int, alignment: str) -> Line:
    """Pad *frags* with spaces to *width* honoring left/center/right alignment."""
    gap = max(0, width - line_width(frags))
    if alignment == "right":
        left, right = gap, 0
    elif alignment == "center":
        left = gap // 2
        right = gap - left
    else:
        left, right = 0, gap
    line: Line = []
    if left:
        line.append(Fragment(" " * left, PLAIN))
    line.extend(frags)
    if right:
        line.append(Fragment(" " * right, PLAIN))
    return line


def raw_lines(table: Table) -> list[str]:
    """Plain ``a | b | c`` rows used when the table cannot be laid out."""
    rows = [table.header, *table.rows]
    return [" | ".join(plain_text(cell) for cell in row) for row in rows]


class TableLayoutEngine:
    """Lays out a :class:`Table` block into bordered lines."""

    def __init__(self, config: LayoutConfig, palette: Palette, inline: InlineRenderer) -> None:
        self.config = config
        self.palette = palette
        self.inline = inline

    def _cell_fragments(self, cell, base: Style) -> list[Fragment]:
        frags = self.inline.render(cell, base, in_table=True)
        return [f.with_text(f.text.replace("\n", " ")) for f in frags]

    def column_widths(self, natural: list[int], width: int) -> list[int]:
        if self.config.table_wrap is TableWrapMode.NONE:
            return list(natural)
        return shrink_widths(natural, width)

    def layout(self, table: Table, width: int) -> list[Line]:
        num_cols = len(table.header)
        if num_cols == 0:
            return []
        for row in table.rows:
            if len(row) != num_cols:
                raise MalformedBlockError(
                    f"table row has {len(row)} cells, header has {num_cols}"
                )
        if not table.rows and not self.config.show_empty_elements:
            return []

        header_style = Style(fg=self.palette.color("table_header"), bold=True)
        body_style = self.inline.text_style
        header = [self._cell_fragments(cell, header_style) for cell in table.header]
        body = [[self._cell_fragments(cell, body_style) for cell in row] for row in table.rows]

        natural = [
            max(MIN_COL_WIDTH, *(line_width(r[col]) for r in [header, *body]))
            for col in range(num_cols)
        ]
        widths = self.column_widths(natural, width)
        alignments = [
            table.alignments[col] if col < len(table.alignments) else "left"
            for col in range(num_cols)
        ]

        border = Style(fg=self.palette.color("table_border"))
        lines: list[Line] = [self._border("┌", "┬", "┐", widths, border)]
        lines.extend(self._row(header, widths, alignments, border))
        lines.append(self._border("├", "┼", "┤", widths, border))
        for row in body:
            lines.extend(self._row(row, widths, alignments, border))
        lines.append(self._border("└", "┴", "┘", widths, border))
        return lines

    # -- rows and borders ----------------------------------------------------

    @staticmethod
    def _border(left: str, mid: str, right: str, widths: list[int], style: Style) -> Line:
        text = left + mid.join("─" * (w + 2) for w in widths) + right
        return [Fragment(text, style)]

    def _cell_lines(self, frags: list[Fragment], col_width: int) -> list[list[Fragment]]:
        if line_width(frags) <= col_width:
            return [frags]
        if self.config.table_wrap is TableWrapMode.WRAP:
            return wrap(frags, col_width, WrapMode.WORD) or [[]]
        if self.config.table_wrap is TableWrapMode.FIT:
            return [truncate_fragments(frags, col_width)]
        return [frags]

    def _row(
        self,
        cells: list[list[Fragment]],
        widths: list[int],
        alignments: list[str],
        border: Style,
    ) -> list[Line]:
        wrapped = [self._cell_lines(cell, w) for cell, w in zip(cells, widths)]
        height = max(len(cell_lines) for cell_lines in wrapped)

        lines: list[Line] = []
        for idx in range(height):
            line: Line = [Fragment("│", border)]
            for cell_lines, w, alignment in zip(wrapped, widths, alignments):
                content = cell_lines[idx] if idx < len(cell_lines) else []
                line.append(Fragment(" ", PLAIN))
                line.extend(align_fragments(content, w, alignment))
                line.append(Fragment(" ", PLAIN))
                line.append(Fragment("│", border))
            lines.append(coalesce(line))
        return lines
