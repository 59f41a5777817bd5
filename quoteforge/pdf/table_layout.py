from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from reportlab.lib import colors
from reportlab.pdfgen.canvas import Canvas

from quoteforge.core.currency import fmt_money
from quoteforge.data.models import LineItem
from quoteforge.pdf.formatting import fmt_qty, wrap_text
from quoteforge.pdf.geometry import (
    CELL_PAD,
    CONTENT_LEFT,
    CONTENT_WIDTH,
    EPSILON,
    GRAY,
    HEADER_FONT_SIZE,
    MIDNIGHT,
    ROW_FONT_SIZE,
    ROW_SHADE,
    Column,
    LayoutConfig,
)
from quoteforge.pdf.page_frame import Fonts


@dataclass(frozen=True)
class MeasuredRow:
    index: int
    item: LineItem
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class RowPlan:
    """One drawn table row, or one fragment of an item split across pages."""

    index: int
    item: LineItem
    lines: Tuple[str, ...]
    top: float
    height: float
    first_fragment: bool = True
    last_fragment: bool = True

    @property
    def bottom(self) -> float:
        return self.top - self.height


@dataclass
class PagePlan:
    """Everything placed on one page except the header label, which waits for the page total."""

    number: int
    body_top: float
    table_top: Optional[float] = None
    rows: List[RowPlan] = field(default_factory=list)
    has_intro: bool = False
    trailer_top: Optional[float] = None

    @property
    def has_table(self) -> bool:
        return self.table_top is not None

    @property
    def has_trailer(self) -> bool:
        return self.trailer_top is not None

    @property
    def item_indexes(self) -> List[int]:
        return [r.index for r in self.rows]


class TableLayoutEngine:
    """
    Spread line items over pages.

    Each description is wrapped once; the wrapped lines give the row height and
    are kept on the row plan for drawing. Rows fill a page until the next one no
    longer fits above the footer. On the page where all remaining rows fit, room
    for the trailer block is kept free so totals and signatures land next to the
    last rows. An item too tall for any page is split at line boundaries.
    """

    def __init__(self, config: Optional[LayoutConfig] = None) -> None:
        self.config = config or LayoutConfig()
        self.cursor: float = self.config.body_top

    def measure(self, items: Sequence[LineItem]) -> List[MeasuredRow]:
        width = self.config.desc_chars_per_line
        return [MeasuredRow(i, it, tuple(wrap_text(it.description, width))) for i, it in enumerate(items)]

    def _open_page(self, pages: List[PagePlan], table_top: float) -> PagePlan:
        page = PagePlan(number=len(pages) + 1, body_top=self.config.body_top, table_top=table_top)
        pages.append(page)
        self.cursor = table_top - self.config.table_header_height
        return page

    def paginate(self, items: Sequence[LineItem], first_table_top: float) -> List[PagePlan]:
        """Lay out all rows. The first page always carries the table, even when empty.

        After the call, self.cursor is the y just below the last row.
        """
        cfg = self.config
        rows = self.measure(items)
        pages: List[PagePlan] = []
        page = self._open_page(pages, first_table_top)
        page.has_intro = True

        # suffix[i]: height of rows i.. when drawn whole
        suffix = [0.0] * (len(rows) + 1)
        for i in range(len(rows) - 1, -1, -1):
            suffix[i] = suffix[i + 1] + cfg.row_height(len(rows[i].lines))

        i = 0
        offset = 0  # lines of rows[i] already placed on earlier pages
        while i < len(rows):
            row = rows[i]
            rest = row.lines[offset:]
            height = cfg.row_height(len(rest))
            room = self.cursor - cfg.body_bottom
            remaining = height + suffix[i + 1]
            reserve = cfg.trailer_height if remaining <= room + EPSILON else 0.0
            fresh = not page.rows

            if height <= room - reserve + EPSILON or (fresh and height <= room + EPSILON):
                page.rows.append(RowPlan(row.index, row.item, rest, self.cursor, height, offset == 0, True))
                self.cursor -= height
                i += 1
                offset = 0
                continue

            if height > cfg.continuation_rows_room + EPSILON:
                fit = int((room + EPSILON) // cfg.base_row_height)
                if fresh:
                    fit = max(fit, 1)
                if fit >= 1:
                    part = rest[:fit]
                    frag_height = cfg.row_height(len(part))
                    page.rows.append(RowPlan(row.index, row.item, part, self.cursor, frag_height, offset == 0, False))
                    self.cursor -= frag_height
                    offset += fit

            page = self._open_page(pages, cfg.body_top)
        return pages

    def open_trailer_page(self, pages: List[PagePlan]) -> PagePlan:
        """Add a page without table header, for a trailer that did not fit."""
        page = PagePlan(number=len(pages) + 1, body_top=self.config.body_top)
        pages.append(page)
        self.cursor = self.config.body_top
        return page


# ===== Drawing =====
def draw_table_header(c: Canvas, columns: Sequence[Column], fonts: Fonts, top: float, height: float) -> None:
    c.setFillColor(MIDNIGHT)
    c.rect(CONTENT_LEFT, top - height, CONTENT_WIDTH, height, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont(fonts.bold, HEADER_FONT_SIZE)
    baseline = top - height / 2 - HEADER_FONT_SIZE * 0.35
    for col in columns:
        _draw_cell(c, col, baseline, col.label)


def _draw_cell(c: Canvas, col: Column, baseline: float, text: str) -> None:
    if col.align == "right":
        c.drawRightString(col.right - CELL_PAD, baseline, text)
    else:
        c.drawString(col.x + CELL_PAD, baseline, text)


def _slot_baseline(top: float, slot: float) -> float:
    return top - slot / 2 - ROW_FONT_SIZE * 0.35


def draw_row(c: Canvas, row: RowPlan, columns: Sequence[Column], fonts: Fonts, config: LayoutConfig, symbol: str = "€") -> None:
    """Shade (even items) over the row's real height, then description lines and figures."""
    if row.index % 2 == 0:
        c.setFillColor(ROW_SHADE)
        c.rect(CONTENT_LEFT, row.bottom, CONTENT_WIDTH, row.height, stroke=0, fill=1)

    base = config.base_row_height
    by_key = {col.key: col for col in columns}
    c.setFillColor(GRAY)
    c.setFont(fonts.regular, ROW_FONT_SIZE)
    for k, line in enumerate(row.lines):
        _draw_cell(c, by_key["description"], _slot_baseline(row.top - k * base, base), line)

    if not row.first_fragment:
        return
    center = _slot_baseline(row.top, row.height)
    it = row.item
    _draw_cell(c, by_key["quantity"], center, fmt_qty(it.quantity))
    _draw_cell(c, by_key["unit"], center, it.unit)
    _draw_cell(c, by_key["unit_price"], center, fmt_money(it.unit_price, symbol))
    _draw_cell(c, by_key["total"], center, fmt_money(it.total_ht, symbol))
