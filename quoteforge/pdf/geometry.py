from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

# ===== Page =====
PAGE_SIZE = A4
PAGE_WIDTH, PAGE_HEIGHT = PAGE_SIZE

MARGIN = 20 * mm
CONTENT_LEFT = MARGIN
CONTENT_RIGHT = PAGE_WIDTH - MARGIN
CONTENT_WIDTH = CONTENT_RIGHT - CONTENT_LEFT

# Header zone: issuer mark, title, number, date, page label
HEADER_HEIGHT = 32 * mm
BODY_TOP = PAGE_HEIGHT - MARGIN - HEADER_HEIGHT

# Footer zone: separator rule + tagline; body content stays above FOOTER_LIMIT
FOOTER_RULE_Y = MARGIN + 10 * mm
FOOTER_TEXT_Y = MARGIN + 5 * mm
FOOTER_LIMIT = FOOTER_RULE_Y + 2 * mm

# ===== Table =====
TABLE_HEADER_HEIGHT = 8 * mm
BASE_ROW_HEIGHT = 7 * mm
# Character budget of the description column; shared by measuring and drawing
DESC_CHARS_PER_LINE = 46
ROW_FONT_SIZE = 9
HEADER_FONT_SIZE = 9
CELL_PAD = 3 * mm

# (key, label, share, align); shares are integers summing to 100
COLUMN_SPECS: Tuple[Tuple[str, str, int, str], ...] = (
    ("description", "DÉSIGNATION", 50, "left"),
    ("quantity", "QTÉ", 10, "left"),
    ("unit", "UNITÉ", 10, "left"),
    ("unit_price", "P.U. HT", 15, "right"),
    ("total", "TOTAL HT", 15, "right"),
)

# ===== Trailer (totals + signatures) =====
TRAILER_GAP = 6 * mm
TOTALS_BOX_W = 80 * mm
TOTALS_BOX_H = 24 * mm
SIGN_TITLE_GAP = 8 * mm
SIGN_TITLE_H = 8 * mm
SIGN_BOX_H = 35 * mm
SIGN_BOX_GAP = MARGIN
TRAILER_HEIGHT = TRAILER_GAP + TOTALS_BOX_H + SIGN_TITLE_GAP + SIGN_TITLE_H + SIGN_BOX_H

# Float tolerance for fit checks (points)
EPSILON = 1e-6

# ===== Colors =====
MIDNIGHT = colors.HexColor("#13293D")
ACCENT = colors.HexColor("#FF6B35")
GRAY = colors.HexColor("#718096")
LIGHT_GRAY = colors.HexColor("#E2E8F0")
ROW_SHADE = colors.HexColor("#F5F7FA")


@dataclass(frozen=True)
class LayoutConfig:
    """Tunable table metrics. The page frame and trailer geometry are fixed."""

    base_row_height: float = BASE_ROW_HEIGHT
    desc_chars_per_line: int = DESC_CHARS_PER_LINE
    table_header_height: float = TABLE_HEADER_HEIGHT
    body_top: float = BODY_TOP
    body_bottom: float = FOOTER_LIMIT
    trailer_height: float = TRAILER_HEIGHT

    def row_height(self, line_total: int) -> float:
        return self.base_row_height * max(1, line_total)

    @property
    def continuation_rows_room(self) -> float:
        """Vertical room for item rows on a page that starts with the repeated table header."""
        return self.body_top - self.table_header_height - self.body_bottom


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    x: float
    width: float
    align: str

    @property
    def right(self) -> float:
        return self.x + self.width


def column_layout(left: float = CONTENT_LEFT, width: float = CONTENT_WIDTH) -> List[Column]:
    """Split width into the table columns.

    Edges come from integer cumulative shares, so rounding never accumulates and the
    last edge lands exactly on left + width.
    """
    total = sum(spec[2] for spec in COLUMN_SPECS)
    edges = [left]
    acc = 0
    for _key, _label, share, _align in COLUMN_SPECS:
        acc += share
        edges.append(left + width * acc / total)
    edges[-1] = left + width
    return [
        Column(key=key, label=label, x=edges[i], width=edges[i + 1] - edges[i], align=align)
        for i, (key, label, _share, align) in enumerate(COLUMN_SPECS)
    ]
