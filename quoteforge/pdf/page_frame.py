from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Tuple

from reportlab.lib import colors
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen.canvas import Canvas

from quoteforge.core.paths import resource_path
from quoteforge.core.settings import Settings
from quoteforge.data.models import Quote
from quoteforge.pdf.formatting import clamp_lines, summarize, wrap_text
from quoteforge.pdf.geometry import (
    ACCENT,
    CONTENT_LEFT,
    CONTENT_RIGHT,
    FOOTER_RULE_Y,
    FOOTER_TEXT_Y,
    GRAY,
    MARGIN,
    MIDNIGHT,
    PAGE_HEIGHT,
    PAGE_WIDTH,
)

logger = logging.getLogger(__name__)

# Header
MARK_W = 40 * mm
MARK_H = 15 * mm
MARK_FONT_SIZE = 16
TITLE_FONT_SIZE = 24
META_FONT_SIZE = 10
LABEL_FONT_SIZE = 8
FOOTER_FONT_SIZE = 8

# First-page intro (client + project blocks)
SECTION_FONT_SIZE = 12
INTRO_FONT_SIZE = 10
SECTION_GAP = 9 * mm
SECTION_TO_TEXT = 7 * mm
INTRO_LINE = 5 * mm
TABLE_TITLE_GAP = 4 * mm
INTRO_CHARS_PER_LINE = 95
SUMMARY_MAX_LINES = 2
NO_DESCRIPTION = "Pas de description fournie."


class Fonts(NamedTuple):
    regular: str
    bold: str


def register_fonts() -> Fonts:
    """Return (regular, bold) font names, preferring bundled NotoSans over Helvetica."""
    regular = "Helvetica"
    bold = "Helvetica-Bold"
    reg = resource_path("assets/fonts/NotoSans-Regular.ttf")
    bld = resource_path("assets/fonts/NotoSans-Bold.ttf")
    try:
        if reg.exists():
            pdfmetrics.registerFont(TTFont("NotoSans", str(reg)))
            regular = "NotoSans"
        if bld.exists():
            pdfmetrics.registerFont(TTFont("NotoSans-Bold", str(bld)))
            bold = "NotoSans-Bold"
    except (TTFError, OSError) as e:
        logger.warning("Bundled fonts unusable (%s); falling back to Helvetica", e)
        return Fonts("Helvetica", "Helvetica-Bold")
    return Fonts(regular, bold)


@dataclass(frozen=True)
class FrameMeta:
    """Per-document values repeated in every page header and footer."""

    quote_id: str
    date: str
    company_name: str
    document_title: str
    tagline: str

    @classmethod
    def build(cls, quote: Quote, settings: Settings) -> "FrameMeta":
        return cls(
            quote_id=quote.id,
            date=quote.date,
            company_name=settings.company_name,
            document_title=settings.document_title,
            tagline=settings.tagline,
        )


def page_label(page_number: int, total_pages: int) -> str:
    return f"Page {page_number}/{total_pages}"


def _fit_font_size(text: str, font: str, max_width: float, size: float, floor: float = 6) -> float:
    while size > floor and pdfmetrics.stringWidth(text, font, size) > max_width:
        size -= 0.5
    return size


def draw_header(c: Canvas, meta: FrameMeta, fonts: Fonts, page_number: int, total_pages: int) -> None:
    """Issuer mark on the left; title, number, date and page label right-aligned."""
    top = PAGE_HEIGHT - MARGIN
    right = PAGE_WIDTH - MARGIN

    c.setFillColor(ACCENT)
    c.rect(MARGIN, top - MARK_H, MARK_W, MARK_H, stroke=0, fill=1)
    c.setFillColor(colors.white)
    size = _fit_font_size(meta.company_name, fonts.bold, MARK_W - 4 * mm, MARK_FONT_SIZE)
    c.setFont(fonts.bold, size)
    c.drawCentredString(MARGIN + MARK_W / 2, top - MARK_H / 2 - size * 0.35, meta.company_name)

    c.setFillColor(MIDNIGHT)
    c.setFont(fonts.bold, TITLE_FONT_SIZE)
    c.drawRightString(right, top - 10 * mm, meta.document_title)

    c.setFillColor(GRAY)
    c.setFont(fonts.regular, META_FONT_SIZE)
    c.drawRightString(right, top - 16 * mm, f"N° {meta.quote_id}")
    c.drawRightString(right, top - 22 * mm, f"Date: {meta.date}")
    c.setFont(fonts.regular, LABEL_FONT_SIZE)
    c.drawRightString(right, top - 28 * mm, page_label(page_number, total_pages))


def draw_footer(c: Canvas, meta: FrameMeta, fonts: Fonts, is_final_page: bool) -> None:
    """Separator rule and tagline; pages before the last one say the quote continues."""
    c.setStrokeColor(ACCENT)
    c.setLineWidth(0.5)
    c.line(CONTENT_LEFT, FOOTER_RULE_Y, CONTENT_RIGHT, FOOTER_RULE_Y)

    c.setFillColor(GRAY)
    c.setFont(fonts.regular, FOOTER_FONT_SIZE)
    c.drawCentredString(PAGE_WIDTH / 2, FOOTER_TEXT_Y, meta.tagline)
    if not is_final_page:
        c.drawRightString(CONTENT_RIGHT, MARGIN + 1 * mm, "Suite page suivante...")


# ===== First-page intro =====
class IntroLine(NamedTuple):
    offset: float  # baseline distance below the body top
    style: str  # "section" or "text"
    text: str


def project_summary(quote: Quote) -> List[str]:
    """Quote title, else a summary of the project description, on at most two lines."""
    text = (quote.quote_title or "").strip() or summarize(quote.project_description or NO_DESCRIPTION)
    return clamp_lines(wrap_text(text, INTRO_CHARS_PER_LINE), SUMMARY_MAX_LINES)


def layout_intro(quote: Quote) -> Tuple[List[IntroLine], float]:
    """Place the client and project blocks; returns the lines and the height down to the table top.

    The same line list is used for measuring and drawing.
    """
    client_lines = [f"Client: {quote.client_name}"]
    if quote.client_email:
        client_lines.append(f"Email: {quote.client_email}")
    if quote.client_address:
        address = wrap_text(f"Adresse: {quote.client_address}", INTRO_CHARS_PER_LINE)
        client_lines.extend(clamp_lines(address, 2))
    if quote.client_phone:
        client_lines.append(f"Téléphone: {quote.client_phone}")
    if quote.client_siret:
        client_lines.append(f"SIRET: {quote.client_siret}")

    out: List[IntroLine] = []
    y = 0.0

    def section(title: str, lines: List[str], first: bool = False) -> None:
        nonlocal y
        y += 6 * mm if first else SECTION_GAP
        out.append(IntroLine(y, "section", title))
        y += SECTION_TO_TEXT - INTRO_LINE
        for ln in lines:
            y += INTRO_LINE
            out.append(IntroLine(y, "text", ln))

    section("INFORMATIONS CLIENT", client_lines, first=True)
    section("OBJET DU DEVIS", project_summary(quote))
    section("DÉTAIL DU DEVIS", [])
    return out, y + TABLE_TITLE_GAP


def draw_intro(c: Canvas, lines: List[IntroLine], fonts: Fonts, body_top: float) -> None:
    for ln in lines:
        if ln.style == "section":
            c.setFillColor(MIDNIGHT)
            c.setFont(fonts.regular, SECTION_FONT_SIZE)
        else:
            c.setFillColor(GRAY)
            c.setFont(fonts.regular, INTRO_FONT_SIZE)
        c.drawString(CONTENT_LEFT, body_top - ln.offset, ln.text)
