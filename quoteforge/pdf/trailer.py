from __future__ import annotations

from typing import Sequence

from reportlab.lib.units import mm
from reportlab.pdfgen.canvas import Canvas

from quoteforge.core.currency import fmt_money
from quoteforge.core.pricing import Totals, compute_totals
from quoteforge.data.models import LineItem
from quoteforge.pdf.formatting import fmt_rate
from quoteforge.pdf.geometry import (
    CONTENT_LEFT,
    CONTENT_RIGHT,
    CONTENT_WIDTH,
    EPSILON,
    FOOTER_LIMIT,
    GRAY,
    LIGHT_GRAY,
    MIDNIGHT,
    SIGN_BOX_GAP,
    SIGN_BOX_H,
    SIGN_TITLE_GAP,
    SIGN_TITLE_H,
    TOTALS_BOX_H,
    TOTALS_BOX_W,
    TRAILER_GAP,
    LayoutConfig,
)
from quoteforge.pdf.page_frame import Fonts

ISSUER_CAPTION = "SIGNATURE DE L'ÉMETTEUR"
ISSUER_HINT = "Bon pour accord"
RECIPIENT_CAPTION = "SIGNATURE DU DESTINATAIRE"
RECIPIENT_HINT = "Bon pour acceptation du devis"


def trailer_totals(items: Sequence[LineItem], tva_rate: float) -> Totals:
    """Totals straight from the items being printed; totals stored on the quote are ignored."""
    return compute_totals((it.total_ht for it in items), tva_rate)


def trailer_fits(top: float, config: LayoutConfig) -> bool:
    """True when the whole trailer block fits between top and the footer zone.

    The footer rule keeps its margin even when config.body_bottom is set lower.
    """
    floor = max(config.body_bottom, FOOTER_LIMIT)
    return top - config.trailer_height >= floor - EPSILON


def signature_zones() -> tuple[tuple[float, float], tuple[float, float]]:
    """(x, width) of the issuer and recipient zones; equal widths, one gap between."""
    width = (CONTENT_WIDTH - SIGN_BOX_GAP) / 2
    return (CONTENT_LEFT, width), (CONTENT_LEFT + width + SIGN_BOX_GAP, width)


def draw_trailer(c: Canvas, top: float, totals: Totals, tva_rate: float, fonts: Fonts, symbol: str = "€") -> None:
    """Totals box then the two signature zones, starting at top and going down."""
    y = top - TRAILER_GAP

    # Totals box, right-aligned
    x = CONTENT_RIGHT - TOTALS_BOX_W
    c.setFillColor(LIGHT_GRAY)
    c.rect(x, y - TOTALS_BOX_H, TOTALS_BOX_W, TOTALS_BOX_H, stroke=0, fill=1)

    rows = (
        ("Total HT:", totals.ht, GRAY, fonts.regular, 10),
        (f"TVA ({fmt_rate(tva_rate)}%):", totals.tva, GRAY, fonts.regular, 10),
        ("TOTAL TTC:", totals.ttc, MIDNIGHT, fonts.bold, 11),
    )
    line_y = y - 7 * mm
    for label, amount, color, font, size in rows:
        c.setFillColor(color)
        c.setFont(font, size)
        c.drawString(x + 5 * mm, line_y, label)
        c.drawRightString(x + TOTALS_BOX_W - 5 * mm, line_y, fmt_money(amount, symbol))
        line_y -= 7.5 * mm
    y -= TOTALS_BOX_H + SIGN_TITLE_GAP

    c.setFillColor(MIDNIGHT)
    c.setFont(fonts.regular, 12)
    c.drawString(CONTENT_LEFT, y - 5 * mm, "SIGNATURES ET VALIDATION")
    y -= SIGN_TITLE_H

    c.setStrokeColor(LIGHT_GRAY)
    c.setLineWidth(0.5)
    zones = zip(signature_zones(), ((ISSUER_CAPTION, ISSUER_HINT), (RECIPIENT_CAPTION, RECIPIENT_HINT)))
    for (zx, zw), (caption, hint) in zones:
        c.roundRect(zx, y - SIGN_BOX_H, zw, SIGN_BOX_H, 3 * mm, stroke=1, fill=0)
        c.setFillColor(MIDNIGHT)
        c.setFont(fonts.regular, 10)
        c.drawCentredString(zx + zw / 2, y - 10 * mm, caption)
        c.setFillColor(GRAY)
        c.setFont(fonts.regular, 8)
        c.drawCentredString(zx + zw / 2, y - 20 * mm, hint)
