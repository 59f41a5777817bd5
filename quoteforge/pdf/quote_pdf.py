from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, replace
from datetime import date as _date
from pathlib import Path
from typing import List, Optional

from reportlab.pdfgen.canvas import Canvas

from quoteforge.core.pricing import Totals
from quoteforge.core.settings import Settings
from quoteforge.data.models import Quote
from quoteforge.pdf.geometry import MIDNIGHT, PAGE_SIZE, LayoutConfig, column_layout
from quoteforge.pdf.page_frame import (
    FrameMeta,
    Fonts,
    IntroLine,
    draw_footer,
    draw_header,
    draw_intro,
    layout_intro,
    page_label,
    register_fonts,
)
from quoteforge.pdf.table_layout import PagePlan, TableLayoutEngine, draw_row, draw_table_header
from quoteforge.pdf.trailer import draw_trailer, trailer_fits, trailer_totals
from quoteforge.printing.launch import open_file

logger = logging.getLogger(__name__)


@dataclass
class DocumentPlan:
    pages: List[PagePlan]
    intro: List[IntroLine]
    totals: Totals

    @property
    def page_count(self) -> int:
        return len(self.pages)


def plan_document(quote: Quote, config: Optional[LayoutConfig] = None) -> DocumentPlan:
    """Forward pass: place intro, rows and trailer on pages. Nothing is drawn yet."""
    config = config or LayoutConfig()
    intro, intro_height = layout_intro(quote)
    engine = TableLayoutEngine(config)
    pages = engine.paginate(quote.items, config.body_top - intro_height)

    if trailer_fits(engine.cursor, config):
        pages[-1].trailer_top = engine.cursor
    else:
        page = engine.open_trailer_page(pages)
        page.trailer_top = engine.cursor
    return DocumentPlan(pages=pages, intro=intro, totals=trailer_totals(quote.items, quote.tva_rate))


def page_labels(plan: DocumentPlan) -> List[str]:
    return [page_label(p.number, plan.page_count) for p in plan.pages]


def draw_document(
    c: Canvas,
    plan: DocumentPlan,
    quote: Quote,
    meta: FrameMeta,
    fonts: Fonts,
    config: LayoutConfig,
    symbol: str = "€",
) -> None:
    """Finalization pass: every page, header label included, drawn with the known page total."""
    columns = column_layout()
    total_pages = plan.page_count
    for page in plan.pages:
        draw_header(c, meta, fonts, page.number, total_pages)
        if page.has_intro:
            draw_intro(c, plan.intro, fonts, page.body_top)
        if page.table_top is not None:
            draw_table_header(c, columns, fonts, page.table_top, config.table_header_height)
            for row in page.rows:
                draw_row(c, row, columns, fonts, config, symbol)
        if page.trailer_top is not None:
            draw_trailer(c, page.trailer_top, plan.totals, quote.tva_rate, fonts, symbol)
        draw_footer(c, meta, fonts, is_final_page=page.number == total_pages)
        c.showPage()


def render_quote_document(
    quote: Quote,
    settings: Optional[Settings] = None,
    config: Optional[LayoutConfig] = None,
) -> bytes:
    """Render a quote to PDF bytes (A4).

    Output depends only on the arguments: no clock, no randomness, ReportLab in
    invariant mode, so the same quote always gives the same bytes. Drawing errors
    propagate to the caller.
    """
    settings = settings or Settings()
    config = config or LayoutConfig()
    plan = plan_document(quote, config)
    fonts = register_fonts()

    buf = io.BytesIO()
    c = Canvas(buf, pagesize=PAGE_SIZE, invariant=1)
    c.setAuthor(settings.company_name)
    c.setTitle(f"{settings.document_title} {quote.id}")
    c.setFillColor(MIDNIGHT)
    draw_document(c, plan, quote, FrameMeta.build(quote, settings), fonts, config, settings.currency_symbol)
    c.save()

    logger.info("Rendered quote %s: %d item(s), %d page(s)", quote.id, len(quote.items), plan.page_count)
    return buf.getvalue()


def default_filename(quote: Quote, settings: Optional[Settings] = None) -> str:
    """devis-<id>-<client>.pdf with whitespace runs in the client name turned into hyphens."""
    settings = settings or Settings()
    name = settings.file_name_template.format(
        id=quote.id,
        client=re.sub(r"\s+", "-", quote.client_name.strip()),
        date=quote.date.replace("/", "-"),
    )
    # Keep the name usable as a file name on every platform
    name = re.sub(r'[\\/:*?"<>|]', "-", name)
    return name if name.lower().endswith(".pdf") else f"{name}.pdf"


def download_document(
    quote: Quote,
    filename: Optional[str] = None,
    directory: Optional[Path | str] = None,
    settings: Optional[Settings] = None,
    open_after: bool = False,
) -> Path:
    """Recompute totals, fill a missing date with today, render and save the PDF.

    Returns the written path. Errors (rendering or file system) propagate.
    """
    settings = settings or Settings()
    quote = quote.with_totals()
    if not quote.date:
        quote = replace(quote, date=_date.today().strftime("%d/%m/%Y"))

    out_dir = Path(directory) if directory is not None else settings.resolved_export_dir()
    out_dir.mkdir(parents=True, exist_ok=True)
    out = out_dir / (filename or default_filename(quote, settings))
    out.write_bytes(render_quote_document(quote, settings))
    logger.info("Saved quote %s to %s", quote.id, out)

    if open_after:
        open_file(out)
    return out
