from __future__ import annotations

import io
import math
import re
from pathlib import Path

from pypdf import PdfReader

from quoteforge.data.models import LineItem, Quote
from quoteforge.pdf.geometry import LayoutConfig
from quoteforge.pdf.quote_pdf import (
    default_filename,
    download_document,
    page_labels,
    plan_document,
    render_quote_document,
)


def _a4_size_points() -> tuple[float, float]:
    # ReportLab A4 in points
    return (595.2755905511812, 841.8897637795277)


def _item(desc: str, qty: float, unit: str, price: float) -> LineItem:
    return LineItem(description=desc, quantity=qty, unit=unit, unit_price=price).with_line_total()


def _quote(items, **kw) -> Quote:
    data = dict(id="001", client_name="Dupont Construction", date="18/05/2025", tva_rate=20.0)
    data.update(kw)
    return Quote(items=tuple(items), **data)


def _read(pdf: bytes) -> PdfReader:
    return PdfReader(io.BytesIO(pdf))


def test_three_items_single_page_with_totals() -> None:
    items = [
        _item("Étude préliminaire", 1, "forfait", 500),
        _item("Fourniture et pose de parquet chêne massif", 25, "m²", 85),
        _item("Douche à l'italienne", 1, "u", 2400),
    ]
    quote = _quote(items)
    totals = quote.totals()
    assert (float(totals.ht), float(totals.tva), float(totals.ttc)) == (5025.0, 1005.0, 6030.0)

    reader = _read(render_quote_document(quote))
    assert len(reader.pages) == 1

    page = reader.pages[0]
    box = page.mediabox
    a4w, a4h = _a4_size_points()
    assert math.isclose(float(box.right - box.left), a4w, rel_tol=0, abs_tol=1.0)
    assert math.isclose(float(box.top - box.bottom), a4h, rel_tol=0, abs_tol=1.0)

    text = page.extract_text() or ""
    assert "Page 1/1" in text
    assert "N° 001" in text
    assert re.search(r"Total HT:\s*5\s?025,00", text) is not None
    assert re.search(r"TVA \(20%\):\s*1\s?005,00", text) is not None
    assert re.search(r"TOTAL TTC:\s*6\s?030,00", text) is not None
    assert "DÉSIGNATION" in text and "P.U. HT" in text
    assert "SIGNATURE DE L'ÉMETTEUR" in text and "SIGNATURE DU DESTINATAIRE" in text
    assert "Suite page suivante" not in text


def test_empty_quote_renders_one_page_with_zero_totals() -> None:
    reader = _read(render_quote_document(_quote([])))
    assert len(reader.pages) == 1
    text = reader.pages[0].extract_text() or ""
    assert "Page 1/1" in text
    assert re.search(r"TOTAL TTC:\s*0,00", text) is not None
    assert "Bon pour accord" in text and "Bon pour acceptation du devis" in text


def test_stale_stored_totals_are_ignored() -> None:
    quote = _quote([_item("Main d'oeuvre", 10, "heure", 45)], total_ht=1.0, total_tva=1.0, total_ttc=1.0)
    text = _read(render_quote_document(quote)).pages[0].extract_text() or ""
    assert re.search(r"TOTAL TTC:\s*540,00", text) is not None


def test_rendering_is_deterministic() -> None:
    quote = _quote([_item(f"Ligne {i}", 1, "u", 10 * i) for i in range(30)])
    assert render_quote_document(quote) == render_quote_document(quote)


def test_sixty_items_spread_over_two_pages() -> None:
    items = [_item(f"Poste {i + 1}", 1, "u", 100) for i in range(60)]
    quote = _quote(items)

    # Row height chosen so that 40 rows fit under the first-page intro
    default_plan = plan_document(quote)
    cfg = LayoutConfig()
    room = default_plan.pages[0].table_top - cfg.table_header_height - cfg.body_bottom
    config = LayoutConfig(base_row_height=room / 40.5)

    plan = plan_document(quote, config)
    assert plan.page_count == 2
    assert plan.pages[0].item_indexes == list(range(40))
    assert plan.pages[1].item_indexes == list(range(40, 60))
    assert not plan.pages[0].has_trailer and plan.pages[1].has_trailer
    assert page_labels(plan) == ["Page 1/2", "Page 2/2"]

    reader = _read(render_quote_document(quote, config=config))
    assert len(reader.pages) == 2
    texts = [p.extract_text() or "" for p in reader.pages]
    assert "Page 1/2" in texts[0] and "Page 2/2" in texts[1]
    assert "Suite page suivante" in texts[0]
    assert "Suite page suivante" not in texts[1]
    assert "TOTAL TTC" in texts[1] and "TOTAL TTC" not in texts[0]
    # Table header repeated on the continuation page
    assert "DÉSIGNATION" in texts[1]


def test_every_label_carries_the_final_page_count() -> None:
    long_desc = "Fourniture et pose de plaques de plâtre sur ossature métallique " * 3
    quote = _quote([_item(long_desc, 12, "m²", 42) for _ in range(45)])
    plan = plan_document(quote)
    assert plan.page_count > 2

    reader = _read(render_quote_document(quote))
    assert len(reader.pages) == plan.page_count
    for n, page in enumerate(reader.pages, start=1):
        assert f"Page {n}/{plan.page_count}" in (page.extract_text() or "")


def test_trailer_keeps_company_of_the_last_rows() -> None:
    items = [_item(f"Poste {i + 1}", 1, "u", 100) for i in range(40)]
    quote = _quote(items)
    cfg = LayoutConfig()
    room = plan_document(quote).pages[0].table_top - cfg.table_header_height - cfg.body_bottom
    # The 40 rows alone fill page 1 exactly, leaving no room for the trailer
    config = LayoutConfig(base_row_height=room / 40)

    plan = plan_document(quote, config)
    assert plan.page_count == 2
    first, last = plan.pages
    assert 0 < len(first.rows) < 40
    assert first.item_indexes + last.item_indexes == list(range(40))
    assert last.rows and last.has_trailer
    assert last.trailer_top - cfg.trailer_height >= cfg.body_bottom - 1e-6


def test_default_filename_and_download(tmp_path: Path) -> None:
    quote = _quote([_item("Carrelage mural", 22, "m²", 75)], client_name="Jean  Dupont", date="")
    assert default_filename(quote) == "devis-001-Jean-Dupont.pdf"

    out = download_document(quote, directory=tmp_path)
    assert out == tmp_path / "devis-001-Jean-Dupont.pdf"
    assert out.exists()

    reader = PdfReader(str(out))
    assert len(reader.pages) == 1
    text = reader.pages[0].extract_text() or ""
    # A missing date is filled in before rendering
    assert re.search(r"Date: \d{2}/\d{2}/\d{4}", text) is not None


def test_download_with_explicit_filename(tmp_path: Path) -> None:
    out = download_document(_quote([]), filename="export.pdf", directory=tmp_path / "sub")
    assert out == tmp_path / "sub" / "export.pdf"
    assert out.read_bytes().startswith(b"%PDF")
