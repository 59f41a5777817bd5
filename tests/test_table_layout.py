from __future__ import annotations

import math

import pytest

from quoteforge.data.models import LineItem
from quoteforge.pdf.formatting import wrap_text
from quoteforge.pdf.geometry import CONTENT_LEFT, CONTENT_RIGHT, CONTENT_WIDTH, FOOTER_LIMIT, LayoutConfig, column_layout
from quoteforge.pdf.table_layout import TableLayoutEngine
from quoteforge.pdf.trailer import signature_zones, trailer_fits

EPS = 1e-6


def _items(descriptions):
    return [LineItem(description=d, quantity=1, unit="u", unit_price=10, total_ht=10) for d in descriptions]


def _all_rows(pages):
    return [row for page in pages for row in page.rows]


def test_row_height_is_line_count_times_base() -> None:
    cfg = LayoutConfig()
    desc = "Dépose des menuiseries existantes et évacuation des gravats en décharge agréée"
    lines = wrap_text(desc, cfg.desc_chars_per_line)
    assert len(lines) == 2

    pages = TableLayoutEngine(cfg).paginate(_items([desc, "", "Pose"]), cfg.body_top)
    rows = _all_rows(pages)
    assert rows[0].height == pytest.approx(2 * cfg.base_row_height)
    assert list(rows[0].lines) == lines
    # An empty description still takes one row
    assert rows[1].lines == () and rows[1].height == pytest.approx(cfg.base_row_height)


def test_rows_tile_without_gaps_and_stay_above_footer() -> None:
    cfg = LayoutConfig()
    descs = [("Ligne de devis numéro %d " % i) * (1 + i % 4) for i in range(80)]
    engine = TableLayoutEngine(cfg)
    pages = engine.paginate(_items(descs), cfg.body_top - 60)

    assert [p.number for p in pages] == list(range(1, len(pages) + 1))
    assert [r.index for r in _all_rows(pages)] == list(range(80))
    for page in pages:
        assert page.has_table
        expected_top = page.table_top - cfg.table_header_height
        for row in page.rows:
            assert row.top == pytest.approx(expected_top)
            assert row.bottom >= cfg.body_bottom - EPS
            expected_top = row.bottom
    assert engine.cursor == pytest.approx(pages[-1].rows[-1].bottom)


def test_trailer_room_reserved_on_last_page_only() -> None:
    cfg = LayoutConfig()
    engine = TableLayoutEngine(cfg)
    pages = engine.paginate(_items(["Poste"] * 40), cfg.body_top)
    assert len(pages) == 2
    # Page 1 is filled down to the footer, page 2 leaves room for the trailer
    assert pages[0].rows[-1].bottom - cfg.base_row_height < cfg.body_bottom
    assert trailer_fits(engine.cursor, cfg)


def test_oversized_row_is_split_at_line_boundaries() -> None:
    cfg = LayoutConfig()
    huge = " ".join(f"mot{i}" for i in range(1500))
    total_lines = len(wrap_text(huge, cfg.desc_chars_per_line))
    assert cfg.row_height(total_lines) > cfg.continuation_rows_room

    pages = TableLayoutEngine(cfg).paginate(_items(["Avant", huge, "Après"]), cfg.body_top)
    fragments = [r for r in _all_rows(pages) if r.index == 1]
    assert len(fragments) >= 2
    assert fragments[0].first_fragment and not fragments[0].last_fragment
    assert fragments[-1].last_fragment and not fragments[-1].first_fragment
    assert sum(len(f.lines) for f in fragments) == total_lines
    assert all(r.bottom >= cfg.body_bottom - EPS for r in _all_rows(pages))
    assert _all_rows(pages)[-1].index == 2


def test_columns_cover_content_width() -> None:
    columns = column_layout()
    assert [c.key for c in columns] == ["description", "quantity", "unit", "unit_price", "total"]
    assert columns[0].x == CONTENT_LEFT
    assert columns[-1].right == CONTENT_RIGHT
    assert math.isclose(sum(c.width for c in columns), CONTENT_WIDTH, abs_tol=EPS)
    for left, right in zip(columns, columns[1:]):
        assert left.right == pytest.approx(right.x)
    assert columns[0].width == pytest.approx(CONTENT_WIDTH / 2)


def test_signature_zones_split_width_evenly() -> None:
    (x1, w1), (x2, w2) = signature_zones()
    assert w1 == pytest.approx(w2)
    assert x1 == CONTENT_LEFT
    assert x2 + w2 == pytest.approx(CONTENT_RIGHT)


def test_trailer_fits_respects_footer() -> None:
    cfg = LayoutConfig()
    assert trailer_fits(cfg.body_bottom + cfg.trailer_height, cfg)
    assert not trailer_fits(cfg.body_bottom + cfg.trailer_height - 1, cfg)


def test_trailer_keeps_clear_of_footer_with_lowered_body_bottom() -> None:
    cfg = LayoutConfig(body_bottom=0)
    assert trailer_fits(FOOTER_LIMIT + cfg.trailer_height, cfg)
    assert not trailer_fits(FOOTER_LIMIT + cfg.trailer_height - 1, cfg)
    assert not trailer_fits(cfg.trailer_height + 1, cfg)
