from __future__ import annotations

from decimal import Decimal

import pytest

from quoteforge.core.numbering import next_quote_id
from quoteforge.core.pricing import apply_margin, compute_totals, line_total


def test_line_total_rounds_to_cents() -> None:
    assert line_total(25, 85) == Decimal("2125.00")
    assert line_total(3, "19.99") == Decimal("59.97")
    assert line_total(0.333, 10) == Decimal("3.33")


def test_compute_totals() -> None:
    totals = compute_totals([500, 2125, 2400], 20)
    assert (totals.ht, totals.tva, totals.ttc) == (Decimal("5025.00"), Decimal("1005.00"), Decimal("6030.00"))
    empty = compute_totals([], 20)
    assert empty.ttc == Decimal("0.00")
    reduced = compute_totals([100], 5.5)
    assert reduced.tva == Decimal("5.50")


def test_apply_margin() -> None:
    assert apply_margin(100, 20) == Decimal("125")
    assert apply_margin(750, 25) == Decimal("1000")
    assert apply_margin(99.6, 0) == Decimal("100")
    with pytest.raises(ValueError):
        apply_margin(100, 100)


def test_next_quote_id() -> None:
    assert next_quote_id([]) == "001"
    assert next_quote_id(["001", "002", "abc"]) == "003"
    assert next_quote_id(["009", "010"]) == "011"
    assert next_quote_id(["D-004", "007"], prefix="D-") == "D-005"
