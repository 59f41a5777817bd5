from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from quoteforge.core.currency import round_money_dec, sum_money, to_decimal


@dataclass(frozen=True)
class Totals:
	ht: Decimal
	tva: Decimal
	ttc: Decimal


def line_total(quantity: object, unit_price: object) -> Decimal:
	"""Extended line total (quantity x unit price), rounded to cents."""
	return round_money_dec(to_decimal(quantity) * to_decimal(unit_price))


def apply_margin(cost_price: object, margin: object) -> Decimal:
	"""
	Selling price from a cost price and a target margin percentage.

	price = cost / (1 - margin/100), rounded to the nearest euro. A margin <= 0
	only rounds the cost; a margin >= 100 is rejected since the price would be
	unbounded.
	"""
	cost = to_decimal(cost_price)
	m = to_decimal(margin)
	if m <= 0:
		return cost.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
	if m >= 100:
		raise ValueError(f"Margin must be below 100%, got {m}")
	price = cost / (Decimal("1") - m / Decimal("100"))
	return price.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def compute_totals(line_totals: Iterable[object], tva_rate: object) -> Totals:
	"""Totals from the authoritative line totals: HT, TVA at tva_rate percent, TTC."""
	ht = sum_money(line_totals)
	tva = round_money_dec(ht * to_decimal(tva_rate) / Decimal("100"))
	return Totals(ht=ht, tva=tva, ttc=ht + tva)
