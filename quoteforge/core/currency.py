from __future__ import annotations

from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Optional


def to_decimal(x: object) -> Decimal:
	"""Best-effort conversion to Decimal via str to avoid binary float artifacts."""
	if isinstance(x, Decimal):
		return x
	try:
		return Decimal(str(x))
	except (InvalidOperation, ValueError, TypeError):
		return Decimal("0")


def round_money_dec(x: object) -> Decimal:
	"""Round to 2 decimals (round-half-to-even) and return Decimal."""
	d = to_decimal(x)
	return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)


def round_money(x: object) -> float:
	"""Same as round_money_dec but returns a float, for JSON records."""
	return float(round_money_dec(x))


def sum_money(values: Iterable[object]) -> Decimal:
	"""Accumulate monetary values using Decimal and banker's rounding at the end."""
	total = Decimal("0")
	for v in values:
		total += to_decimal(v)
	return round_money_dec(total)


def _group_thousands(digits: str, sep: str = " ") -> str:
	groups = []
	while len(digits) > 3:
		groups.insert(0, digits[-3:])
		digits = digits[:-3]
	groups.insert(0, digits)
	return sep.join(groups)


def fmt_money(x: object, symbol: str = "€", width: Optional[int] = None) -> str:
	"""
	Format a monetary value the French way: "1 234,50 €".

	Two decimals with exact halves rounded up (display only; stored amounts use
	round_money_dec), thousands grouped with a space, decimal comma, currency suffix.
	An empty symbol drops the suffix. If width is provided, return a right-aligned string.
	"""
	q = to_decimal(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
	sign = "-" if q < 0 else ""
	whole, frac = f"{abs(q):.2f}".split(".")
	s = f"{sign}{_group_thousands(whole)},{frac}"
	if symbol:
		s = f"{s} {symbol}"
	return s.rjust(width) if isinstance(width, int) and width > 0 else s


def parse_money(text: str) -> Decimal:
	"""
	Parse a formatted amount back to Decimal: "1.250,00 €", "1 250,00", "12.50", "1,250.5".

	The last "." or "," is the decimal mark when 1 or 2 digits follow it; every other
	separator is a thousands separator and is dropped.
	"""
	cleaned = "".join(ch for ch in str(text or "") if ch.isdigit() or ch in ".,-")
	if not any(ch.isdigit() for ch in cleaned):
		return Decimal("0")
	sign = "-" if cleaned.startswith("-") else ""
	body = cleaned.replace("-", "")
	cut = max(body.rfind("."), body.rfind(","))
	tail = body[cut + 1:] if cut >= 0 else ""
	if cut >= 0 and 1 <= len(tail) <= 2 and tail.isdigit():
		whole = "".join(ch for ch in body[:cut] if ch.isdigit()) or "0"
		return round_money_dec(f"{sign}{whole}.{tail}")
	return round_money_dec(sign + "".join(ch for ch in body if ch.isdigit()))
