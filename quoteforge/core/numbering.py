from __future__ import annotations

import re
from typing import Iterable

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def _format(prefix: str, n: int, width: int = 3) -> str:
	return f"{prefix}{n:0{width}d}"


def _numeric_suffix(quote_id: str, prefix: str) -> int:
	s = str(quote_id or "")
	if prefix and not s.startswith(prefix):
		return 0
	m = _TRAILING_DIGITS.search(s[len(prefix):])
	if not m:
		return 0
	try:
		return int(m.group(1))
	except ValueError:
		return 0


def next_quote_id(existing_ids: Iterable[str], prefix: str = "", width: int = 3) -> str:
	"""
	Return the next sequential quote id after the highest numeric suffix in use.

	Ids that do not start with prefix or carry no digits are ignored, so
	["001", "002", "abc"] -> "003" and an empty store starts at "001".
	"""
	last = max((_numeric_suffix(i, prefix) for i in existing_ids), default=0)
	return _format(prefix, last + 1, width)
