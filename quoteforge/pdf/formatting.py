from __future__ import annotations

import re
from typing import List, Sequence

_FIRST_SENTENCE = re.compile(r"^.+?[.!?](?:\s|$)", re.DOTALL)


def wrap_text(text: str, max_chars: int) -> List[str]:
    """Greedy word wrap into lines of at most max_chars characters.

    - Splits on whitespace; explicit newlines always start a new line.
    - A word longer than max_chars is emitted alone on its own (overflowing) line,
      it is never hyphenated or cut.
    - Blank text gives an empty list.
    """
    max_chars = max(1, int(max_chars))
    lines: List[str] = []
    for paragraph in (text or "").replace("\r", "").split("\n"):
        line: List[str] = []
        length = 0
        for word in paragraph.split():
            trial = length + len(word) + (1 if line else 0)
            if line and trial > max_chars:
                lines.append(" ".join(line))
                line, length = [word], len(word)
            else:
                line.append(word)
                length = trial
        if line:
            lines.append(" ".join(line))
    return lines


def line_count(text: str, max_chars: int) -> int:
    """Number of wrapped lines, at least 1 (an empty description still takes a row)."""
    return max(1, len(wrap_text(text, max_chars)))


def clamp_lines(lines: Sequence[str], max_lines: int, ellipsis: str = "...") -> List[str]:
    """Keep the first max_lines lines; mark the cut by ending the last kept line with an ellipsis."""
    kept = list(lines[:max_lines])
    if len(lines) > max_lines and kept:
        last = kept[-1]
        kept[-1] = (last[: -len(ellipsis)] if len(last) > len(ellipsis) else "") + ellipsis
    return kept


def summarize(text: str, limit: int = 100) -> str:
    """Short project summary: the text itself, its first sentence, or a truncated prefix."""
    s = " ".join((text or "").split())
    if len(s) <= limit:
        return s
    m = _FIRST_SENTENCE.match(s)
    if m and len(m.group(0)) < limit:
        return m.group(0).strip()
    return s[: max(0, limit - 10)] + "..."


def _strip_decimals(value: float, places: int) -> str:
    s = f"{float(value):.{places}f}".rstrip("0").rstrip(".")
    return (s if s not in ("", "-0") else "0").replace(".", ",")


def fmt_qty(qty: float) -> str:
    """Format quantity with up to 3 decimals, no trailing zeros, decimal comma."""
    try:
        return _strip_decimals(qty, 3)
    except (TypeError, ValueError):
        return str(qty)


def fmt_rate(rate: float) -> str:
    """Tax rate for labels: 20.0 -> "20", 5.5 -> "5,5"."""
    try:
        return _strip_decimals(rate, 2)
    except (TypeError, ValueError):
        return str(rate)
