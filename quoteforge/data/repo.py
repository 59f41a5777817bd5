from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import json
import logging

from sqlalchemy.engine import Engine

from quoteforge.core.currency import fmt_money, round_money
from quoteforge.core.numbering import next_quote_id
from quoteforge.core.pricing import apply_margin
from quoteforge.core.settings import Settings
from quoteforge.data.db import create_db_and_tables, get_engine, get_session, session_scope
from quoteforge.data.models import CreationMethod, LineItem, Quote, QuoteStatus, QuoteSummary, StoreEntry

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "quotes"


class QuoteStore:
	"""
	Local quote persistence: one JSON array of quote records under a single key.

	Reads and writes always cover the whole collection; there are no partial updates.
	"""

	def __init__(self, engine: Optional[Engine] = None, key: str = DEFAULT_STORAGE_KEY) -> None:
		self.engine = create_db_and_tables(engine or get_engine())
		self.key = key

	@classmethod
	def from_settings(cls, settings: Settings) -> "QuoteStore":
		return cls(get_engine(settings.resolved_db_path()), key=settings.storage_key)

	def load_raw(self) -> List[Dict[str, Any]]:
		with get_session(self.engine) as s:
			entry = s.get(StoreEntry, self.key)
			payload = entry.value if entry is not None else None
		if not payload:
			return []
		try:
			data = json.loads(payload)
		except json.JSONDecodeError as e:
			# Leave the stored value alone; the next save replaces it
			logger.warning("Corrupt JSON under store key %r: %s", self.key, e)
			return []
		return [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []

	def load(self) -> List[Quote]:
		quotes: List[Quote] = []
		for record in self.load_raw():
			try:
				quotes.append(Quote.from_dict(record))
			except ValueError as e:
				logger.warning("Skipping unreadable quote record %r: %s", record.get("id"), e)
		logger.debug("Loaded %d quote(s) from key %r", len(quotes), self.key)
		return quotes

	def save(self, quotes: Iterable[Quote]) -> None:
		self.save_records([_record(q) for q in quotes])

	def save_records(self, records: List[Dict[str, Any]]) -> None:
		"""Replace the stored collection with raw records, written as-is."""
		payload = json.dumps(records, ensure_ascii=False)
		with session_scope(self.engine) as s:
			entry = s.get(StoreEntry, self.key)
			if entry is None:
				s.add(StoreEntry(key=self.key, value=payload))
			else:
				entry.value = payload
				s.add(entry)
		logger.debug("Saved %d quote(s) under key %r", len(records), self.key)


def _record(quote: Quote) -> Dict[str, Any]:
	"""Stored shape: the full quote plus the list-view fields (client, amount)."""
	record = quote.to_dict()
	record["client"] = quote.client_name
	record["amount"] = fmt_money(quote.total_ttc)
	return record


def list_quotes(store: QuoteStore) -> List[Quote]:
	return store.load()


def get_quote(store: QuoteStore, quote_id: str) -> Optional[Quote]:
	for q in store.load():
		if q.id == str(quote_id):
			return q
	return None


def save_quote(store: QuoteStore, quote: Quote) -> Quote:
	"""
	Insert or replace a quote, with totals recomputed from its items.

	New quotes go to the front of the collection (most recent first); an
	existing id is replaced in place. Other records are written back untouched,
	including ones this version cannot read.
	"""
	if not str(quote.id or "").strip():
		raise ValueError("Quote id is required")
	quote = quote.with_totals()
	records = store.load_raw()
	for idx, existing in enumerate(records):
		if str(existing.get("id", "")) == quote.id:
			records[idx] = _record(quote)
			break
	else:
		records.insert(0, _record(quote))
	store.save_records(records)
	return quote


def delete_quote(store: QuoteStore, quote_id: str) -> int:
	"""Delete a quote by id. Returns 1 if deleted, 0 if not found."""
	records = store.load_raw()
	kept = [r for r in records if str(r.get("id", "")) != str(quote_id)]
	if len(kept) == len(records):
		return 0
	store.save_records(kept)
	return 1


def new_quote(
	store: QuoteStore,
	client_name: str,
	date: str,
	*,
	creation_method: CreationMethod | str | None = None,
	tva_rate: float = 20.0,
	client_email: Optional[str] = None,
) -> Quote:
	"""Build (without saving) a draft quote with the next free id."""
	name = (client_name or "").strip()
	if not name:
		raise ValueError("Client name is required")
	method = CreationMethod.parse(creation_method)
	return Quote(
		id=next_quote_id(q.id for q in store.load()),
		client_name=name,
		client_email=client_email,
		date=date,
		tva_rate=float(tva_rate),
		status=QuoteStatus.DRAFT.value,
		creation_method=method,
	)


def update_items(quote: Quote, items: Iterable[LineItem], margin: Optional[float] = None) -> Quote:
	"""Replace a quote's items, recomputing line totals (and margin pricing when given)."""
	out: List[LineItem] = []
	for it in items:
		if margin is not None:
			cost = it.cost_price if it.cost_price is not None else it.unit_price
			it = replace(it, cost_price=cost, unit_price=float(apply_margin(cost, margin)))
		out.append(it.with_line_total())
	quote = replace(quote, min_margin=margin if margin is not None else quote.min_margin)
	return quote.with_items(out)


def list_summaries(store: QuoteStore, limit: Optional[int] = None) -> List[QuoteSummary]:
	rows = [QuoteSummary.from_quote(q) for q in store.load()]
	return rows[:limit] if isinstance(limit, int) and limit > 0 else rows


def dashboard_stats(store: QuoteStore) -> Dict[str, Any]:
	"""Totals for the dashboard cards: amount, pending, accepted, conversion rate."""
	quotes = store.load()
	total = Decimal("0")
	for q in quotes:
		total += q.totals().ttc if q.items else Decimal(str(q.total_ttc))
	pending = sum(1 for q in quotes if q.status in QuoteStatus.pending_values())
	accepted = sum(1 for q in quotes if q.status == QuoteStatus.ACCEPTED.value)
	rate = round(accepted * 100 / len(quotes)) if quotes else 0
	return {
		"count": len(quotes),
		"total_amount": round_money(total),
		"pending": pending,
		"accepted": accepted,
		"conversion_rate": rate,
	}


_DEMO = [
	("001", "Dupont Construction", "18/05/2025", QuoteStatus.ACCEPTED, 1041.67),
	("002", "Maison Moderne", "19/05/2025", QuoteStatus.SENT, 2367.04),
	("003", "Rénovation Express", "20/05/2025", QuoteStatus.DRAFT, 625.25),
	("004", "Bâtiments & Co", "15/05/2025", QuoteStatus.ACCEPTED, 3500.00),
	("005", "Électricité Pro", "10/05/2025", QuoteStatus.REFUSED, 1538.25),
]


def seed_demo_quotes(store: QuoteStore) -> List[Quote]:
	"""Fill an empty store with a handful of demo quotes; a non-empty store is left untouched."""
	if store.load_raw():
		return store.load()
	quotes = []
	for qid, client, date, status, amount in _DEMO:
		item = LineItem(description="Prestation forfaitaire", quantity=1, unit="forfait", unit_price=amount, total_ht=amount)
		quotes.append(Quote(id=qid, client_name=client, date=date, status=status.value, items=(item,)).with_totals())
	store.save(quotes)
	return quotes
