from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlmodel import Field, SQLModel

from quoteforge.core.currency import fmt_money, round_money, to_decimal
from quoteforge.core.pricing import Totals, compute_totals, line_total


class CreationMethod(str, Enum):
	"""How a quote's line items were produced; drives which editor panel applies."""

	TEXT = "text"
	PDF = "pdf"
	IMAGE = "image"
	CCTP = "cctp"
	EDIT = "edit"

	@classmethod
	def parse(cls, value: Any) -> Optional["CreationMethod"]:
		if value is None or value == "":
			return None
		if isinstance(value, cls):
			return value
		try:
			return cls(str(value).strip().lower())
		except ValueError:
			raise ValueError(f"Unknown creation method: {value!r}") from None

	@classmethod
	def from_record(cls, value: Any) -> Optional["CreationMethod"]:
		"""Lenient parse for stored records: legacy aliases are mapped, unknown values read as None."""
		if isinstance(value, cls):
			return value
		key = str(value).strip().lower() if value is not None else ""
		if key in _CREATION_ALIASES:
			return cls(_CREATION_ALIASES[key])
		try:
			return cls.parse(key)
		except ValueError:
			return None


# Values written by earlier versions of the editor
_CREATION_ALIASES = {"ai": "text", "manual": "edit"}


class QuoteStatus(str, Enum):
	DRAFT = "Brouillon"
	PENDING = "En attente"
	SENT = "Envoyé"
	ACCEPTED = "Accepté"
	REFUSED = "Refusé"
	PAID = "Payé"
	CANCELLED = "Annulé"

	@classmethod
	def pending_values(cls) -> Tuple[str, ...]:
		return (cls.DRAFT.value, cls.SENT.value, cls.PENDING.value)


def _num(value: Any) -> float:
	return float(to_decimal(value if value is not None else 0))


def _opt_str(value: Any) -> Optional[str]:
	if value is None:
		return None
	s = str(value)
	return s if s.strip() else None


@dataclass(frozen=True)
class LineItem:
	description: str = ""
	quantity: float = 0.0
	unit: str = ""
	unit_price: float = 0.0
	# Stored extended total; the renderer prints it as-is
	total_ht: float = 0.0
	id: Optional[str] = None
	# Pre-margin price, kept so a margin change can be re-applied
	cost_price: Optional[float] = None

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "LineItem":
		cost = data.get("costPrice")
		return cls(
			description=str(data.get("description", "") or ""),
			quantity=_num(data.get("quantity")),
			unit=str(data.get("unit", "") or ""),
			unit_price=_num(data.get("unitPrice")),
			total_ht=_num(data.get("totalHT")),
			id=_opt_str(data.get("id")),
			cost_price=_num(cost) if cost not in (None, "") else None,
		)

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {
			"description": self.description,
			"quantity": self.quantity,
			"unit": self.unit,
			"unitPrice": self.unit_price,
			"totalHT": self.total_ht,
		}
		if self.id is not None:
			out["id"] = self.id
		if self.cost_price is not None:
			out["costPrice"] = self.cost_price
		return out

	def with_line_total(self) -> "LineItem":
		"""Copy with total_ht recomputed from quantity x unit_price."""
		return replace(self, total_ht=float(line_total(self.quantity, self.unit_price)))


# snake_case attribute -> camelCase key of the stored JSON record
_QUOTE_KEYS = {
	"id": "id",
	"client_name": "clientName",
	"client_address": "clientAddress",
	"client_email": "clientEmail",
	"client_phone": "clientPhone",
	"client_siret": "clientSiret",
	"quote_title": "quoteTitle",
	"project_description": "projectDescription",
	"date": "date",
	"status": "status",
	"notes": "notes",
}


@dataclass(frozen=True)
class Quote:
	id: str
	client_name: str = ""
	client_address: Optional[str] = None
	client_email: Optional[str] = None
	client_phone: Optional[str] = None
	client_siret: Optional[str] = None
	quote_title: Optional[str] = None
	project_description: Optional[str] = None
	items: Tuple[LineItem, ...] = field(default_factory=tuple)
	date: str = ""
	tva_rate: float = 20.0
	status: str = QuoteStatus.DRAFT.value
	creation_method: Optional[CreationMethod] = None
	min_margin: Optional[float] = None
	notes: Optional[str] = None
	total_ht: float = 0.0
	total_tva: float = 0.0
	total_ttc: float = 0.0

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "Quote":
		"""Build a Quote from a stored record; unknown keys are ignored."""
		kwargs: Dict[str, Any] = {}
		for attr, key in _QUOTE_KEYS.items():
			if key in data:
				kwargs[attr] = _opt_str(data[key]) if attr not in ("id", "client_name", "date", "status") else str(data[key] or "")
		# List-view records only carry "client"
		if not kwargs.get("client_name") and data.get("client"):
			kwargs["client_name"] = str(data["client"])
		if not kwargs.get("status"):
			kwargs.pop("status", None)
		raw_items = data.get("items") or []
		kwargs["items"] = tuple(LineItem.from_dict(it) for it in raw_items if isinstance(it, dict))
		if data.get("tvaRate") is not None:
			kwargs["tva_rate"] = _num(data.get("tvaRate"))
		kwargs["creation_method"] = CreationMethod.from_record(data.get("creationMethod"))
		if data.get("minMargin") not in (None, ""):
			kwargs["min_margin"] = _num(data.get("minMargin"))
		for attr, key in (("total_ht", "totalHT"), ("total_tva", "totalTVA"), ("total_ttc", "totalTTC")):
			if data.get(key) is not None:
				kwargs[attr] = _num(data.get(key))
		kwargs.setdefault("id", "")
		return cls(**kwargs)

	def to_dict(self) -> Dict[str, Any]:
		out: Dict[str, Any] = {}
		for attr, key in _QUOTE_KEYS.items():
			value = getattr(self, attr)
			if value is not None:
				out[key] = value
		out["items"] = [it.to_dict() for it in self.items]
		out["tvaRate"] = self.tva_rate
		if self.creation_method is not None:
			out["creationMethod"] = self.creation_method.value
		if self.min_margin is not None:
			out["minMargin"] = self.min_margin
		out["totalHT"] = self.total_ht
		out["totalTVA"] = self.total_tva
		out["totalTTC"] = self.total_ttc
		return out

	def totals(self) -> Totals:
		return compute_totals((it.total_ht for it in self.items), self.tva_rate)

	def with_totals(self) -> "Quote":
		"""Copy with totalHT/TVA/TTC recomputed from the item list."""
		t = self.totals()
		return replace(self, total_ht=round_money(t.ht), total_tva=round_money(t.tva), total_ttc=round_money(t.ttc))

	def with_items(self, items: Iterable[LineItem]) -> "Quote":
		return replace(self, items=tuple(items)).with_totals()


@dataclass(frozen=True)
class QuoteSummary:
	"""Projection used by list and dashboard screens."""

	id: str
	client: str
	amount: str
	date: str
	status: str

	@classmethod
	def from_quote(cls, quote: Quote, symbol: str = "€") -> "QuoteSummary":
		return cls(
			id=quote.id,
			client=quote.client_name,
			amount=fmt_money(quote.totals().ttc if quote.items else quote.total_ttc, symbol),
			date=quote.date,
			status=quote.status,
		)


class StoreEntry(SQLModel, table=True):
	"""One key of the local key-value store; value is a JSON document."""

	__tablename__ = "store_entry"

	key: str = Field(primary_key=True)
	value: str = "[]"
