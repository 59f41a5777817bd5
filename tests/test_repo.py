from __future__ import annotations

import json
from pathlib import Path

import pytest

from quoteforge.data.db import get_engine, session_scope
from quoteforge.data.models import CreationMethod, LineItem, Quote, QuoteStatus, StoreEntry
from quoteforge.data.repo import (
    QuoteStore,
    dashboard_stats,
    delete_quote,
    get_quote,
    list_quotes,
    list_summaries,
    new_quote,
    save_quote,
    seed_demo_quotes,
    update_items,
)


@pytest.fixture()
def store(tmp_path: Path) -> QuoteStore:
    return QuoteStore(get_engine(tmp_path / "quotes.db"))


def _quote(qid: str, *amounts: float, **kw) -> Quote:
    items = tuple(LineItem(description=f"Poste {n}", quantity=1, unit="u", unit_price=a, total_ht=a) for n, a in enumerate(amounts))
    return Quote(id=qid, client_name=kw.pop("client_name", "Client"), date="18/05/2025", items=items, **kw)


def test_empty_store_and_round_trip(store: QuoteStore) -> None:
    assert store.load() == []
    saved = save_quote(store, _quote("001", 500, 2125, 2400, creation_method=CreationMethod.TEXT, min_margin=15.0))
    assert (saved.total_ht, saved.total_tva, saved.total_ttc) == (5025.0, 1005.0, 6030.0)

    loaded = get_quote(store, "001")
    assert loaded == saved
    assert loaded.creation_method is CreationMethod.TEXT

    raw = store.load_raw()[0]
    assert raw["clientName"] == "Client" and raw["client"] == "Client"
    assert raw["amount"] == "6 030,00 €"
    assert raw["items"][1]["unitPrice"] == 2125


def test_new_quotes_prepended_existing_replaced(store: QuoteStore) -> None:
    save_quote(store, _quote("001", 100))
    save_quote(store, _quote("002", 200))
    assert [q.id for q in list_quotes(store)] == ["002", "001"]

    save_quote(store, _quote("001", 300, client_name="Autre"))
    quotes = store.load()
    assert [q.id for q in quotes] == ["002", "001"]
    assert quotes[1].client_name == "Autre" and quotes[1].total_ht == 300


def test_save_requires_id(store: QuoteStore) -> None:
    with pytest.raises(ValueError):
        save_quote(store, _quote("  ", 10))


def test_delete_quote(store: QuoteStore) -> None:
    save_quote(store, _quote("001", 100))
    assert delete_quote(store, "404") == 0
    assert delete_quote(store, "001") == 1
    assert store.load() == []


def test_corrupt_payload_reads_as_empty(store: QuoteStore) -> None:
    with session_scope(store.engine) as s:
        s.add(StoreEntry(key=store.key, value="{not json"))
    assert store.load() == []
    save_quote(store, _quote("001", 10))
    assert [q.id for q in store.load()] == ["001"]


def test_legacy_records_survive_later_writes(store: QuoteStore) -> None:
    records = [
        {"id": "001", "clientName": "A", "creationMethod": "ai", "items": []},
        {"id": "002", "clientName": "B", "creationMethod": "manual"},
        {"id": "003", "clientName": "C", "creationMethod": "fax"},
    ]
    with session_scope(store.engine) as s:
        s.add(StoreEntry(key=store.key, value=json.dumps(records)))

    loaded = store.load()
    assert [q.creation_method for q in loaded] == [CreationMethod.TEXT, CreationMethod.EDIT, None]

    save_quote(store, _quote("004", 10))
    assert delete_quote(store, "002") == 1
    raw = store.load_raw()
    assert [r["id"] for r in raw] == ["004", "001", "003"]
    # Records not rewritten keep their stored values
    assert raw[1]["creationMethod"] == "ai" and raw[2]["creationMethod"] == "fax"


def test_new_quote_numbering(store: QuoteStore) -> None:
    first = new_quote(store, "Dupont", "18/05/2025", creation_method="text")
    assert first.id == "001" and first.status == QuoteStatus.DRAFT.value
    save_quote(store, first)
    assert new_quote(store, "Martin", "19/05/2025").id == "002"
    with pytest.raises(ValueError):
        new_quote(store, "   ", "19/05/2025")
    with pytest.raises(ValueError):
        new_quote(store, "Durand", "19/05/2025", creation_method="fax")


def test_update_items_with_margin() -> None:
    quote = _quote("001")
    items = [LineItem(description="Main d'oeuvre", quantity=35, unit="heure", unit_price=45)]
    priced = update_items(quote, items, margin=25)
    item = priced.items[0]
    assert item.cost_price == 45 and item.unit_price == 60
    assert item.total_ht == 2100
    assert priced.total_ht == 2100 and priced.min_margin == 25

    # Re-pricing starts again from the cost price
    repriced = update_items(priced, priced.items, margin=10)
    assert repriced.items[0].unit_price == 50


def test_summaries_and_dashboard(store: QuoteStore) -> None:
    seeded = seed_demo_quotes(store)
    assert [q.id for q in seeded] == ["001", "002", "003", "004", "005"]
    # A second seed leaves the store untouched
    assert seed_demo_quotes(store) == store.load()

    summaries = list_summaries(store, limit=2)
    assert [s.id for s in summaries] == ["001", "002"]
    assert summaries[0].client == "Dupont Construction"

    stats = dashboard_stats(store)
    assert stats["count"] == 5
    assert stats["pending"] == 2
    assert stats["accepted"] == 2
    assert stats["conversion_rate"] == 40
