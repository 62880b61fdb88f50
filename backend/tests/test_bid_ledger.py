from __future__ import annotations

import json

import pytest

from govbid.modules.bids.ledger import BIDS_KEY, BidLedger
from govbid.modules.bids.schemas import BidStatus


def test_mark_rfqs_sent_on_fresh_id_leaves_one_record(store, opportunity):
    ledger = BidLedger(store)

    rec = ledger.mark_rfqs_sent(opportunity)

    assert rec.status is BidStatus.RFQS_SENT
    records = ledger.list()
    assert len(records) == 1
    assert records[0].id == "abc123"
    assert records[0].status is BidStatus.RFQS_SENT
    assert records[0].agency == "DEPT OF DEFENSE"
    assert records[0].deadline == "2025-03-01T17:00:00-05:00"
    assert records[0].source == "SAM.gov"
    assert records[0].linkToOpportunity == "https://sam.gov/opp/abc123/view"


def test_backward_status_patch_is_ignored(store, opportunity):
    ledger = BidLedger(store)
    ledger.mark_rfqs_sent(opportunity)

    rec = ledger.mark_drafting(opportunity)

    assert rec.status is BidStatus.RFQS_SENT
    assert ledger.get("abc123").status is BidStatus.RFQS_SENT


def test_upsert_merges_patch_and_keeps_insertion_order(store):
    ledger = BidLedger(store)
    ledger.upsert("b", {"status": "Drafting", "title": "Second"})
    ledger.upsert("a", {"status": "Drafting", "title": "First"})

    ledger.upsert("b", {"status": "Submitted", "deadline": "2025-06-01"})

    records = ledger.list()
    assert [r.id for r in records] == ["b", "a"]
    assert records[0].status is BidStatus.SUBMITTED
    assert records[0].title == "Second"
    assert records[0].deadline == "2025-06-01"


def test_new_records_get_defaults(store):
    rec = BidLedger(store).upsert("xyz", {"status": BidStatus.DRAFTING})
    assert rec.deadline == "N/A"
    assert rec.agency == "N/A"
    assert rec.linkToOpportunity == "/sam-gov/xyz"


def test_creating_without_status_or_with_unknown_status_fails(store):
    ledger = BidLedger(store)
    with pytest.raises(ValueError):
        ledger.upsert("xyz", {"title": "No status"})
    with pytest.raises(ValueError):
        ledger.upsert("xyz", {"status": "Won"})
    assert ledger.list() == []


def test_malformed_ledger_reads_as_empty_and_is_overwritten(store, opportunity):
    store.write(BIDS_KEY, b"{not json")
    ledger = BidLedger(store)
    assert ledger.list() == []

    ledger.mark_drafting(opportunity)

    data = json.loads(store.read(BIDS_KEY).decode("utf-8"))
    assert [d["id"] for d in data] == ["abc123"]
    assert data[0]["status"] == "Drafting"


def test_ledger_with_invalid_entry_reads_as_empty(store):
    store.write(BIDS_KEY, json.dumps([{"id": "a", "status": "Drafting", "linkToOpportunity": "/x"}, {"id": "b"}]).encode())
    assert BidLedger(store).list() == []


def test_ledger_is_stored_as_ascii_json(store, opportunity):
    BidLedger(store).mark_drafting(opportunity.model_copy(update={"title": "Bottes de combat, désert"}))

    raw = store.read(BIDS_KEY)
    assert raw.isascii()
    assert BidLedger(store).get("abc123").title == "Bottes de combat, désert"
