from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from govbid.errors import FetchError, GenerationError, NotFoundError
from govbid.main import create_app
from govbid.modules.bids.ledger import BidLedger
from govbid.modules.chat.context_manager import ChatContextManager
from govbid.sessions import SessionRegistry


@pytest.fixture()
def wired(monkeypatch, store, opportunity):
    from govbid import dependencies as deps

    state = SimpleNamespace(
        fetches=[], generations=[], fail_generation=False, fail_lookup=False, known={"abc123"}
    )

    def fetch_opportunity(oid):
        state.fetches.append(oid)
        if state.fail_lookup:
            raise FetchError("SAM.gov returned 503")
        if oid not in state.known:
            raise NotFoundError(oid)
        return opportunity

    def generate_summary_from_links(links):
        state.generations.append(list(links))
        if state.fail_generation:
            raise GenerationError("analysis backend returned 500")
        return {
            "extract_all_key_contract_data": {"naics": "316210", "quantity": 500},
            "final_recommendations_and_next_steps": ["Request quotes", "Bid"],
        }

    sam = SimpleNamespace(fetch_opportunity=fetch_opportunity, fetch_description_text=lambda _s: "unused")
    backend = SimpleNamespace(
        generate_summary_from_links=generate_summary_from_links,
        send_chat_turn=lambda _summary, _history, text: f"Answer to: {text}",
    )
    chat = ChatContextManager(send_chat_turn=backend.send_chat_turn, turn_wait_s=0)
    ledger = BidLedger(store)
    registry = SessionRegistry(ttl_seconds=600, max_entries=16)

    monkeypatch.setattr(deps, "get_blob_store", lambda: store)
    monkeypatch.setattr(deps, "get_sam_gov_client", lambda: sam)
    monkeypatch.setattr(deps, "get_analysis_backend", lambda: backend)
    monkeypatch.setattr(deps, "get_chat_manager", lambda: chat)
    monkeypatch.setattr(deps, "get_bid_ledger", lambda: ledger)
    monkeypatch.setattr(deps, "get_session_registry", lambda: registry)
    return state


@pytest.fixture()
def client(wired):
    return TestClient(create_app())


def _get_summary(client, oid="abc123", session="sess-a"):
    return client.get(f"/api/opportunities/{oid}/summary", headers={"X-Session-Id": session})


def test_summary_is_resolved_once_and_rendered(client, wired, store):
    r = _get_summary(client)

    assert r.status_code == 200
    assert r.headers["X-Session-Id"] == "sess-a"
    body = r.json()
    assert body["summary"]["title"] == "Combat Boots, Desert"
    assert body["meta"]["agency"] == "DEPT OF DEFENSE"
    assert [s["key"] for s in body["sections"]] == [
        "extract_all_key_contract_data",
        "final_recommendations_and_next_steps",
    ]
    assert body["sections"][1]["body"]["kind"] == "bullets"
    assert store.read("summary:abc123") is not None

    # Same session, then a new session: neither goes upstream again.
    assert _get_summary(client).status_code == 200
    assert _get_summary(client, session="sess-b").json()["summary"] == body["summary"]
    assert wired.fetches == ["abc123"]
    assert len(wired.generations) == 1


def test_session_id_is_generated_when_missing(client):
    r = client.get("/api/opportunities/abc123/summary")
    assert r.status_code == 200
    assert r.headers["X-Session-Id"].startswith("sess_")


def test_unknown_opportunity_is_404_problem(client):
    r = _get_summary(client, oid="missing")
    assert r.status_code == 404
    assert r.headers["content-type"].startswith("application/problem+json")
    body = r.json()
    assert body["extensions"]["opportunityId"] == "missing"
    assert body.get("requestId")


def test_generation_failure_is_502_and_not_cached(client, wired, store):
    wired.fail_generation = True

    r = _get_summary(client)

    assert r.status_code == 502
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.json()["title"] == "Failed to generate summary"
    assert store.read("summary:abc123") is None

    # A reload retries.
    wired.fail_generation = False
    assert _get_summary(client).status_code == 200
    assert len(wired.generations) == 2


def test_lookup_failure_is_the_same_502(client, wired):
    wired.fail_lookup = True

    r = _get_summary(client)

    assert r.status_code == 502
    assert r.headers["content-type"].startswith("application/problem+json")
    assert r.json()["title"] == "Failed to generate summary"
    assert wired.generations == []


def test_chat_round_trip(client):
    headers = {"X-Session-Id": "sess-a"}

    r = client.get("/api/opportunities/abc123/chat", headers=headers)
    assert r.status_code == 200
    assert [m["role"] for m in r.json()["messages"]] == ["agent"]

    r = client.post("/api/opportunities/abc123/chat", json={"message": "What is the NAICS?"}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body["inFlight"] is False
    assert [(m["role"], m["content"]) for m in body["messages"][1:]] == [
        ("user", "What is the NAICS?"),
        ("agent", "Answer to: What is the NAICS?"),
    ]

    # Transcripts are per session.
    other = client.get("/api/opportunities/abc123/chat", headers={"X-Session-Id": "sess-b"})
    assert len(other.json()["messages"]) == 1


def test_empty_chat_message_is_validation_problem(client):
    r = client.post("/api/opportunities/abc123/chat", json={"message": ""}, headers={"X-Session-Id": "s"})
    assert r.status_code == 422
    assert r.json()["title"] == "Validation Failed"


def test_closing_a_view_starts_a_fresh_transcript(client):
    headers = {"X-Session-Id": "sess-a"}
    client.post("/api/opportunities/abc123/chat", json={"message": "hi"}, headers=headers)

    r = client.delete("/api/opportunities/abc123/view", headers=headers)
    assert r.json() == {"opportunityId": "abc123", "closed": True}
    assert client.delete("/api/opportunities/abc123/view", headers=headers).json()["closed"] is False

    r = client.get("/api/opportunities/abc123/chat", headers=headers)
    assert len(r.json()["messages"]) == 1


def test_bid_actions_and_listing(client):
    headers = {"X-Session-Id": "sess-a"}

    r = client.post("/api/opportunities/abc123/bid/rfqs-sent", headers=headers)
    assert r.status_code == 200
    assert r.json()["bid"]["status"] == "RFQs Sent"

    # Moving back to drafting is ignored.
    r = client.post("/api/opportunities/abc123/bid/drafting", headers=headers)
    assert r.json()["bid"]["status"] == "RFQs Sent"

    bids = client.get("/api/bids").json()["data"]
    assert len(bids) == 1
    assert bids[0] == {
        "id": "abc123",
        "title": "Combat Boots, Desert",
        "agency": "DEPT OF DEFENSE",
        "status": "RFQs Sent",
        "deadline": "2025-03-01T17:00:00-05:00",
        "source": "SAM.gov",
        "linkToOpportunity": "https://sam.gov/opp/abc123/view",
    }
