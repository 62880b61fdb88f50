from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from ...observability.logging import get_logger
from ...repositories.blob_store import BlobStore
from ..opportunities.schemas import Opportunity
from .schemas import BidRecord, BidStatus
from .status_machine import coerce_status, resolve_transition

log = get_logger("bid_ledger")

BIDS_KEY = "bids:ongoing"
BID_SOURCE = "SAM.gov"

_PATCHABLE = set(BidRecord.model_fields.keys()) - {"id"}


def record_defaults(opportunity: Opportunity) -> dict[str, Any]:
    oid = opportunity.id
    return {
        "title": opportunity.title,
        "agency": opportunity.agency or "N/A",
        "deadline": opportunity.closingDate or "N/A",
        "source": BID_SOURCE,
        "linkToOpportunity": opportunity.link or f"/sam-gov/{oid}",
    }


class BidLedger:
    """
    Durable list of bid-progress records, one per opportunity id.

    Every write is a read-modify-write of the whole list with no cross-session
    lock: two sessions patching the same id concurrently can lose one patch.
    """

    def __init__(self, store: BlobStore, *, key: str = BIDS_KEY):
        self._store = store
        self._key = key

    def _load(self) -> list[BidRecord]:
        raw = self._store.read(self._key)
        if not raw:
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, list):
                raise ValueError("bid ledger is not a list")
            return [BidRecord.model_validate(it) for it in data]
        except (UnicodeDecodeError, ValueError, ValidationError) as e:
            # Corrupt ledgers read as empty and are overwritten by the next write.
            log.warning("bid_ledger_malformed", key=self._key, error=str(e)[:300])
            return []

    def _save(self, records: list[BidRecord]) -> None:
        payload = [r.model_dump(mode="json") for r in records]
        self._store.write(self._key, json.dumps(payload).encode("utf-8"))

    def list(self) -> list[BidRecord]:
        return self._load()

    def get(self, bid_id: str) -> BidRecord | None:
        for r in self._load():
            if r.id == bid_id:
                return r
        return None

    def upsert(
        self,
        bid_id: str,
        patch: dict[str, Any],
        *,
        defaults: dict[str, Any] | None = None,
    ) -> BidRecord:
        bid_id = str(bid_id or "").strip()
        if not bid_id:
            raise ValueError("bid_id is required")

        updates = {k: v for k, v in (patch or {}).items() if k in _PATCHABLE}
        requested: BidStatus | None = None
        if "status" in updates:
            requested = coerce_status(updates["status"])
            if requested is None:
                raise ValueError(f"Unknown bid status: {updates['status']!r}")
            updates["status"] = requested

        records = self._load()
        idx = next((i for i, r in enumerate(records) if r.id == bid_id), -1)

        if idx >= 0:
            current = records[idx]
            if requested is not None:
                resolved = resolve_transition(current.status, requested)
                if resolved != requested:
                    log.info(
                        "bid_status_regression_ignored",
                        bid_id=bid_id,
                        current=current.status.value,
                        requested=requested.value,
                    )
                updates["status"] = resolved
            record = BidRecord.model_validate({**current.model_dump(), **updates})
            records[idx] = record
        else:
            if requested is None:
                raise ValueError("status is required to create a bid record")
            base: dict[str, Any] = {
                "deadline": "N/A",
                "source": BID_SOURCE,
                "linkToOpportunity": f"/sam-gov/{bid_id}",
            }
            base.update({k: v for k, v in (defaults or {}).items() if k in _PATCHABLE and v is not None})
            record = BidRecord.model_validate({**base, **updates, "id": bid_id})
            records.append(record)

        self._save(records)
        log.info("bid_upserted", bid_id=bid_id, status=record.status.value, created=idx < 0)
        return record

    def mark_drafting(self, opportunity: Opportunity) -> BidRecord:
        return self.upsert(
            opportunity.id,
            {"status": BidStatus.DRAFTING},
            defaults=record_defaults(opportunity),
        )

    def mark_rfqs_sent(self, opportunity: Opportunity) -> BidRecord:
        # Two sequential upserts: the second re-reads the list from storage, so a
        # concurrent writer between the two steps can still interleave.
        self.mark_drafting(opportunity)
        return self.upsert(
            opportunity.id,
            {"status": BidStatus.RFQS_SENT},
            defaults=record_defaults(opportunity),
        )
