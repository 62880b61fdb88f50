from __future__ import annotations

import json
from typing import Any, MutableMapping

from ...observability.logging import get_logger
from ...repositories.blob_store import BlobStore
from ..opportunities.schemas import SummaryDocument

log = get_logger("summary_cache")


def summary_key(opportunity_id: str) -> str:
    oid = str(opportunity_id or "").strip()
    if not oid:
        raise ValueError("opportunity_id is required")
    return f"summary:{oid}"


def encode_summary(doc: SummaryDocument) -> bytes:
    return json.dumps(doc, separators=(",", ":")).encode("utf-8")


def decode_summary(raw: bytes | None) -> SummaryDocument | None:
    if not raw:
        return None
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) and data else None


class SummaryCache:
    """
    Opportunity id -> summary document.

    Reads go through the session mirror first, then the durable store. Durable
    writes are create-if-absent: the first successful writer for an id wins and
    later writers are told so via the boolean result.
    """

    def __init__(self, store: BlobStore, mirror: MutableMapping[str, Any] | None = None):
        self._store = store
        # Session-scoped and volatile; a plain dict when no session is attached.
        self._mirror: MutableMapping[str, Any] = mirror if mirror is not None else {}

    def get(self, opportunity_id: str) -> SummaryDocument | None:
        key = summary_key(opportunity_id)
        hit = self._mirror.get(opportunity_id)
        if isinstance(hit, dict) and hit:
            return hit

        raw = self._store.read(key)
        doc = decode_summary(raw)
        if doc is None:
            if raw:
                log.warning("summary_cache_unreadable", opportunity_id=opportunity_id, size=len(raw))
            return None
        self._mirror[opportunity_id] = doc
        return doc

    def put_if_absent(self, opportunity_id: str, doc: SummaryDocument) -> bool:
        key = summary_key(opportunity_id)
        wrote = self._store.write_if_absent(key, encode_summary(doc))
        if wrote:
            self._mirror[opportunity_id] = doc
            log.info("summary_cached", opportunity_id=opportunity_id, sections=len(doc))
            return True

        # Someone else stored first; mirror the system-of-record value.
        stored = decode_summary(self._store.read(key))
        self._mirror[opportunity_id] = stored if stored is not None else doc
        log.info("summary_cache_write_skipped", opportunity_id=opportunity_id)
        return False
