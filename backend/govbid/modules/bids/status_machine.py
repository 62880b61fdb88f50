from __future__ import annotations

import re
from typing import Any

from .schemas import BidStatus

_ORDER: tuple[BidStatus, ...] = tuple(BidStatus)


def _squash(v: str) -> str:
    return re.sub(r"[^a-z0-9]", "", v.lower())


def coerce_status(value: Any) -> BidStatus | None:
    """
    Accept the enum, its display value ("RFQs Sent") or a machine spelling
    ("RFQS_SENT", "rfqsSent").
    """
    if isinstance(value, BidStatus):
        return value
    raw = str(value or "").strip()
    if not raw:
        return None
    want = _squash(raw)
    for s in _ORDER:
        if want in (_squash(s.value), _squash(s.name)):
            return s
    return None


def status_rank(status: BidStatus) -> int:
    return _ORDER.index(status)


def can_transition(current: BidStatus | None, target: BidStatus) -> bool:
    # Forward-only; re-asserting the current status is allowed.
    if current is None:
        return True
    return status_rank(target) >= status_rank(current)


def resolve_transition(current: BidStatus | None, requested: BidStatus) -> BidStatus:
    return requested if can_transition(current, requested) else current  # type: ignore[return-value]
