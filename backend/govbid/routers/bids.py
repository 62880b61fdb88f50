from __future__ import annotations

from fastapi import APIRouter

from .. import dependencies as deps

router = APIRouter(tags=["bids"])


@router.get("")
def list_bids():
    return {"data": [r.model_dump(mode="json") for r in deps.get_bid_ledger().list()]}
