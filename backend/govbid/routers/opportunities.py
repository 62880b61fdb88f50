from __future__ import annotations

from fastapi import APIRouter, Request

from .. import dependencies as deps
from ..modules.chat.schemas import ChatTurnRequest
from ..modules.opportunities.view import OpportunityView
from ..modules.summaries.renderer import render_summary
from ..observability.logging import get_logger
from ..sessions import BrowsingSession

router = APIRouter(tags=["opportunities"])
log = get_logger("opportunities")


def _session(request: Request) -> BrowsingSession:
    sid = getattr(getattr(request, "state", None), "session_id", None)
    return deps.get_session_registry().get_or_create(sid)


def _view(request: Request, opportunity_id: str) -> OpportunityView:
    return deps.open_view(_session(request), opportunity_id)


@router.get("/{opportunity_id}/summary")
def get_summary(opportunity_id: str, request: Request):
    doc = _view(request, opportunity_id).load()
    rendered = render_summary(doc)
    return {
        "opportunityId": opportunity_id,
        "summary": doc,
        "meta": rendered["meta"],
        "sections": rendered["sections"],
    }


@router.get("/{opportunity_id}/chat")
def get_chat(opportunity_id: str, request: Request):
    view = _view(request, opportunity_id)
    if view.transcript is None:
        view.load()
    transcript = view.transcript
    if transcript is None:
        return {"opportunityId": opportunity_id, "messages": [], "inFlight": False}
    return {"opportunityId": opportunity_id, **transcript.to_dict()}


@router.post("/{opportunity_id}/chat")
def post_chat(opportunity_id: str, body: ChatTurnRequest, request: Request):
    transcript = _view(request, opportunity_id).send(body.message)
    return {"opportunityId": opportunity_id, **transcript.to_dict()}


@router.delete("/{opportunity_id}/view")
def close_view(opportunity_id: str, request: Request):
    closed = _session(request).close_view(opportunity_id)
    log.info("view_closed", opportunity_id=opportunity_id, was_open=closed)
    return {"opportunityId": opportunity_id, "closed": closed}


@router.post("/{opportunity_id}/bid/drafting")
def mark_drafting(opportunity_id: str, request: Request):
    record = _view(request, opportunity_id).mark_drafting()
    return {"ok": True, "bid": record.model_dump(mode="json")}


@router.post("/{opportunity_id}/bid/rfqs-sent")
def mark_rfqs_sent(opportunity_id: str, request: Request):
    record = _view(request, opportunity_id).mark_rfqs_sent()
    return {"ok": True, "bid": record.model_dump(mode="json")}
