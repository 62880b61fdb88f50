from __future__ import annotations

import threading
from typing import Callable

from ...errors import AcquisitionError, FetchError, ViewClosedError
from ...observability.logging import get_logger
from ..bids.ledger import BidLedger
from ..bids.schemas import BidRecord
from ..chat.context_manager import ChatContextManager, ChatTranscript
from ..summaries.cache import SummaryCache
from ..summaries.resolver import SummaryResolver
from .schemas import Opportunity, SummaryDocument, opportunity_from_summary

log = get_logger("opportunity_view")

FetchOpportunity = Callable[[str], Opportunity]


class OpportunityView:
    """
    One analyst's open page for one opportunity.

    Loading goes cache -> fetch + resolve, then seeds the chat. Once the view is
    unmounted, results that arrive late are not published to it; the remote
    work itself still runs to completion (and a resolved summary is still
    cached).
    """

    def __init__(
        self,
        *,
        opportunity_id: str,
        cache: SummaryCache,
        resolver: SummaryResolver,
        fetch_opportunity: FetchOpportunity,
        chat: ChatContextManager,
        ledger: BidLedger,
    ):
        self.opportunity_id = opportunity_id
        self._cache = cache
        self._resolver = resolver
        self._fetch_opportunity = fetch_opportunity
        self._chat = chat
        self._ledger = ledger

        self.summary: SummaryDocument | None = None
        self.transcript: ChatTranscript | None = None
        self.opportunity: Opportunity | None = None
        self._mounted = True
        self._load_lock = threading.Lock()

    @property
    def mounted(self) -> bool:
        return self._mounted

    def unmount(self) -> None:
        self._mounted = False

    def _publish(self, doc: SummaryDocument, *, source: str) -> None:
        if not self._mounted:
            log.info("view_result_dropped_stale", opportunity_id=self.opportunity_id, source=source)
            return
        self.summary = doc
        self.transcript = self._chat.start(doc)
        log.info("view_summary_ready", opportunity_id=self.opportunity_id, source=source)

    def load(self) -> SummaryDocument:
        """
        Return the summary for this view, resolving it at most once per view.

        Raises NotFoundError for unknown ids and AcquisitionError when no
        summary could be produced; neither is cached, so a reload retries.
        """
        with self._load_lock:
            if self.summary is not None:
                return self.summary

            cached = self._cache.get(self.opportunity_id)
            if cached is not None:
                self._publish(cached, source="cache")
                return cached

            try:
                opportunity = self._fetch_opportunity(self.opportunity_id)
            except FetchError as e:
                log.warning("view_fetch_failed", opportunity_id=self.opportunity_id, error=str(e))
                raise AcquisitionError(
                    "Failed to generate summary", opportunity_id=self.opportunity_id
                ) from e
            self.opportunity = opportunity
            doc = self._resolver.resolve(opportunity)
            self._publish(doc, source="resolver")
            return doc

    def send(self, user_text: str) -> ChatTranscript:
        if self.transcript is None:
            self.load()
        transcript = self.transcript
        if transcript is None:
            # Only reachable when the view was unmounted mid-load.
            raise ViewClosedError(self.opportunity_id)
        return self._chat.send(transcript, user_text, is_current=lambda: self._mounted)

    def _bid_subject(self) -> Opportunity:
        if self.opportunity is None:
            doc = self.load()
            if self.opportunity is None:
                # Loaded from cache; the summary meta carries the identity fields.
                return opportunity_from_summary(doc)
        return self.opportunity

    def mark_drafting(self) -> BidRecord:
        return self._ledger.mark_drafting(self._bid_subject())

    def mark_rfqs_sent(self) -> BidRecord:
        return self._ledger.mark_rfqs_sent(self._bid_subject())
