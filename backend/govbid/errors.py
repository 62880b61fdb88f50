from __future__ import annotations


class GovBidError(RuntimeError):
    pass


class NotFoundError(GovBidError):
    """The opportunity id is unknown upstream. Fatal to the view, never retried."""

    def __init__(self, opportunity_id: str, message: str | None = None):
        self.opportunity_id = str(opportunity_id or "")
        super().__init__(message or f"Opportunity not found: {self.opportunity_id}")


class FetchError(GovBidError):
    pass


class GenerationError(GovBidError):
    pass


class AcquisitionError(GovBidError):
    """
    Summary acquisition failed.

    Fetch and generation failures collapse into this one error; it is surfaced
    to the analyst as "failed to generate summary" and never cached.
    """

    def __init__(self, message: str, *, opportunity_id: str | None = None, strategy: str | None = None):
        self.opportunity_id = opportunity_id
        self.strategy = strategy
        super().__init__(message)


class AssistantError(GovBidError):
    pass


class ChatTurnInFlightError(GovBidError):
    def __init__(self, opportunity_id: str | None = None):
        self.opportunity_id = opportunity_id
        super().__init__("A chat turn is already in flight for this conversation")


class ViewClosedError(GovBidError):
    def __init__(self, opportunity_id: str | None = None):
        self.opportunity_id = opportunity_id
        super().__init__("The opportunity view was closed before it finished loading")
