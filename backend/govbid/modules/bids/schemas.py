from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class BidStatus(str, Enum):
    # Declaration order is workflow order; new stages go where they happen.
    DRAFTING = "Drafting"
    RFQS_SENT = "RFQs Sent"
    QUOTE_NEGOTIATION = "Quote Negotiation"
    SUBMITTED = "Submitted"


class BidRecord(BaseModel):
    id: str
    title: str = ""
    agency: str = "N/A"
    status: BidStatus
    deadline: str = "N/A"
    source: str = "SAM.gov"
    linkToOpportunity: str
