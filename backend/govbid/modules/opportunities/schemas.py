from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, Field

# AI output is untyped JSON: null, str, int/float, bool, list, or nested mapping.
JsonValue = Union[None, str, int, float, bool, list[Any], dict[str, Any]]
SummaryDocument = dict[str, Any]

# Reserved fields merged into every summary after generation; never sections.
SUMMARY_META_KEYS: tuple[str, ...] = (
    "title",
    "id",
    "agency",
    "originalOpportunityLink",
    "originalClosingDate",
)


class Opportunity(BaseModel):
    id: str
    title: str = ""
    agency: str | None = None
    link: str | None = None
    closingDate: str | None = None
    resourceLinks: list[str] = Field(default_factory=list)
    # URL of the single description resource (SAM.gov `description` field).
    descriptionSource: str = ""


def opportunity_from_summary(summary: SummaryDocument) -> Opportunity:
    """Rebuild the identity fields of an opportunity from a cached summary's meta."""
    agency = summary.get("agency")
    return Opportunity(
        id=str(summary.get("id") or ""),
        title=str(summary.get("title") or ""),
        agency=None if agency in (None, "", "N/A") else str(agency),
        link=summary.get("originalOpportunityLink") or None,
        closingDate=summary.get("originalClosingDate") or None,
    )


def summary_meta(opportunity: Opportunity) -> dict[str, Any]:
    return {
        "title": opportunity.title,
        "id": opportunity.id,
        "agency": opportunity.agency or "N/A",
        "originalOpportunityLink": opportunity.link,
        "originalClosingDate": opportunity.closingDate,
    }
