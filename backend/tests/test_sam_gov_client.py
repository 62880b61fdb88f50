from __future__ import annotations

import re

import httpx
import pytest

from govbid.errors import FetchError, NotFoundError
from govbid.infrastructure.sam_gov_client import SamGovClient, html_to_text, opportunity_from_search_record

SEARCH_URL = "https://api.sam.gov/opportunities/v2/search"

RECORD = {
    "noticeId": "abc123",
    "title": "Combat Boots, Desert",
    "fullParentPathName": "DEPT OF DEFENSE.DEFENSE LOGISTICS AGENCY",
    "uiLink": "https://sam.gov/opp/abc123/view",
    "responseDeadLine": "2025-03-01T17:00:00-05:00",
    "resourceLinks": ["https://sam.gov/api/prod/opps/v3/opportunities/resources/files/1/download"],
    "description": "https://api.sam.gov/prod/opportunities/v1/noticedesc?noticeid=abc123",
}


def _client(handler, **kw) -> SamGovClient:
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return SamGovClient(api_key=kw.pop("api_key", "k-1"), search_url=SEARCH_URL, http=http, **kw)


def test_search_record_mapping():
    opp = opportunity_from_search_record(RECORD)
    assert opp.id == "abc123"
    assert opp.agency == "DEPT OF DEFENSE"
    assert opp.link == "https://sam.gov/opp/abc123/view"
    assert opp.closingDate == "2025-03-01T17:00:00-05:00"
    assert opp.resourceLinks == RECORD["resourceLinks"]
    assert opp.descriptionSource == RECORD["description"]


def test_search_record_prefers_department_and_falls_back_to_first_link():
    opp = opportunity_from_search_record(
        {
            "noticeId": "x",
            "department": "GENERAL SERVICES ADMINISTRATION",
            "links": [{"rel": "self", "href": "https://api.sam.gov/x"}],
            "resourceLinks": None,
        }
    )
    assert opp.agency == "GENERAL SERVICES ADMINISTRATION"
    assert opp.link == "https://api.sam.gov/x"
    assert opp.resourceLinks == []


def test_fetch_opportunity_sends_notice_id_and_posted_window():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json={"totalRecords": 1, "opportunitiesData": [RECORD]})

    opp = _client(handler).fetch_opportunity("abc123")

    assert opp.title == "Combat Boots, Desert"
    assert seen["noticeid"] == "abc123"
    assert seen["api_key"] == "k-1"
    assert re.fullmatch(r"\d{2}/\d{2}/\d{4}", seen["postedFrom"])
    assert re.fullmatch(r"\d{2}/\d{2}/\d{4}", seen["postedTo"])


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404),
        httpx.Response(200, json={"totalRecords": 0, "opportunitiesData": []}),
        httpx.Response(200, json={"opportunitiesData": [{**RECORD, "noticeId": "other"}]}),
    ],
)
def test_unknown_ids_are_not_found(response):
    with pytest.raises(NotFoundError) as ei:
        _client(lambda _r: response).fetch_opportunity("abc123")
    assert ei.value.opportunity_id == "abc123"


def test_upstream_failure_is_a_fetch_error():
    with pytest.raises(FetchError):
        _client(lambda _r: httpx.Response(500, text="boom")).fetch_opportunity("abc123")


def test_description_prefers_json_description_and_strips_html():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["api_key"] = request.url.params.get("api_key")
        return httpx.Response(200, json={"description": "<p>Boots&nbsp;needed</p><br/>Size 10"})

    text = _client(handler).fetch_description_text(RECORD["description"])

    assert text == "Boots needed Size 10"
    assert seen["api_key"] == "k-1"


def test_description_html_body_is_stripped():
    def handler(_r):
        return httpx.Response(200, text="<html><body><b>Plain</b> text</body></html>")

    assert _client(handler).fetch_description_text("https://sam.gov/desc") == "Plain text"


def test_description_host_must_be_sam_gov():
    with pytest.raises(FetchError):
        _client(lambda _r: httpx.Response(200)).fetch_description_text("https://evil.example.com/sam.gov")


def test_html_to_text():
    assert html_to_text("<div>a &amp; b</div>\n\n<span>c</span>") == "a & b c"
