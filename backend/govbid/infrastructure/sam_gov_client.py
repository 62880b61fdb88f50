from __future__ import annotations

import html
import re
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import urlparse

import httpx

from ..errors import FetchError, NotFoundError
from ..modules.opportunities.schemas import Opportunity
from ..observability.logging import get_logger

log = get_logger("sam_gov")

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def html_to_text(raw: str) -> str:
    s = _TAG_RE.sub(" ", str(raw or ""))
    s = html.unescape(s).replace("\xa0", " ")
    return _WS_RE.sub(" ", s).strip()


def _is_sam_host(url: str) -> bool:
    host = str(urlparse(url).hostname or "").lower()
    return host == "sam.gov" or host.endswith(".sam.gov")


def opportunity_from_search_record(rec: dict[str, Any]) -> Opportunity:
    """
    Pick the fields the summary pipeline needs out of one `opportunitiesData` row.
    """
    links = rec.get("links") if isinstance(rec.get("links"), list) else []
    first_href = next((str(x.get("href")) for x in links if isinstance(x, dict) and x.get("href")), None)
    agency = rec.get("department") or rec.get("fullParentPathName") or None
    if isinstance(agency, str) and "." in agency and not rec.get("department"):
        agency = agency.split(".")[0]
    resource_links = rec.get("resourceLinks") if isinstance(rec.get("resourceLinks"), list) else []
    return Opportunity(
        id=str(rec.get("noticeId") or "").strip(),
        title=str(rec.get("title") or ""),
        agency=str(agency).strip() if agency else None,
        link=rec.get("uiLink") or first_href,
        closingDate=rec.get("responseDeadLine") or None,
        resourceLinks=[str(u) for u in resource_links if u],
        descriptionSource=str(rec.get("description") or ""),
    )


class SamGovClient:
    def __init__(
        self,
        *,
        api_key: str | None,
        search_url: str,
        lookback_days: int = 364,
        timeout_s: float = 20.0,
        http: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self._search_url = search_url
        self._lookback_days = max(1, int(lookback_days))
        self._timeout_s = timeout_s
        self._http = http

    def _get(self, url: str, *, params: dict[str, str], headers: dict[str, str] | None = None) -> httpx.Response:
        if self._http is not None:
            return self._http.get(url, params=params, headers=headers)
        with httpx.Client(timeout=self._timeout_s, follow_redirects=True) as c:
            return c.get(url, params=params, headers=headers)

    def _posted_window(self) -> tuple[str, str]:
        today = datetime.now(timezone.utc).date()
        start = today - timedelta(days=self._lookback_days)
        return start.strftime("%m/%d/%Y"), today.strftime("%m/%d/%Y")

    def fetch_opportunity(self, opportunity_id: str) -> Opportunity:
        oid = str(opportunity_id or "").strip()
        if not oid:
            raise NotFoundError(oid, "Opportunity id is required")

        posted_from, posted_to = self._posted_window()
        params = {
            "noticeid": oid,
            "postedFrom": posted_from,
            "postedTo": posted_to,
            "limit": "10",
            "offset": "0",
        }
        if self._api_key:
            params["api_key"] = self._api_key

        try:
            r = self._get(self._search_url, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"SAM.gov search failed: {e}") from e

        if r.status_code == 404:
            raise NotFoundError(oid)
        if r.status_code >= 400:
            log.warning("sam_gov_search_error", opportunity_id=oid, status_code=r.status_code)
            raise FetchError(f"SAM.gov returned {r.status_code}")

        try:
            data = r.json()
        except ValueError as e:
            raise FetchError("SAM.gov returned invalid JSON") from e

        rows = data.get("opportunitiesData") if isinstance(data, dict) else None
        for rec in rows if isinstance(rows, list) else []:
            if isinstance(rec, dict) and str(rec.get("noticeId") or "").strip() == oid:
                return opportunity_from_search_record(rec)
        raise NotFoundError(oid)

    def fetch_description_text(self, source: str) -> str:
        url = str(source or "").strip()
        if not url:
            raise FetchError("description source is empty")
        if not _is_sam_host(url):
            raise FetchError("Invalid description URL - must be SAM.gov")

        params: dict[str, str] = {}
        if self._api_key:
            params["api_key"] = self._api_key
        else:
            log.warning("sam_gov_api_key_missing")

        try:
            r = self._get(
                url,
                params=params,
                headers={
                    "Accept": "application/json, text/html, text/plain, */*",
                    "User-Agent": "Contract-Finder/1.0",
                },
            )
        except httpx.HTTPError as e:
            raise FetchError(f"SAM.gov description fetch failed: {e}") from e

        if r.status_code >= 400:
            log.warning("sam_gov_description_error", status_code=r.status_code, body_preview=r.text[:500])
            raise FetchError(f"SAM.gov returned {r.status_code}")

        text = r.text
        try:
            payload = r.json()
        except ValueError:
            return html_to_text(text)
        if isinstance(payload, dict) and payload.get("description"):
            return html_to_text(str(payload["description"]))
        return text
