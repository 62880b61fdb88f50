from __future__ import annotations

from typing import Any

import httpx

from ..errors import AssistantError, GenerationError
from ..modules.chat.schemas import ChatMessage
from ..observability.logging import get_logger

log = get_logger("analysis_backend")


class AnalysisBackendClient:
    """
    Solicitation analysis service: document-corpus summaries and chat turns.
    """

    def __init__(self, *, base_url: str, timeout_s: float = 180.0, http: httpx.Client | None = None):
        u = str(base_url or "").strip()
        if not u:
            raise RuntimeError("ANALYSIS_BACKEND_URL is not configured")
        self._base_url = u.rstrip("/")
        self._timeout_s = timeout_s
        self._http = http

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        url = self._base_url + path
        if self._http is not None:
            return self._http.post(url, json=payload)
        with httpx.Client(timeout=self._timeout_s, follow_redirects=True) as c:
            return c.post(url, json=payload)

    def _post_json(self, path: str, payload: dict[str, Any]) -> Any:
        r = self._post(path, payload)
        if r.status_code >= 400:
            log.warning(
                "analysis_backend_error",
                path=path,
                status_code=r.status_code,
                body_preview=r.text[:500],
            )
            raise RuntimeError(f"Backend returned {r.status_code}")
        return r.json() if r.content else None

    def generate_summary_from_links(self, links: list[str]) -> dict[str, Any]:
        urls = [str(u).strip() for u in links or [] if str(u or "").strip()]
        if not urls:
            raise GenerationError("no document links to analyze")
        try:
            data = self._post_json("/analyze-solicitations", {"resourceLinks": urls})
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            raise GenerationError(str(e) or "analyze-solicitations failed") from e

        # Accept both a bare summary and a {"summary": {...}} envelope.
        if isinstance(data, dict) and set(data.keys()) == {"summary"} and isinstance(data["summary"], dict):
            data = data["summary"]
        if not isinstance(data, dict):
            raise GenerationError("analyze-solicitations returned no summary")
        return data

    def send_chat_turn(self, summary: dict[str, Any], transcript: list[ChatMessage], user_text: str) -> str:
        payload = {
            "summary": summary,
            "chatHistory": [m.model_dump() for m in transcript],
            "userMessage": user_text,
        }
        try:
            data = self._post_json("/message-chat", payload)
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            raise AssistantError(str(e) or "message-chat failed") from e

        msg = data.get("message") if isinstance(data, dict) else None
        if not isinstance(msg, str) or not msg.strip():
            raise AssistantError("message-chat returned no message")
        return msg
