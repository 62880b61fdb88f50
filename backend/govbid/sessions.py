from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from cachetools import TTLCache

from .modules.opportunities.view import OpportunityView


@dataclass
class BrowsingSession:
    session_id: str
    # Volatile summary mirror; read before the durable cache, gone with the session.
    summaries: dict[str, Any] = field(default_factory=dict)
    views: dict[str, OpportunityView] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def view(self, opportunity_id: str, factory: Callable[[], OpportunityView]) -> OpportunityView:
        with self.lock:
            v = self.views.get(opportunity_id)
            if v is None or not v.mounted:
                v = factory()
                self.views[opportunity_id] = v
            return v

    def close_view(self, opportunity_id: str) -> bool:
        with self.lock:
            v = self.views.pop(opportunity_id, None)
        if v is None:
            return False
        v.unmount()
        return True


def new_session_id() -> str:
    return "sess_" + uuid.uuid4().hex


class SessionRegistry:
    """Bounded, expiring map of session id -> BrowsingSession."""

    def __init__(self, *, ttl_seconds: int, max_entries: int):
        self._sessions: TTLCache[str, BrowsingSession] = TTLCache(
            maxsize=max(1, int(max_entries)), ttl=max(1, int(ttl_seconds))
        )
        # TTLCache is not thread-safe.
        self._lock = threading.Lock()

    def get_or_create(self, session_id: str | None) -> BrowsingSession:
        sid = str(session_id or "").strip() or new_session_id()
        with self._lock:
            s = self._sessions.get(sid)
            if s is None:
                s = BrowsingSession(session_id=sid)
            # Re-set on every access so active sessions slide their expiry.
            self._sessions[sid] = s
            return s

    def get(self, session_id: str) -> BrowsingSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
