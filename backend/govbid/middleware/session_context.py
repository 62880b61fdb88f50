from __future__ import annotations

import re

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.context import session_id_var
from ..sessions import new_session_id

# Client-chosen ids end up in logs and registry keys; keep them boring.
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


class SessionContextMiddleware(BaseHTTPMiddleware):
    """
    Binds each request to a browsing session.

    A valid inbound X-Session-Id is reused, anything else gets a fresh id.
    The id is echoed so the client can keep its session on the next request.
    """

    header_name = "X-Session-Id"

    async def dispatch(self, request: Request, call_next):
        inbound = str(request.headers.get(self.header_name) or "").strip()
        session_id = inbound if _SESSION_ID_RE.match(inbound) else new_session_id()

        request.state.session_id = session_id
        token = session_id_var.set(session_id)
        try:
            response = await call_next(request)
            response.headers[self.header_name] = session_id
            return response
        finally:
            session_id_var.reset(token)
