from __future__ import annotations

from .request_context import RequestContextMiddleware
from .session_context import SessionContextMiddleware

__all__ = ["RequestContextMiddleware", "SessionContextMiddleware"]
