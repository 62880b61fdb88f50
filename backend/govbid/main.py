from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .db.dynamodb.errors import DdbError
from .errors import (
    AcquisitionError,
    ChatTurnInFlightError,
    NotFoundError,
    ViewClosedError,
)
from .middleware.access_log import AccessLogMiddleware
from .middleware.cors import build_allowed_origins
from .middleware.request_context import RequestContextMiddleware
from .middleware.session_context import SessionContextMiddleware
from .observability.logging import configure_logging, get_logger
from .problem_details import problem_response
from .routers.bids import router as bids_router
from .routers.health import router as health_router
from .routers.opportunities import router as opportunities_router
from .settings import settings


def create_app() -> FastAPI:
    # Logging must be configured before the app starts handling requests.
    configure_logging(level=settings.log_level)
    log = get_logger("startup")

    app = FastAPI(
        title="GovBid Contract Finder Backend",
        version="1.0.0",
        default_response_class=ORJSONResponse,
        redirect_slashes=False,
    )

    log.info("app_starting", settings=settings.to_log_safe_dict())

    # Middlewares (order matters; last added is outermost)
    app.add_middleware(AccessLogMiddleware, exclude_paths={"/"})
    app.add_middleware(SessionContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=build_allowed_origins(
            frontend_base_url=settings.frontend_base_url,
            frontend_urls=settings.frontend_urls,
        ),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With", "X-Session-Id", "X-Request-Id"],
        expose_headers=["X-Session-Id", "X-Request-Id"],
        max_age=3000,
    )
    # Outermost: request context (request-id) wraps everything.
    app.add_middleware(RequestContextMiddleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, _not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AcquisitionError, _acquisition_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ChatTurnInFlightError, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ViewClosedError, _conflict_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DdbError, _ddb_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routes
    app.include_router(health_router)
    app.include_router(opportunities_router, prefix="/api/opportunities")
    app.include_router(bids_router, prefix="/api/bids")

    return app


def _not_found_handler(request: Request, exc: NotFoundError) -> Response:
    return problem_response(
        request=request,
        status_code=404,
        title="Opportunity Not Found",
        detail=str(exc),
        extensions={"opportunityId": exc.opportunity_id},
    )


def _acquisition_error_handler(request: Request, exc: AcquisitionError) -> Response:
    get_logger("summary").warning(
        "summary_acquisition_failed",
        opportunity_id=exc.opportunity_id,
        strategy=exc.strategy,
        error=str(exc),
    )
    extensions = {"opportunityId": exc.opportunity_id, "strategy": exc.strategy}
    return problem_response(
        request=request,
        status_code=502,
        title="Failed to generate summary",
        detail=str(exc),
        extensions={k: v for k, v in extensions.items() if v is not None} or None,
    )


def _conflict_handler(request: Request, exc: Exception) -> Response:
    oid = getattr(exc, "opportunity_id", None)
    return problem_response(
        request=request,
        status_code=409,
        title="Conflict",
        detail=str(exc),
        extensions={"opportunityId": oid} if oid else None,
    )


def _ddb_error_handler(request: Request, exc: DdbError) -> Response:
    # In production, problem_response already suppresses 5xx detail.
    return problem_response(
        request=request,
        status_code=exc.status_code,
        title=exc.title,
        detail=str(exc) if isinstance(exc.message, str) else None,
        extensions=exc.to_extensions() or None,
    )


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)

    title: str | None = None
    extensions: dict | None = None
    safe_detail: str | None = None

    if isinstance(detail, dict):
        extensions = detail
        if isinstance(detail.get("error"), str):
            title = detail.get("error")
        msg = detail.get("message")
        if isinstance(msg, str) and msg.strip():
            safe_detail = msg.strip()
    elif detail is not None:
        safe_detail = str(detail)

    if status_code == 404:
        title = title or "Not Found"
        safe_detail = safe_detail or "Route not found"

    return problem_response(
        request=request,
        status_code=status_code,
        title=title,
        detail=safe_detail,
        extensions=extensions,
    )


def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors: list[dict[str, object]] = []
    for e in exc.errors():
        loc = e.get("loc") or ()
        errors.append(
            {
                "location": list(loc) if isinstance(loc, (list, tuple)) else [],
                "path": ".".join([str(x) for x in loc if x != "body"]),
                "message": e.get("msg", "Invalid value"),
                "type": e.get("type"),
            }
        )
    return problem_response(
        request=request,
        status_code=422,
        title="Validation Failed",
        detail="Request validation failed",
        errors=errors,
    )


def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    # Full traceback goes to the logs; the response stays generic in production.
    rid = getattr(getattr(request, "state", None), "request_id", None)
    get_logger("unhandled").exception(
        "unhandled_exception",
        request_id=str(rid) if rid else None,
        http_method=str(getattr(request, "method", "") or "").upper() or None,
        path=str(getattr(getattr(request, "url", None), "path", "") or ""),
    )

    return problem_response(
        request=request,
        status_code=500,
        title="Internal Server Error",
        detail=str(exc) if exc else None,
    )


app = create_app()
