"""
DentaCare API application.

Builds the FastAPI app: structlog configuration, request-id and
security-header middleware, CORS, the error envelope for every failure
path, and a lifespan that checks the database and runs the reminder /
no-show housekeeping loop.

    uvicorn src.dentacare.main:app
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .api.v1 import router as v1_router
from .core.config import get_settings
from .core.exceptions import AppException
from .core.prompts import get_prompt_manager
from .core.responses import ErrorDetail, ErrorResponse
from .db.session import close_db, get_db_manager
from .jobs import housekeeping_loop

API_DESCRIPTION = """
Multi-clinic backend for dental practices: scheduling with overlap checks,
a priority queue with QR self check-in, digital forms and documents with
clinician verification, invoices with proof-of-payment review, a stock
ledger with per-appointment supply deduction, and dashboards.

Every endpoint lives under `/api/v1/` and answers with the
`{success, message, data, meta}` envelope.
"""

OPENAPI_TAGS = [
    {"name": "Health", "description": "Liveness, readiness and dependency status."},
    {"name": "Authentication", "description": "Email and password sign-in."},
    {"name": "Users", "description": "Staff and patient accounts."},
    {"name": "Clinics", "description": "Head clinics, branches and feature toggles."},
    {"name": "Patients", "description": "Patient records and search."},
    {"name": "Appointments", "description": "Bookings, status changes and the treatment catalogue."},
    {"name": "Queue", "description": "Check-in, walk-ins, calling and reordering."},
    {"name": "QR Check-in", "description": "Signed daily, appointment and staff time-in codes."},
    {"name": "Forms", "description": "Digital forms, submissions and verification."},
    {"name": "Documents", "description": "Patient uploads and verification."},
    {"name": "Notifications", "description": "In-app notifications."},
    {"name": "Payments", "description": "Invoices and payment proofs."},
    {"name": "Treatment Records", "description": "Chair-side treatment records and their duration."},
    {"name": "Branch Sharing", "description": "Sharing groups between branches and the cross-branch read log."},
    {"name": "Inventory", "description": "Consumables, stock movements and alerts."},
    {"name": "Reminders", "description": "Appointment reminder sweep."},
    {"name": "Analytics", "description": "Dashboards and trend reports."},
    {"name": "AI Assistant", "description": "Drafting aids; output always needs review."},
    {"name": "Audit", "description": "Audit trail of sensitive actions."},
    {"name": "Blob Storage", "description": "Stored files for clinic staff."},
]

DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})
STRICT_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
DOCS_CSP = (
    "default-src 'self'; script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
    "img-src 'self' data: https://fastapi.tiangolo.com; frame-ancestors 'none'"
)

CallNext = Callable[[Request], Awaitable[Response]]


def configure_logging() -> None:
    """structlog for application events; stdlib logging at the same level for libraries."""
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL)
    renderer = structlog.dev.ConsoleRenderer() if settings.is_development else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(asctime)s [%(levelname)s] %(name)s: %(message)s", level=level, stream=sys.stdout)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        docs = request.url.path in DOCS_PATHS and not get_settings().is_production
        response.headers.update(
            {
                "X-Content-Type-Options": "nosniff",
                "X-Frame-Options": "DENY",
                "Referrer-Policy": "strict-origin-when-cross-origin",
                "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
                "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
                "Content-Security-Policy": DOCS_CSP if docs else STRICT_CSP,
            }
        )
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse or mint X-Request-ID, bind it to the log context and echo it back."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging()
    log = structlog.get_logger()
    log.info("app_starting", app=settings.APP_NAME, version=settings.APP_VERSION, env=settings.APP_ENV)

    # Fails fast on a broken prompts.yaml.
    get_prompt_manager()
    log.info("db_health", **await get_db_manager().health_check())

    housekeeping = None
    if settings.HOUSEKEEPING_INTERVAL_SECONDS > 0:
        housekeeping = asyncio.create_task(housekeeping_loop(settings.HOUSEKEEPING_INTERVAL_SECONDS))

    yield

    if housekeeping is not None:
        housekeeping.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await housekeeping
    await close_db()
    log.info("app_stopped")


def _error(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details or None))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _register_exception_handlers(app: FastAPI) -> None:
    log = structlog.get_logger()

    @app.exception_handler(AppException)
    async def _app_exc(request: Request, exc: AppException) -> JSONResponse:
        log.warning("request_failed", error_code=exc.error_code, status=exc.status_code, path=request.url.path)
        return _error(exc.status_code, exc.error_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        log.warning("request_invalid", path=request.url.path, fields=[e["field"] for e in errors])
        return _error(422, "VALIDATION_ERROR", "Request validation failed", {"validation_errors": errors})

    @app.exception_handler(Exception)
    async def _unhandled_exc(request: Request, exc: Exception) -> JSONResponse:
        settings = get_settings()
        log.exception("unhandled_exception", path=request.url.path)
        message = str(exc) if settings.DEBUG and not settings.is_production else "An unexpected error occurred"
        return _error(500, "INTERNAL_ERROR", message)


def create_application() -> FastAPI:
    settings = get_settings()
    docs_enabled = settings.is_development

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description=API_DESCRIPTION,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.cors_methods_list,
        allow_headers=["*"],
    )

    _register_exception_handlers(app)
    app.include_router(v1_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        return {"service": settings.APP_NAME, "version": settings.APP_VERSION, "health": "/api/v1/health"}

    return app


app = create_application()
