"""Exploria Auth API - FastAPI Application Entry Point."""

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from exploria_api.accounts.errors import AccountFlowError
from exploria_api.config.env import (
    get_cors_allowed_origins,
    get_log_level,
    json_logs_enabled,
    validate_startup_config,
)
from exploria_api.context import portal_type_var, request_id_var, user_refid_var
from exploria_api.identity.firebase_client import build_identity_client
from exploria_api.routers import auth, health, portal
from exploria_api.schemas import Envelope
from exploria_api.utils import configure_json_logging

app = FastAPI(
    title="Exploria Auth API",
    description="Firebase identity to Exploria account bridge with role-gated portal login.",
    version="0.1.0",
)

# Structured JSON logging (EXPLORIA_JSON_LOGS=false to disable)
if json_logs_enabled():
    configure_json_logging(log_level=get_log_level())

logger = logging.getLogger(__name__)

# CORS: explicit allowlist, never "*" with credentials
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


def envelope_response(
    status_code: int,
    message: str,
    data: Optional[dict[str, Any]] = None,
    errors: Optional[dict[str, list[str]]] = None,
) -> JSONResponse:
    body = Envelope(success=False, message=message, data=data, errors=errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def internal_error_response() -> JSONResponse:
    """Generic 500 envelope. Exception text never reaches the client."""
    response = envelope_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
    )
    request_id = request_id_var.get()
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Request Completion Logging Middleware
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    - Every HTTP request emits "http.request.completed"
    - Fields: method, path, status_code, duration_ms (+ request_id,
      user_refid, portal_type from context via JSONFormatter)
    - Logs even on exceptions (status_code=500)
    - Clears per-request contextvars at start and end
    """
    user_refid_var.set("")
    portal_type_var.set("")

    start_time = time.perf_counter()
    status_code = 500  # Default to 500 in case of unhandled exception

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "http.request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
        user_refid_var.set("")
        portal_type_var.set("")


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate and propagate request_id for observability.

    - Accepts X-Request-ID header from client (optional)
    - Generates new UUID if not provided
    - Sets context variable for logging
    - Returns X-Request-ID in response headers, including generic 500s

    IMPORTANT: This MUST be registered LAST (outermost middleware) so the
    request_id is set before other middlewares execute.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    try:
        response = await call_next(request)
    except Exception:
        logger.error("http.unhandled_exception", exc_info=True)
        return internal_error_response()

    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Global Exception Handlers ({success, message, data?, errors?} envelope)
# ============================================================================


@app.exception_handler(AccountFlowError)
async def account_flow_error_handler(request: Request, exc: AccountFlowError) -> JSONResponse:
    """Business-rule failures: user-safe message, status from the error class."""
    logger.info(
        "auth.flow_rejected",
        extra={"reason": exc.reason, "status_code": exc.status_code, "path": request.url.path},
    )
    return envelope_response(exc.status_code, exc.message, data=exc.data)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return envelope_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with errors keyed by field name (e.g. {"email": [...]})."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))

    return envelope_response(
        422,
        "Validation error",
        errors=errors,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for failures outside the request-id middleware."""
    logger.error("http.unhandled_exception", exc_info=True)
    return internal_error_response()


app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(portal.router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"name": "Exploria Auth API", "version": app.version}


# ============================================================================
# Application Lifecycle (identity client)
# ============================================================================


@app.on_event("startup")
async def startup_event():
    """Validate configuration and build the Firebase identity client.

    Tests can override app.state.identity_client with a mock.
    """
    validate_startup_config()
    if getattr(app.state, "identity_client", None) is None:
        app.state.identity_client = build_identity_client()


@app.on_event("shutdown")
async def shutdown_event():
    client = getattr(app.state, "identity_client", None)
    if client is not None and hasattr(client, "close"):
        client.close()
    app.state.identity_client = None
