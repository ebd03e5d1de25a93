"""HTTP interface: FastAPI application exposing ``POST /identify``."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from identipy import __version__
from identipy.app import identify_contact
from identipy.config import ServerConfig, get_server_config
from identipy.domain.reconciliation import (
    InvalidInputError,
    ReconciliationError,
    StoreUnavailableError,
)
from identipy.ui.schema import ErrorResponse, IdentifyRequest, IdentifyResponse

if TYPE_CHECKING:
    from identipy.domain.reconciliation import UnitOfWorkFactory

log = logging.getLogger(__name__)

SERVICE_NAME = "Identity Reconciliation"


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    payload = ErrorResponse(error=error, message=message, status_code=status_code)
    return JSONResponse(status_code=status_code, content=payload.model_dump(by_alias=True))


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()


def create_app(
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    *,
    config: ServerConfig | None = None,
) -> FastAPI:
    """Build the API. Without a factory, requests use the SQLAlchemy adapter."""

    settings = config or get_server_config()
    started_at = time.monotonic()

    app = FastAPI(title=SERVICE_NAME, version=__version__)

    def _internal_error(message: str) -> JSONResponse:
        return _error(
            500,
            "Internal Server Error",
            message if settings.expose_errors else "Something went wrong",
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [str(error.get("msg", "Invalid request")) for error in exc.errors()]
        return _error(400, "Validation Error", ", ".join(messages) or "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # Known paths with the wrong method get the same answer as unknown paths.
        if exc.status_code in (404, 405):
            return _error(404, "Not Found", f"Route {request.method} {request.url.path} not found")
        return _error(exc.status_code, str(exc.detail), str(exc.detail))

    @app.exception_handler(ReconciliationError)
    async def _reconciliation_error(_request: Request, exc: ReconciliationError) -> JSONResponse:
        if isinstance(exc, InvalidInputError):
            return _error(400, "Validation Error", str(exc))
        if isinstance(exc, StoreUnavailableError) and exc.retryable:
            log.warning("Contact store unavailable (retryable): %s", exc)
            return _error(503, "Service Unavailable", "Contact store unavailable, retry later")
        log.error("Reconciliation failed: %s", exc, exc_info=exc)
        return _internal_error(str(exc))

    @app.exception_handler(Exception)
    async def _unhandled_error(_request: Request, exc: Exception) -> JSONResponse:
        log.error("Unhandled error: %s", exc, exc_info=exc)
        return _internal_error(str(exc))

    @app.get("/")
    def index() -> dict[str, str]:
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": _now_iso(),
        }

    @app.get("/health")
    def health() -> dict[str, str | float]:
        return {
            "status": "healthy",
            "uptime": round(time.monotonic() - started_at, 3),
            "timestamp": _now_iso(),
        }

    @app.post("/identify", response_model=IdentifyResponse)
    def identify(body: IdentifyRequest) -> IdentifyResponse:
        log.info("POST /identify called: email=%s, phone_number=%s", body.email, body.phone_number)
        view = identify_contact(
            body.email,
            body.phone_number,
            unit_of_work_factory=unit_of_work_factory,
        )
        return IdentifyResponse.from_view(view)

    return app
