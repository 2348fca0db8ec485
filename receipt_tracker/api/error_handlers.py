"""Exception handlers mapping domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from receipt_tracker.exceptions import (
    InvalidExtractionError,
    ReceiptNotFoundError,
    RemoteUnavailableError,
)

logger = logging.getLogger(__name__)


def invalid_extraction_handler(request: Request, exc: InvalidExtractionError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


def receipt_not_found_handler(request: Request, exc: ReceiptNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


def remote_unavailable_handler(request: Request, exc: RemoteUnavailableError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the handlers on an application."""
    app.add_exception_handler(InvalidExtractionError, invalid_extraction_handler)
    app.add_exception_handler(ReceiptNotFoundError, receipt_not_found_handler)
    app.add_exception_handler(RemoteUnavailableError, remote_unavailable_handler)
