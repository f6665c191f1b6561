"""
Exception handlers for coredata-rest applications.

Provides centralized translation of the runtime error types:
- RecordNotFoundError: no record for the primary key (404)
- RecordValidationError: failed validation rules (406)
- PersistenceError: write rejected by the database (406)
- RequestParameterError: malformed query parameter or body (400)

Every response is JSON; validation and persistence failures carry an
``errors`` object keyed by the offending field.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from coredata_rest.runtime.pagination import RequestParameterError
from coredata_rest.runtime.repository import PersistenceError, RecordNotFoundError
from coredata_rest.runtime.validation import RecordValidationError

logger = logging.getLogger("coredata.errors")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the standard exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError) -> Response:
        """Missing record: bare 404 signal."""
        logger.debug("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": "Not Found"})

    @app.exception_handler(RecordValidationError)
    async def validation_error_handler(request: Request, exc: RecordValidationError) -> Response:
        """Convert validation failures to 406 Not Acceptable with field details."""
        return JSONResponse(status_code=406, content={"errors": exc.errors})

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError) -> Response:
        """Convert database rejections to 406 Not Acceptable."""
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=406, content={"errors": exc.errors})

    @app.exception_handler(RequestParameterError)
    async def parameter_error_handler(request: Request, exc: RequestParameterError) -> Response:
        """Convert malformed parameters to 400 Bad Request."""
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid parameter", "errors": exc.errors},
        )
