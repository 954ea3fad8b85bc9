"""Exception handlers: ProjectError and friends to JSON error bodies."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from marketplace.core.exceptions import ConflictError, ProjectError, UpstreamPaymentError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI, *, production: bool = False) -> None:
    @app.exception_handler(ProjectError)
    async def project_error_handler(request: Request, exc: ProjectError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.to_dict())
        # Provider messages stay internal in production.
        include_details = not (production and isinstance(exc, UpstreamPaymentError))
        return JSONResponse(
            status_code=exc.http_status,
            content=exc.to_response(include_details=include_details),
        )

    @app.exception_handler(StaleDataError)
    async def stale_data_handler(request: Request, exc: StaleDataError) -> JSONResponse:
        logger.warning("%s %s hit a concurrent modification: %s", request.method, request.url.path, exc)
        err = ConflictError("The order was modified concurrently, please retry")
        return JSONResponse(status_code=err.http_status, content=err.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg")}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation failed", "code": "VALIDATION_ERROR", "details": {"errors": errors}},
        )
