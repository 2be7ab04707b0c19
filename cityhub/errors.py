"""
Exception handlers that give every failure the same ``{"error": ...}`` body.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from cityhub.db import StoreError

logger = logging.getLogger(__name__)

_VALIDATION_MESSAGES = {
    "query": "Invalid query",
    "body": "Invalid body",
    "path": "Invalid params",
}


def _field_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            content={"error": exc.detail},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        source = errors[0]["loc"][0] if errors and errors[0].get("loc") else "body"
        return JSONResponse(
            content=jsonable_encoder(
                {
                    "error": _VALIDATION_MESSAGES.get(source, "Invalid request"),
                    "details": _field_errors(exc),
                }
            ),
            status_code=400,
        )

    @app.exception_handler(StoreError)
    async def store_exception_handler(request: Request, exc: StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(content={"error": exc.message}, status_code=500)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(content={"error": str(exc) or "Server error"}, status_code=500)
