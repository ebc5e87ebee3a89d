"""
Exception handlers registered on the app.

Request validation failures answer 400 with one entry per violated field
instead of FastAPI's default 422.
"""
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Location prefixes FastAPI adds that mean nothing to API clients
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def field_name(loc) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    return ".".join(parts) or "request"


def format_validation_errors(errors) -> list[dict]:
    formatted = []
    for error in errors:
        message = error.get("msg", "Invalid value")
        # pydantic prefixes messages raised from validators
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": field_name(error.get("loc", ())), "message": message})
    return formatted


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = format_validation_errors(exc.errors())
    logger.info(f"Validation failed on {request.method} {request.url.path}: {[e['field'] for e in errors]}")
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "errors": errors},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
