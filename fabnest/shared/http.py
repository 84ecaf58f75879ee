import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fabnest.shared.config import settings
from fabnest.shared.errors import DomainError

logger = logging.getLogger(__name__)

def ok(**payload: Any) -> dict:
    return {"ok": True, **payload}

def _error_body(message: str, code: str) -> dict:
    return {"detail": message, "code": code}

def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # drop the "body"/"query" prefix from the location
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form")]
    msg = first.get("msg", "Invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg

def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def _domain_error(request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.code))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=_error_body(_first_validation_message(exc), "validation_error"))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        # dev shows the real error, everything else gets a generic message
        message = str(exc) if settings.is_dev else "Internal server error"
        return JSONResponse(status_code=500, content=_error_body(message, "internal_error"))
