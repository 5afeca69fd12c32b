"""
Error taxonomy and the FastAPI handlers that turn it into response bodies.

Every error body has the shape ``{"success": false, "error": "..."}`` with
optional ``code`` and ``details``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import is_production

logger = logging.getLogger(__name__)


class ConflictError(Exception):
    """A compare-and-set write lost against a concurrent change."""


class RenderError(Exception):
    code = "RENDER_FAILED"
    status_code = 500


class EmptyDocumentError(RenderError):
    """Nothing to render; raised before any browser is launched."""
    code = "EMPTY_DOCUMENT"
    status_code = 422


class RenderDependencyMissing(RenderError):
    """The headless browser driver or its browser binary is not installed."""
    code = "RENDER_DEPENDENCY_MISSING"
    status_code = 503


class RenderFailure(RenderError):
    """The browser started but loading or printing the page failed."""


class RenderBusy(RenderError):
    """Timed out waiting for the same document or a free browser."""
    code = "RENDER_BUSY"
    status_code = 503


def error_body(message: str, **extra) -> dict:
    body = {"success": False, "error": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _field_errors(exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return details


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)),
                        headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body("Validation error", details=_field_errors(exc)))


async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content=error_body(str(exc) or "Conflicting update"))


async def render_error_handler(request: Request, exc: RenderError):
    if isinstance(exc, (EmptyDocumentError, RenderDependencyMissing, RenderBusy)):
        message = str(exc)
        details = None
    else:
        logger.error("PDF generation failed: %s", exc)
        message = "Failed to generate PDF"
        details = None if is_production() else str(exc)
    return JSONResponse(status_code=exc.status_code,
                        content=error_body(message, code=exc.code, details=details))


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details = None if is_production() else str(exc)
    return JSONResponse(status_code=500, content=error_body("Internal server error", details=details))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ConflictError, conflict_handler)
    app.add_exception_handler(RenderError, render_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
