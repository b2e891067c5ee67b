# backend/app/api/errors.py
"""
Exception handlers rendering every failure as

    {"success": false, "kind": ..., "message": ..., "status_code": ..., "path": ...}

Input values are never echoed back, so passwords and cookie fields cannot
leak through validation errors.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.core.errors import AppError, InternalError

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, kind: str, message: str, **extra) -> JSONResponse:
    content = {
        "success": False,
        "kind": kind,
        "message": message,
        "status_code": status_code,
        "path": str(request.url.path),
    }
    content.update(extra)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.kind, request.url.path, exc.message)
    else:
        logger.info("%s on %s: %s", exc.kind, request.url.path, exc.message)
    return error_response(request, exc.status_code, exc.kind, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Framework-raised HTTP errors (404 on unknown routes, 405, ...)."""
    logger.warning("HTTP %s: %s - %s", exc.status_code, exc.detail, request.url.path)
    kind = "not_found" if exc.status_code == 404 else "http_error"
    return error_response(request, exc.status_code, kind, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    logger.info("Validation error on %s: %s", request.url.path, [e["field"] for e in errors])
    return error_response(request, 400, "validation_error", "Validation failed", errors=errors)


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s", request.url.path, exc_info=exc)
    return error_response(request, 500, InternalError.kind, InternalError.default_message)


async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unexpected error on %s: %s", request.url.path, type(exc).__name__, exc_info=exc)
    return error_response(request, 500, InternalError.kind, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
