"""Global exception handlers: every failure leaves as the same JSON envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

ERROR_TYPES = {
    400: "bad_request",
    401: "authentication_error",
    403: "forbidden",
    404: "not_found",
    422: "validation_error",
}

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_body(error_type: str, message: str, request_id: str) -> dict:
    return {
        "status": "error",
        "error": {
            "type": error_type,
            "message": message,
            "request_id": request_id,
        },
    }


def _error_response(status: int, error_type: str, message: str, request_id: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status, content=error_body(error_type, message, request_id), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        messages = "; ".join(
            f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        return _error_response(422, "validation_error", messages, _request_id(request))

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        error_type = ERROR_TYPES.get(exc.status_code, "http_error")
        if exc.status_code >= 500:
            logger.error("HTTP %d on %s %s: %s", exc.status_code, request.method, request.url.path, exc.detail)
            return _error_response(exc.status_code, "internal_error", INTERNAL_ERROR_MESSAGE, _request_id(request))
        return _error_response(exc.status_code, error_type, str(exc.detail), _request_id(request), getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", INTERNAL_ERROR_MESSAGE, _request_id(request))
