"""Attach a request id to every request and echo it back in the response."""

import logging
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from chat_relay.middleware.error_handler import INTERNAL_ERROR_MESSAGE, error_body

logger = logging.getLogger(__name__)

HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        try:
            response = await call_next(request)
        except Exception:
            # Rendered here so the 500 still carries the request id and the outer middleware headers
            logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
            response = JSONResponse(
                status_code=500,
                content=error_body("internal_error", INTERNAL_ERROR_MESSAGE, request_id),
            )
        response.headers[HEADER] = request_id
        return response
