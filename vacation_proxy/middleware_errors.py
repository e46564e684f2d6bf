from __future__ import annotations

import logging

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("vacation_proxy")


def unexpected_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error serving %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error"},
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turns uncaught exceptions into JSON 500s inside the CORS and header middleware."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return unexpected_error_response(request, exc)
