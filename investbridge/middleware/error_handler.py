"""
Error handling.

- decision_error_handler: renders DecisionError subclasses as
  ``{"error": <code>, "message": ..., **details}`` with their status code
- ErrorHandlerMiddleware: outermost catch-all for anything unhandled;
  generic message plus an error_id, traceback only in the logs
"""

import traceback
import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from investbridge.config import settings
from investbridge.errors import DecisionError

logger = structlog.get_logger(__name__)


async def decision_error_handler(request: Request, exc: DecisionError) -> JSONResponse:
    log = logger.info if exc.status_code < 500 else logger.error
    log("decision_error", error=exc.error, status=exc.status_code, path=request.url.path)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Outermost middleware.

    Response body for unhandled errors:
    {"error": "internal_error", "message": ..., "error_id": ..., "status": 500}
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            error_id = str(uuid.uuid4())
            logger.error(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
                traceback=traceback.format_exc(),
            )

            body: dict = {
                "error": "internal_error",
                "message": "An internal error occurred. Please try again later.",
                "error_id": error_id,
                "status": 500,
            }
            if settings.debug:
                body["debug_hint"] = type(exc).__name__
            return JSONResponse(status_code=500, content=body)
