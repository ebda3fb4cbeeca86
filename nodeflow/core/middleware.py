"""HTTP middleware: engine error mapping and request logging."""

import logging
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    GraphValidationError,
    NodeConfigurationError,
    StateManagementError,
    StorageError,
    WorkflowEngineError,
    create_error_response,
)
from .logging import clear_logging_context, get_logger, log_with_context, set_logging_context

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def get_status_code_for_error(error: WorkflowEngineError) -> int:
    """HTTP status for an engine error that escaped an endpoint."""
    if isinstance(error, (GraphValidationError, NodeConfigurationError)):
        return 400
    if isinstance(error, StateManagementError) and "not found" in error.message.lower():
        return 404
    if isinstance(error, StorageError):
        return 503
    return 500


def _json_error(status_code: int, content: Dict[str, Any], request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers={REQUEST_ID_HEADER: request_id})


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turns engine errors into JSON responses and tags every response with a request id.

    The request id and path are set as logging context, so runs started by
    the request carry them in their process log records too.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        started = time.monotonic()
        set_logging_context(request_id=request_id, method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        except WorkflowEngineError as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"{request.method} {request.url.path} failed with {e.error_code}",
                duration=round(time.monotonic() - started, 3),
                error_details=e.to_dict(),
            )
            return _json_error(get_status_code_for_error(e), create_error_response(e), request_id)
        except Exception as e:
            logger.error(f"Unexpected error handling {request.method} {request.url.path}: {e}", exc_info=True)
            return _json_error(
                500,
                {
                    "error": "InternalServerError",
                    "message": "An unexpected error occurred",
                    "details": {"error_type": type(e).__name__, "timestamp": datetime.utcnow().isoformat()},
                    "request_id": request_id,
                },
                request_id,
            )
        finally:
            clear_logging_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {time.monotonic() - started:.3f}s"
        )
        return response
