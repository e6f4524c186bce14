"""
Error mapping.

Translates the domain error taxonomy into HTTP responses. Every body says
whether the call is safe to retry or left a repair pending.
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from orderdesk.domain.exceptions import (
    Conflict,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    OrderDeskError,
    PartiallyApplied,
    UpstreamFailure,
)

logger = logging.getLogger(__name__)

# Most specific first
_STATUS_BY_ERROR = (
    (PartiallyApplied, status.HTTP_503_SERVICE_UNAVAILABLE),
    (UpstreamFailure, status.HTTP_502_BAD_GATEWAY),
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (Conflict, status.HTTP_409_CONFLICT),
)


def status_code_for(exc: OrderDeskError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def order_desk_error_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=code,
        content={
            "error": type(exc).__name__,
            "detail": exc.message,
            "retry_safe": exc.retry_safe,
            "repair_pending": exc.repair_pending,
            "path": request.url.path,
        },
    )
