"""Mapping of service errors to HTTP responses."""

import logging

from fastapi import HTTPException, status

from scamwatch.core.exceptions import (
    ExternalAPIError,
    RateLimitExceededError,
    ScamWatchError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def to_http_exception(exc: ScamWatchError) -> HTTPException:
    """422 for bad input, 429/502 for upstream failures, 500 otherwise."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)
    if isinstance(exc, RateLimitExceededError):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.message)
    if isinstance(exc, ExternalAPIError):
        logger.warning("Upstream API failure", extra={"error": exc.message, **exc.details})
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    logger.error("Unhandled service error", extra={"error": exc.message})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)
