"""Correlation ID middleware and log filter for request tracing."""

import logging
import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

HEADER_NAME = "X-Correlation-ID"

# Context variable so log records anywhere in the request can pick up the ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """
    Get the current correlation ID from context.

    Returns empty string if called outside of a request context.
    """
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    """Generate a short unique correlation ID."""
    return uuid.uuid4().hex[:16]


class CorrelationIdFilter(logging.Filter):
    """Attach ``record.correlation_id`` ("-" outside requests) for log formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that extracts or generates a correlation ID for each request.

    The ID is taken from the X-Correlation-ID header (truncated to 64 chars)
    or generated, echoed back on the response, and exposed to logging through
    CorrelationIdFilter.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = (request.headers.get(HEADER_NAME) or "")[:64]
        if not correlation_id:
            correlation_id = generate_correlation_id()

        token = correlation_id_var.set(correlation_id)

        try:
            response = await call_next(request)
            response.headers[HEADER_NAME] = correlation_id
            return response
        finally:
            # Reset context to prevent leaking between requests
            correlation_id_var.reset(token)
