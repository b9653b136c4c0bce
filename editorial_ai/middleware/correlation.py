"""Correlation ID middleware for request tracing.

Every response carries X-Request-ID (echoed from the client when sent,
generated otherwise); structlog picks it up through the asgi-correlation-id
context var.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI


def setup_correlation_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        generator=lambda: str(uuid.uuid4()),
        validator=None,  # Accept any format
        transformer=lambda a: a,
    )


def get_correlation_id() -> str | None:
    """Current request's correlation ID, or None outside a request."""
    return correlation_id.get(None)


__all__ = ["setup_correlation_middleware", "get_correlation_id"]
