"""
Correlation id propagation.

Provides:
- Context-local correlation id and user id storage
- Correlation id generation
- Middleware that reads X-Correlation-Id / X-User-Id and echoes the
  correlation id on every response
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-Id"
USER_ID_HEADER = "X-User-Id"
ANONYMOUS_USER = "anonymous"

# Longer incoming ids are replaced with a generated one
MAX_CORRELATION_ID_LENGTH = 200

# Context-local storage
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_ctx: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def generate_correlation_id() -> str:
    """Generate a unique correlation id."""
    return f"corr_{uuid.uuid4().hex[:16]}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation id from context (None outside a request)."""
    return correlation_id_ctx.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation id for the current context."""
    correlation_id_ctx.set(correlation_id)


def get_user_id() -> Optional[str]:
    """Get the current user id from context."""
    return user_id_ctx.get()


def set_user_id(user_id: Optional[str]) -> None:
    """Set the user id for the current context."""
    user_id_ctx.set(user_id)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagates or generates the correlation id for every request."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id or len(correlation_id) > MAX_CORRELATION_ID_LENGTH:
            correlation_id = generate_correlation_id()
        set_correlation_id(correlation_id)
        set_user_id(request.headers.get(USER_ID_HEADER))

        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_ID_HEADER] = correlation_id

        return response
