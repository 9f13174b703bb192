"""Correlation ID middleware.

Each request gets an ``X-Correlation-ID``: the caller's value when it looks
sane, a fresh UUID otherwise. The id is echoed on the response, stored on
``request.state`` for the error handlers and bound to the log context.
"""

import re
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ...logging.config import bind_context, get_logger, set_correlation_id, unbind_context

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Printable token characters only; anything else is replaced.
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def accept_correlation_id(value: str | None) -> bool:
    """Whether a caller-supplied correlation id can be reused as is."""
    return bool(value) and _VALID_CORRELATION_ID.match(value) is not None


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        header_name: str = CORRELATION_ID_HEADER,
        generator: Callable[[], str] = generate_correlation_id,
    ):
        super().__init__(app)
        self.header_name = header_name
        self.generator = generator

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        incoming = request.headers.get(self.header_name)
        if accept_correlation_id(incoming):
            correlation_id = incoming
        else:
            correlation_id = self.generator()
            if incoming:
                logger.debug("Replaced malformed correlation id", path=request.url.path)

        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)
        bind_context(correlation_id=correlation_id, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            set_correlation_id(None)
            unbind_context("correlation_id", "path", "account_id")

        response.headers[self.header_name] = correlation_id
        return response


def get_correlation_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)
