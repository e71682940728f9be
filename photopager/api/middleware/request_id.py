"""Request ID middleware — tags every request's log lines with an id."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("photopager.api")

_MAX_ID_LENGTH = 128


def _accept_request_id(value: str) -> bool:
    # Clients may forward their own ids; anything printable and short is fine.
    return 0 < len(value) <= _MAX_ID_LENGTH and value.isprintable() and " " not in value


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request_id/method/path into structlog contextvars for one request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get("x-request-id", "")
        request_id = incoming if _accept_request_id(incoming) else uuid.uuid4().hex

        tokens = structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log.exception("request.failed", elapsed_ms=_elapsed_ms(started))
            raise
        else:
            log.info(
                "request.completed",
                status_code=response.status_code,
                elapsed_ms=_elapsed_ms(started),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            structlog.contextvars.reset_contextvars(**tokens)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)
