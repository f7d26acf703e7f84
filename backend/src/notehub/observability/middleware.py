"""Request correlation middleware.

Every request gets an ``X-Request-ID`` (the caller's, if sent) that is
echoed on the response and stamped on every log line emitted while it is
handled. Health and metrics probes are logged at DEBUG.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .context import generate_request_id, set_identity_id, set_request_id
from .logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PROBE_PATHS = frozenset({"/health", "/metrics"})


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)
        # Filled in by the identity gate once the session resolves
        set_identity_id(None)

        log = logger.debug if request.url.path in PROBE_PATHS else logger.info
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{request.method} {request.url.path} raised",
                extra={"duration_ms": round((time.perf_counter() - started) * 1000, 2)},
            )
            raise

        log(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
