"""Request correlation and access logging."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger
from .request_id import resolve_request_id, set_request_id

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for the duration of the request and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_id(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{request.method} {request.url.path} raised",
                extra={"duration_ms": _since(started)},
            )
            raise

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={"status_code": response.status_code, "duration_ms": _since(started)},
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def _since(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
