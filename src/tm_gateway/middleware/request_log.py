"""Access log plus request id propagation.

An incoming X-Request-ID header is reused when present, otherwise a fresh id
is minted. The id lands on request.state (read by ``respond``) and on the
response header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.tm_common.response import new_request_id

logger = logging.getLogger("tm.access")

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INCOMING_ID_LEN = 64


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
        request_id = incoming if 0 < len(incoming) <= _MAX_INCOMING_ID_LEN else new_request_id()
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        took_ms = (time.perf_counter() - started) * 1000

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms rid=%s",
            request.method,
            request.url.path,
            response.status_code,
            took_ms,
            request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
