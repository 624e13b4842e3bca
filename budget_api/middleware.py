"""Request tracking middleware."""

import time
import uuid

from fastapi import Request
from loguru import logger

REQUEST_ID_HEADER = "X-Request-ID"


async def add_request_id(request: Request, call_next):
    """Tag the request and every log record written while handling it.

    The id comes from the ``X-Request-ID`` header when the caller sends one.
    It is echoed on the response and exposed to log formats as
    ``{extra[request_id]}``.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
