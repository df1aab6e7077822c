"""Request tracing middleware.

Error responses and the log events emitted while producing them are tied
together by a request id.
"""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the structlog context for the whole request.

    - Honors an incoming X-Request-ID, otherwise generates a UUID4
    - Stores it on ``request.state.request_id`` for chain entries
    - Echoes it back in the X-Request-ID response header

    Failures handled by the pipeline still pass back through here, so error
    responses carry the header as well. Only the last-resort 500 produced by
    Starlette's ServerErrorMiddleware (outside all user middleware) does not.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
