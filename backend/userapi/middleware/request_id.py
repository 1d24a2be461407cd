"""
User Directory API: Request ID Middleware
============================================

What:  Assigns an ID to each incoming request and returns it in a header.
How:   Reuses the client's X-Request-ID when present, otherwise generates a
       short UUID; stores it in a ContextVar and on request.state.
Who:   Applied to every request via Starlette middleware, outermost.

Every log line written while handling a request, including the error
handlers in main.py, can be correlated through this ID.

Unhandled exceptions are rendered here as the 500 envelope. Starlette
would otherwise answer them from ServerErrorMiddleware, which sits
outside this middleware and never sees the header.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from userapi.schemas.user import envelope

logger = logging.getLogger(__name__)

# Coroutine-local storage for the current request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the client's X-Request-ID header if it sent one
        2. Otherwise generate an 8-character ID
        3. Store in ContextVar (loggers) and request.state (handlers)
        4. Turn any unhandled exception into a 500 envelope
        5. Echo the ID in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
            response = JSONResponse(status_code=500, content=envelope(500, str(exc)))
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
