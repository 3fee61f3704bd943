"""
Request Size Limit

ASGI middleware enforcing a hard cap on request bodies:
- a declared Content-Length over the cap is refused before the app runs
- streamed bytes are counted as the app reads them, so chunked bodies
  without a Content-Length are cut off as soon as they pass the cap

Either way the client gets 413 with the usual error body.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from utils.formatting import format_file_size


logger = logging.getLogger(__name__)


class RequestTooLarge(Exception):
    """Raised from receive() once the streamed body passes the cap."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Request too large. Maximum is {format_file_size(limit)}")


def too_large_response(limit: int) -> JSONResponse:
    return JSONResponse(
        {"error": f"Request too large. Maximum is {format_file_size(limit)}", "violations": []},
        status_code=413,
    )


async def request_too_large_handler(request: Request, exc: RequestTooLarge) -> JSONResponse:
    """Exception handler for bodies cut off while streaming."""
    logger.info("Rejected %s %s: body exceeded %d bytes", request.method, request.url.path, exc.limit)
    return too_large_response(exc.limit)


def _declared_length(scope: Scope) -> Optional[int]:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class RequestSizeLimitMiddleware:
    """Caps the request body at max_bytes, declared or streamed."""

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _declared_length(scope)
        if declared is not None and declared > self.max_bytes:
            logger.info("Rejected %s %s: declared body of %d bytes", scope["method"], scope["path"], declared)
            await too_large_response(self.max_bytes)(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise RequestTooLarge(self.max_bytes)
            return message

        await self.app(scope, limited_receive, send)
