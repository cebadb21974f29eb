"""
Serving middleware: request ids, request logging, timeouts, content type
checks, path cleaning, cache headers, a global concurrency cap and
recovery from unexpected exceptions.
"""

import asyncio
import logging
import re
import time
import uuid
from typing import Callable, Iterable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

NO_CACHE_HEADERS = {
    "Expires": "Thu, 01 Jan 1970 00:00:00 GMT",
    "Cache-Control": "no-cache, no-store, no-transform, must-revalidate, private, max-age=0",
    "Pragma": "no-cache",
    "X-Accel-Expires": "0",
}

_REPEATED_SLASHES = re.compile(r"/{2,}")
_REPEATED_RAW_SLASHES = re.compile(rb"/{2,}")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id, reusing the caller's if it sent one."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        request_id = getattr(request.state, "request_id", "-")
        logger.info(
            f'[{request_id}] "{request.method} {request.url.path}" '
            f"{response.status_code} in {elapsed_ms:.1f}ms"
        )
        return response


class RecovererMiddleware(BaseHTTPMiddleware):
    """Turns unexpected exceptions into a 500 inside the request id and logging layers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", "-")
            logger.error(f"[{request_id}] Unhandled exception: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Internal server error"},
                headers=NO_CACHE_HEADERS
            )


class TimeoutMiddleware:
    """Bounds the synchronous part of request handling.

    Plain ASGI middleware so the inner stack is cancelled as a whole when
    the deadline passes. Work the handler already spawned on its own tasks
    (the Slack dispatch) keeps running.
    """

    def __init__(self, app: ASGIApp, timeout: float = 2.0) -> None:
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(self.app(scope, receive, send_wrapper), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Request to {scope['path']} timed out after {self.timeout}s")
            if response_started:
                return
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": "Request timed out"}
            )
            await response(scope, receive, send)


class AllowContentTypeMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose body is not one of the allowed media types."""

    def __init__(self, app, content_types: Iterable[str] = ("application/json",)) -> None:
        super().__init__(app)
        self.content_types = {content_type.lower() for content_type in content_types}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._has_body(request):
            media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
            if media_type not in self.content_types:
                return JSONResponse(
                    status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                    content={"detail": "Unsupported media type"}
                )
        return await call_next(request)

    @staticmethod
    def _has_body(request: Request) -> bool:
        if "transfer-encoding" in request.headers:
            return True
        return request.headers.get("content-length", "0") not in ("", "0")


class CleanPathMiddleware(BaseHTTPMiddleware):
    """Collapses repeated slashes in the path before routing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.scope["path"]
        cleaned = _REPEATED_SLASHES.sub("/", path)
        if cleaned != path:
            request.scope["path"] = cleaned
            if "raw_path" in request.scope:
                request.scope["raw_path"] = _REPEATED_RAW_SLASHES.sub(b"/", request.scope["raw_path"])
        return await call_next(request)


class NoCacheMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in NO_CACHE_HEADERS.items():
            response.headers[name] = value
        return response


class ThrottleMiddleware(BaseHTTPMiddleware):
    """Caps the number of requests in flight; the rest get 429."""

    def __init__(self, app, limit: int = 50) -> None:
        super().__init__(app)
        self.limit = limit
        self._in_flight = 0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self._in_flight >= self.limit:
            logger.warning(f"Server capacity exceeded ({self.limit} requests in flight)")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Server capacity exceeded"}
            )

        self._in_flight += 1
        try:
            return await call_next(request)
        finally:
            self._in_flight -= 1
