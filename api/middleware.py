"""ASGI middleware: access logging, failure recovery, method allow-listing"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from starlette.datastructures import Headers
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class AccessLogMiddleware:
    """Emit one INFO record per HTTP request once the wrapped app returns.

    The record carries method, URI, protocol, status, response size, referrer,
    user agent and duration, both in the message and as record attributes.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status = 0
        size = 0

        async def send_wrapper(message: Message) -> None:
            nonlocal status, size
            if message["type"] == "http.response.start":
                status = message["status"]
            elif message["type"] == "http.response.body":
                size += len(message.get("body", b""))
            await send(message)

        start = time.perf_counter()
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.perf_counter() - start
            headers = Headers(scope=scope)
            fields = {
                "method": scope["method"],
                "uri": _request_uri(scope),
                "protocol": f"HTTP/{scope.get('http_version', '1.1')}",
                "status": status,
                "size": size,
                "referrer": headers.get("referer", ""),
                "user_agent": headers.get("user-agent", ""),
                "duration": duration,
            }
            logger.info(
                '%s %s %s %d %d "%s" "%s" %.6fs',
                fields["method"], fields["uri"], fields["protocol"],
                fields["status"], fields["size"],
                fields["referrer"], fields["user_agent"], fields["duration"],
                extra=fields,
            )


def _request_uri(scope: Scope) -> str:
    raw_path = scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path


class RecoveryMiddleware:
    """Turn any exception escaping the wrapped app into an empty 500.

    The exception is logged once with its traceback. When the response has
    already started nothing more can be sent, so it is only logged.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

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
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Unhandled error serving %s %s", scope["method"], scope.get("path", ""))
            if not response_started:
                await Response(status_code=500)(scope, receive, send)


class AllowMethodsMiddleware:
    """Only let the listed HTTP methods through to the wrapped app.

    ``OPTIONS`` is answered directly with the ``Allow`` header; any other
    method not in the list gets a 405.
    """

    def __init__(self, app: ASGIApp, methods: Iterable[str]) -> None:
        self.app = app
        self.methods = list(methods)
        self.allow = ", ".join(["OPTIONS", *self.methods])

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        if method == "OPTIONS":
            response = Response(status_code=200, headers={"Allow": self.allow})
        elif method in self.methods:
            await self.app(scope, receive, send)
            return
        else:
            response = PlainTextResponse(
                "Method not allowed", status_code=405, headers={"Allow": self.allow}
            )
        await response(scope, receive, send)
