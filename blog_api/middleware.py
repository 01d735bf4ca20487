import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("blog_api.access")


class AccessLogMiddleware:
    """
    Pure ASGI middleware: stamps ``X-Response-Time-Ms`` on every HTTP
    response and writes one access-log line per request.

    Client and server errors log at WARNING and ERROR so they show up at
    the default level; everything else logs at DEBUG.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                message["headers"] = headers
                status = message["status"]
                if status >= 500:
                    level = logging.ERROR
                elif status >= 400:
                    level = logging.WARNING
                else:
                    level = logging.DEBUG
                logger.log(
                    level, "%s %s -> %s in %.2fms",
                    scope["method"], scope["path"], status, duration_ms,
                )
            await send(message)

        await self.app(scope, receive, send_wrapper)
