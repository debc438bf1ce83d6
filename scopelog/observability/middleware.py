from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders

from scopelog.config import get_settings
from scopelog.context.frames import ContextFrame
from scopelog.context.store import get_store


class ScopeContextMiddleware:
    """Opens a root scope per HTTP request and emits an access log inside it."""

    def __init__(self, app: Callable[..., Any], header_name: str | None = None) -> None:
        self.app = app
        self.header_name = header_name or get_settings().request_id_header

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(self.header_name) or str(uuid.uuid4())
        method = scope.get("method")
        path = scope.get("path")

        store = get_store()
        frame = ContextFrame(label=f"{method} {path}", data={"request_id": request_id})

        with store.scoped(store.push(frame)):
            start = perf_counter()
            status_code: int = 500

            async def send_wrapper(message: dict[str, Any]) -> None:
                nonlocal status_code

                if message.get("type") == "http.response.start":
                    status_code = int(message.get("status", 500))
                    headers = MutableHeaders(scope=message)
                    headers[self.header_name] = request_id

                await send(message)

            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                elapsed_ms = (perf_counter() - start) * 1000.0
                structlog.get_logger("access").info(
                    "http_request",
                    status_code=status_code,
                    elapsed_ms=round(elapsed_ms, 2),
                )
