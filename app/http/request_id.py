"""Request ID middleware.

Assigns an X-Request-Id to each request (reusing the inbound header when the
caller sent one) and exposes it to log records through a context variable.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

_current_request_id: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _current_request_id.get()
        return True


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name
        self._header_key = header_name.lower().encode("latin-1")

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        inbound = None
        for k, v in scope.get("headers") or []:
            if k.lower() == self._header_key:
                inbound = v.decode("latin-1").strip()
                break
        request_id = inbound or str(uuid.uuid4())
        token = _current_request_id.set(request_id)

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                if all(k.lower() != self._header_key for k, _ in headers):
                    headers.append((self.header_name.encode("latin-1"), request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            _current_request_id.reset(token)


__all__ = ["RequestIdMiddleware", "RequestIdLogFilter"]
