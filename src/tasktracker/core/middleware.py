"""Request-id propagation and response hardening headers."""

from __future__ import annotations

import re
import uuid
from collections.abc import Awaitable, Callable, Mapping

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .context import REQUEST_ID_HEADER, bind_request_id, reset_request_id

CallNext = Callable[[Request], Awaitable[Response]]

DEFAULT_SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}

# Client-supplied ids end up in every log line, so only accept short printable tokens.
_ACCEPTED_REQUEST_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def _request_id_for(request: Request) -> str:
    supplied = request.headers.get(REQUEST_ID_HEADER, "")
    if _ACCEPTED_REQUEST_ID.fullmatch(supplied):
        return supplied
    return uuid.uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind ``X-Request-ID`` (reused from the client or generated) for the request."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = _request_id_for(request)
        request.state.request_id = request_id
        token = bind_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            reset_request_id(token)
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, headers: Mapping[str, str] = DEFAULT_SECURITY_HEADERS) -> None:
        super().__init__(app)
        self._headers = dict(headers)

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        for name, value in self._headers.items():
            response.headers.setdefault(name, value)
        if "server" in response.headers:
            del response.headers["server"]
        return response


__all__ = ["CorrelationIdMiddleware", "DEFAULT_SECURITY_HEADERS", "SecurityHeadersMiddleware"]
