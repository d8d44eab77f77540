from __future__ import annotations

import logging
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"
_INBOUND_HEADERS = ("X-Request-Id", "X-Correlation-Id", "X-Vercel-Id")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


def get_request_id() -> str:
    return request_id_var.get()


class RequestIdLogFilter(logging.Filter):
    """Stamps every record with the id of the plea being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Header lookup is case-insensitive in starlette.
        request_id = next(
            (request.headers[name] for name in _INBOUND_HEADERS if request.headers.get(name)),
            None,
        ) or uuid4().hex

        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        return response
