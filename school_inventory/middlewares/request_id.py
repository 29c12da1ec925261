from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
# Staff member written to created_by/changed_by for the current request.
actor_ctx_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
logger = logging.getLogger("school_inventory.request")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id and log one line when it completes."""

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        request_token = request_id_ctx_var.set(request_id)
        actor_token = actor_ctx_var.set(None)
        request.state.request_id = request_id
        request.state.actor = None
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(request_token)
            actor_ctx_var.reset(actor_token)
        response.headers[self.header_name] = request_id
        # The auth dependency runs in a child context; request.state carries the actor back.
        logger.info(
            "request.completed",
            extra={
                "extra_data": {
                    "request_id": request_id,
                    "actor": getattr(request.state, "actor", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                }
            },
        )
        return response
