"""ASGI middleware that tags every request with a correlation id."""

import time
import uuid

from server.utils import redact_sensitive_headers
from utils.logger import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestIDMiddleware:
    """
    Reuses an incoming X-Request-ID or mints one, exposes it as
    ``request.state.request_id`` and echoes it on the response.

    Written as plain ASGI so streamed bodies pass through untouched.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = {k.decode("latin-1").lower(): v.decode("latin-1") for k, v in scope.get("headers", [])}
        request_id = headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        start_time = time.time()

        logger.debug(
            "Request received",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "method": scope.get("method"),
                    "path": scope.get("path"),
                    "headers": redact_sensitive_headers(headers),
                }
            },
        )

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers", [])) + [
                    (REQUEST_ID_HEADER.encode("latin-1"), request_id.encode("latin-1"))
                ]
                logger.info(
                    "Response started",
                    extra={
                        "extra_fields": {
                            "request_id": request_id,
                            "path": scope.get("path"),
                            "status": message.get("status"),
                            "latency_ms": int((time.time() - start_time) * 1000),
                        }
                    },
                )
            await send(message)

        await self.app(scope, receive, send_with_request_id)
