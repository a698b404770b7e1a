"""Shared utilities for FastAPI routes."""

from collections.abc import Mapping

from fastapi.responses import StreamingResponse

SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}
STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted


class ClosingStreamingResponse(StreamingResponse):
    """StreamingResponse that always closes its body iterator, even if sending the headers fails."""

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()
