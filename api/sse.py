"""
Incremental decoder for OpenAI-style chat-completion event streams.

The upstream body is a sequence of lines such as::

    data: {"choices":[{"delta":{"content":"Zero"}}]}
    data: {"choices":[{"delta":{"content":"DB"}}]}
    data: [DONE]

Network reads do not respect line or character boundaries, so the decoder
keeps two pieces of state between reads: the UTF-8 decoder (holding any
incomplete multi-byte sequence) and the text after the last newline.
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from utils.logger import get_logger

logger = get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"


def extract_delta_content(event: Any) -> str | None:
    """Return ``choices[0].delta.content`` when it is a non-empty string."""
    if not isinstance(event, dict):
        return None
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    delta = first.get("delta") if isinstance(first, dict) else None
    content = delta.get("content") if isinstance(delta, dict) else None
    if isinstance(content, str) and content:
        return content
    return None


class SSEDecoder:
    """Turns raw byte chunks into content deltas, one ``feed`` call per read."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.skipped_frames = 0

    @property
    def pending(self) -> str:
        """Text received after the last newline, not yet processed."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Consume one read and return the content deltas it completed, in order."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")

        deltas = []
        for line in lines:
            content = self._parse_line(line)
            if content is not None:
                deltas.append(content)
        return deltas

    def _parse_line(self, line: str) -> str | None:
        line = line.strip()
        if not line or line == DONE_SENTINEL:
            return None
        if not line.startswith(DATA_PREFIX):
            return None

        try:
            event = json.loads(line[len(DATA_PREFIX):])
        except ValueError as exc:
            self.skipped_frames += 1
            logger.warning(
                "Failed to parse SSE data",
                extra={"extra_fields": {"error": str(exc), "frame": line[:200]}},
            )
            return None

        return extract_delta_content(event)


async def iter_sse_content(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """
    Pull content deltas out of an async byte stream.

    Ends when the byte stream ends. An unterminated trailing line is dropped,
    as in any SSE consumer.
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for content in decoder.feed(chunk):
            yield content

    if decoder.pending.strip():
        logger.debug(
            "Discarding unterminated SSE line at end of stream",
            extra={"extra_fields": {"fragment": decoder.pending[:200]}},
        )
