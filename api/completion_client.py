from collections.abc import AsyncIterator, Callable

import httpx

from models.errors import PipelineError
from utils.logger import get_logger

from .base_client import BaseServiceClient
from .sse import iter_sse_content

logger = get_logger(__name__)

COMPLETION_TIMEOUT_S = 30.0
MAX_OUTPUT_TOKENS = 512
TEMPERATURE = 0


class MetaLlamaCompletionClient(BaseServiceClient):
    """
    Streaming chat-completion client for an OpenAI-compatible endpoint.

    The deadline covers the request up to the response headers only; once the
    body starts streaming, generation may take as long as the model needs.
    """

    service_name = "Meta Llama"

    def __init__(
        self,
        config,
        *,
        timeout_s: float = COMPLETION_TIMEOUT_S,
        max_tokens: int = MAX_OUTPUT_TOKENS,
        temperature: float = TEMPERATURE,
        transport=None,
    ):
        super().__init__(config, timeout_s=timeout_s, transport=transport)
        self.max_tokens = max_tokens
        self.temperature = temperature

    def completions_url(self) -> str:
        return f"{self.config.meta_base_url.rstrip('/')}/chat/completions"

    def build_payload(self, prompt: str) -> dict:
        return {
            "model": self.config.meta_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "stream": True,
        }

    async def stream_completion(self, prompt: str) -> "CompletionStream":
        """
        Start a streaming completion.

        Waits for a successful initial response, then hands back an async
        CompletionStream of text chunks in model output order. Closing it
        (even before the first read) closes the upstream connection.

        Raises:
            PipelineError: (application) on missing configuration, transport
                failure, timeout or a non-2xx initial response
        """
        self._require("meta_api_key", "meta_base_url")

        client = self._http_client()
        try:
            request = client.build_request(
                "POST",
                self.completions_url(),
                headers=self._bearer_headers(self.config.meta_api_key),
                json=self.build_payload(prompt),
            )
            response = await self._send(
                client, request, failure_message="Failed to generate completion", stream=True
            )
        except BaseException:
            await client.aclose()
            raise

        if not response.is_success:
            try:
                error_text = (await response.aread()).decode("utf-8", errors="replace")
            finally:
                await response.aclose()
                await client.aclose()
            raise PipelineError.application(
                "Failed to generate completion",
                {"status": response.status_code, "error": error_text},
            )

        logger.info(
            "Completion stream opened",
            extra={"extra_fields": {"model": self.config.meta_model, "status": response.status_code}},
        )
        return CompletionStream(client, response)


class CompletionStream:
    """
    Async iterator of answer chunks that owns the upstream connection.

    ``aclose()`` releases the response and the HTTP client whether or not
    iteration ever started. It runs automatically when the stream ends,
    fails or is cancelled.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response
        self._chunks = self._iter_content()
        self._close_callbacks: list[Callable[[], None]] = []
        self.chunk_count = 0
        self.closed = False

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def __aiter__(self) -> "CompletionStream":
        return self

    async def __anext__(self) -> str:
        try:
            return await self._chunks.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self._chunks.aclose()
        finally:
            await self._response.aclose()
            await self._client.aclose()
            logger.debug("Completion stream closed", extra={"extra_fields": {"chunks": self.chunk_count}})
            for callback in self._close_callbacks:
                callback()

    async def _iter_content(self) -> AsyncIterator[str]:
        try:
            async for content in iter_sse_content(self._response.aiter_bytes()):
                self.chunk_count += 1
                yield content
        except httpx.HTTPError as exc:
            # Headers are already on the wire; the stream itself has to fail
            logger.error(
                "Completion stream failed mid-response",
                extra={
                    "extra_fields": {
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "chunks_sent": self.chunk_count,
                    }
                },
            )
            raise PipelineError.application(
                "Completion stream interrupted", {"error": str(exc), "chunks_sent": self.chunk_count}
            ) from exc
