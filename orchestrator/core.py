"""
DocsAssistantOrchestrator - question answering over the documentation index.

One call to ``answer()`` walks a fixed sequence of stages:

    validating -> authenticating -> searching -> assembling -> streaming

Every stage finishes before the next starts, and any failure moves the
request to ``failed`` by raising a PipelineError. Nothing is shared between
requests except the read-only Config; each request logs in to ZeroDB anew.
"""

import time
import uuid
from enum import Enum
from typing import Any

import httpx

from api.auth_client import ZeroDBAuthClient
from api.completion_client import CompletionStream, MetaLlamaCompletionClient
from api.search_client import ZeroDBSearchClient
from config.config import Config
from config.prompt_templates import build_prompt
from models.errors import PipelineError
from orchestrator.context_builder import build_context
from utils.logger import get_logger

logger = get_logger(__name__)


class PipelineStage(str, Enum):
    VALIDATING = "validating"
    AUTHENTICATING = "authenticating"
    SEARCHING = "searching"
    ASSEMBLING = "assembling"
    STREAMING = "streaming"
    RESPONDED = "responded"
    FAILED = "failed"


def sanitize_query(query: Any) -> str:
    """Trim the user's question, rejecting anything that is not a usable query."""
    if query is None or query == "":
        raise PipelineError.user("Missing query in request data")
    if not isinstance(query, str):
        raise PipelineError.user(
            "Query must be a string", {"received_type": type(query).__name__}
        )

    sanitized = query.strip()
    if not sanitized:
        raise PipelineError.user("Query cannot be empty")
    return sanitized


class DocsAssistantOrchestrator:
    def __init__(
        self,
        config: Config,
        *,
        auth_client: ZeroDBAuthClient | None = None,
        search_client: ZeroDBSearchClient | None = None,
        completion_client: MetaLlamaCompletionClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Application configuration, shared read-only across requests
            auth_client / search_client / completion_client: Optional
                pre-built clients; by default they are built from ``config``
            transport: Optional httpx transport for the default clients
        """
        self.config = config
        self.auth_client = auth_client or ZeroDBAuthClient(config, transport=transport)
        self.search_client = search_client or ZeroDBSearchClient(config, transport=transport)
        self.completion_client = completion_client or MetaLlamaCompletionClient(
            config, transport=transport
        )

    def check_configuration(self) -> None:
        """Fail before any network call if a required setting is missing."""
        missing = self.config.missing_required()
        if missing:
            raise PipelineError.application(
                f"Missing environment variable {missing[0]}", {"missing": missing}
            )

    async def answer(self, query: Any, *, request_id: str | None = None) -> CompletionStream:
        """
        Run the pipeline up to the first byte of the model's answer.

        Args:
            query: The raw ``prompt`` value from the request
            request_id: Correlation id for logs

        Returns:
            CompletionStream of answer text chunks, ready to be streamed.
            The caller owns it and must exhaust or ``aclose()`` it.

        Raises:
            PipelineError: user errors for bad input, application errors for
                configuration and upstream failures
        """
        request_id = request_id or str(uuid.uuid4())
        start_time = time.time()
        stage = PipelineStage.VALIDATING

        try:
            self.check_configuration()
            sanitized_query = sanitize_query(query)

            stage = self._enter(PipelineStage.AUTHENTICATING, request_id)
            access_token = await self.auth_client.authenticate()

            stage = self._enter(PipelineStage.SEARCHING, request_id)
            results = await self.search_client.search(sanitized_query, access_token)

            stage = self._enter(PipelineStage.ASSEMBLING, request_id)
            context_text = build_context(results, self.config.context_max_tokens)
            prompt = build_prompt(context_text, sanitized_query)

            stage = self._enter(PipelineStage.STREAMING, request_id)
            stream = await self.completion_client.stream_completion(prompt)
        except PipelineError as exc:
            logger.info(
                "Pipeline failed",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "stage": stage.value,
                        "state": PipelineStage.FAILED.value,
                        "error_kind": exc.kind.value,
                    }
                },
            )
            raise

        logger.info(
            "Pipeline ready to stream",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "result_count": len(results),
                    "context_chars": len(context_text),
                    "latency_ms": int((time.time() - start_time) * 1000),
                }
            },
        )
        stream.on_close(lambda: self._enter(PipelineStage.RESPONDED, request_id))
        return stream

    @staticmethod
    def _enter(stage: PipelineStage, request_id: str) -> PipelineStage:
        logger.debug(
            "Pipeline stage", extra={"extra_fields": {"request_id": request_id, "stage": stage.value}}
        )
        return stage

