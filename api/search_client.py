from models.errors import PipelineError
from models.search_result import SearchResult
from utils.logger import get_logger

from .base_client import BaseServiceClient

logger = get_logger(__name__)

SEARCH_TIMEOUT_S = 15.0
DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.7
DOCS_NAMESPACE = "documentation"
EMBEDDING_MODEL = "BAAI/bge-small-en-v1.5"


class ZeroDBSearchClient(BaseServiceClient):
    """
    Semantic search against the documentation namespace.

    ZeroDB embeds the query server-side, so only free text is sent.
    Results come back in descending relevance order.
    """

    service_name = "ZeroDB"

    def __init__(
        self,
        config,
        *,
        timeout_s: float = SEARCH_TIMEOUT_S,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
        namespace: str = DOCS_NAMESPACE,
        model: str = EMBEDDING_MODEL,
        transport=None,
    ):
        super().__init__(config, timeout_s=timeout_s, transport=transport)
        self.limit = limit
        self.threshold = threshold
        self.namespace = namespace
        self.model = model

    def search_url(self) -> str:
        base = self.config.zerodb_api_url.rstrip("/")
        return f"{base}/v1/public/{self.config.zerodb_project_id}/embeddings/search"

    async def search(self, query: str, access_token: str) -> list[SearchResult]:
        """
        Run one semantic search. A single attempt; no retries.

        Args:
            query: Sanitized, non-empty query text
            access_token: Bearer token from ZeroDBAuthClient

        Returns:
            Ranked results, possibly empty
        """
        self._require("zerodb_api_url", "zerodb_project_id")

        body = {
            "query": query,
            "limit": self.limit,
            "threshold": self.threshold,
            "namespace": self.namespace,
            "model": self.model,
        }

        async with self._http_client() as client:
            request = client.build_request(
                "POST", self.search_url(), headers=self._bearer_headers(access_token), json=body
            )
            response = await self._send(
                client, request, failure_message="Failed to search documentation"
            )

        if not response.is_success:
            raise PipelineError.application(
                "ZeroDB search failed",
                {"status": response.status_code, "error": response.text},
            )

        payload = self._json_body(response)
        raw_results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(raw_results, list):
            raise PipelineError.application(
                "Invalid search response from ZeroDB",
                {"searchData": payload if payload is not None else response.text},
            )

        results = [SearchResult.from_dict(item) for item in raw_results if isinstance(item, dict)]
        if len(results) != len(raw_results):
            logger.warning(
                "Dropped malformed search results",
                extra={"extra_fields": {"dropped": len(raw_results) - len(results)}},
            )

        logger.info(
            "ZeroDB search completed",
            extra={
                "extra_fields": {
                    "result_count": len(results),
                    "top_score": results[0].score if results else None,
                }
            },
        )
        return results
