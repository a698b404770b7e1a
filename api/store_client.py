from typing import Any

from models.errors import PipelineError
from utils.logger import get_logger

from .base_client import BaseServiceClient
from .search_client import DOCS_NAMESPACE, EMBEDDING_MODEL

logger = get_logger(__name__)

STORE_TIMEOUT_S = 60.0
CHECKSUM_FETCH_LIMIT = 10000


class ZeroDBStoreClient(BaseServiceClient):
    """
    Write-side ZeroDB calls used by the offline embeddings generator.

    Every method performs exactly one HTTP call and raises PipelineError on
    failure; retry policy is left to the caller.
    """

    service_name = "ZeroDB"

    def __init__(
        self,
        config,
        *,
        timeout_s: float = STORE_TIMEOUT_S,
        namespace: str = DOCS_NAMESPACE,
        model: str = EMBEDDING_MODEL,
        transport=None,
    ):
        super().__init__(config, timeout_s=timeout_s, transport=transport)
        self.namespace = namespace
        self.model = model

    def _url(self, action: str) -> str:
        base = self.config.zerodb_api_url.rstrip("/")
        return f"{base}/v1/public/{self.config.zerodb_project_id}/embeddings/{action}"

    async def _post(self, action: str, token: str, body: dict[str, Any], failure_message: str):
        self._require("zerodb_api_url", "zerodb_project_id")
        async with self._http_client() as client:
            request = client.build_request(
                "POST", self._url(action), headers=self._bearer_headers(token), json=body
            )
            return await self._send(client, request, failure_message=failure_message)

    async def fetch_existing_checksums(self, token: str) -> dict[str, str]:
        """
        Map document path -> checksum for everything already stored.

        A 404 means the namespace is empty.
        """
        response = await self._post(
            "search",
            token,
            {
                "namespace": self.namespace,
                "query": "",
                "limit": CHECKSUM_FETCH_LIMIT,
                "include_metadata": True,
            },
            "Failed to fetch checksums",
        )
        if response.status_code == 404:
            return {}
        if not response.is_success:
            raise PipelineError.application(
                "Failed to fetch checksums", {"status": response.status_code, "error": response.text}
            )

        payload = self._json_body(response)
        checksums: dict[str, str] = {}
        results = payload.get("results") if isinstance(payload, dict) else None
        for result in results if isinstance(results, list) else []:
            metadata = result.get("metadata") if isinstance(result, dict) else None
            if not isinstance(metadata, dict):
                continue
            path, checksum = metadata.get("path"), metadata.get("checksum")
            if path and checksum:
                checksums[path] = checksum
        return checksums

    async def delete_sections(self, token: str, path: str) -> None:
        """Delete every stored section whose metadata ``path`` matches."""
        response = await self._post(
            "delete",
            token,
            {"namespace": self.namespace, "filter": {"path": path}},
            "Failed to delete old sections",
        )
        if not response.is_success and response.status_code != 404:
            raise PipelineError.application(
                "Failed to delete old sections",
                {"status": response.status_code, "error": response.text, "path": path},
            )

    async def embed_and_store(self, token: str, documents: list[dict[str, Any]]) -> int:
        """
        Upsert a batch of ``{id, text, metadata}`` documents.

        Returns:
            The ``embedded_count`` reported by ZeroDB (0 when absent)
        """
        response = await self._post(
            "embed-and-store",
            token,
            {
                "documents": documents,
                "namespace": self.namespace,
                "model": self.model,
                "upsert": True,
            },
            "ZeroDB embed-and-store failed",
        )
        if not response.is_success:
            raise PipelineError.application(
                "ZeroDB embed-and-store failed",
                {"status": response.status_code, "error": response.text},
            )

        payload = self._json_body(response)
        embedded = payload.get("embedded_count") if isinstance(payload, dict) else None
        if embedded != len(documents):
            logger.warning(
                "Embedded count does not match batch size",
                extra={"extra_fields": {"expected": len(documents), "embedded": embedded}},
            )
        return embedded if isinstance(embedded, int) else 0
