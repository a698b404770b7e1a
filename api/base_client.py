import asyncio
from typing import Any

import httpx

from config.config import Config
from models.errors import PipelineError


class BaseServiceClient:
    """
    Shared plumbing for the outbound HTTP clients.

    Each call opens its own ``httpx.AsyncClient`` (no connection or token
    state survives a request) and races the network operation against the
    client's deadline with ``asyncio.wait_for``. On expiry the pending send
    is cancelled, which tears down the underlying transport.
    """

    service_name: str = "service"

    def __init__(
        self,
        config: Config,
        *,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Application configuration
            timeout_s: Deadline for the request, up to and including the
                response headers
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.config = config
        self.timeout_s = timeout_s
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        # Deadlines are enforced by wait_for, not by httpx's per-phase timeouts
        return httpx.AsyncClient(timeout=None, transport=self._transport)

    def _require(self, *names: str) -> None:
        missing = self.config.missing(*names)
        if missing:
            raise PipelineError.application(
                f"Missing {self.service_name} configuration", {"missing": missing}
            )

    async def _send(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        *,
        failure_message: str,
        stream: bool = False,
    ) -> httpx.Response:
        """Send ``request`` within the deadline, mapping transport failures to PipelineError."""
        try:
            return await asyncio.wait_for(client.send(request, stream=stream), timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            raise PipelineError.application(
                failure_message,
                {"error": "timeout", "timeout_s": self.timeout_s, "url": str(request.url)},
            ) from exc
        except httpx.HTTPError as exc:
            raise PipelineError.application(
                failure_message,
                {"error": str(exc), "error_type": type(exc).__name__, "url": str(request.url)},
            ) from exc

    @staticmethod
    def _bearer_headers(token: str) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}

    @staticmethod
    def _json_body(response: httpx.Response) -> Any:
        """Decode a JSON body, returning None when it is not valid JSON."""
        try:
            return response.json()
        except ValueError:
            return None
