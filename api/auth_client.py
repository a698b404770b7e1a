from urllib.parse import quote

from models.errors import PipelineError
from utils.logger import get_logger

from .base_client import BaseServiceClient

logger = get_logger(__name__)

LOGIN_PATH = "/v1/public/auth/login"
AUTH_TIMEOUT_S = 10.0


class ZeroDBAuthClient(BaseServiceClient):
    """
    Exchanges the configured ZeroDB account credentials for a bearer token.

    Tokens are never cached: every call performs a fresh login.
    """

    service_name = "ZeroDB"

    def __init__(self, config, *, timeout_s: float = AUTH_TIMEOUT_S, transport=None):
        super().__init__(config, timeout_s=timeout_s, transport=transport)

    def _login_url(self) -> str:
        return f"{self.config.zerodb_api_url.rstrip('/')}{LOGIN_PATH}"

    def _form_body(self) -> str:
        return (
            f"username={quote(self.config.zerodb_email, safe='')}"
            f"&password={quote(self.config.zerodb_password, safe='')}"
        )

    async def authenticate(self) -> str:
        """
        Log in to ZeroDB.

        Returns:
            The access token from the login response

        Raises:
            PipelineError: (application) on missing configuration, transport
                failure, timeout, non-2xx status or a response without a token
        """
        self._require("zerodb_api_url", "zerodb_email", "zerodb_password")

        async with self._http_client() as client:
            request = client.build_request(
                "POST",
                self._login_url(),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                content=self._form_body(),
            )
            response = await self._send(
                client, request, failure_message="Failed to authenticate with ZeroDB"
            )

        if not response.is_success:
            raise PipelineError.application(
                "ZeroDB authentication failed",
                {"status": response.status_code, "error": response.text},
            )

        payload = self._json_body(response)
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise PipelineError.application(
                "No access token returned from ZeroDB",
                {"status": response.status_code, "error": "no token"},
            )

        logger.debug("Authenticated with ZeroDB")
        return token
