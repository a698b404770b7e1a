import json

import httpx
import pytest

from config.config import Config

AUTH_URL = "https://api.ainative.studio/v1/public/auth/login"
SEARCH_URL = "https://api.ainative.studio/v1/public/test-project-id/embeddings/search"
COMPLETION_URL = "https://api.llama.com/compat/v1/chat/completions"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served, in order."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []

        async def record(request: httpx.Request):
            self.requests.append(request)
            response = handler(request)
            if not isinstance(response, httpx.Response):
                response = await response
            return response

        super().__init__(record)

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


def sse_body(*contents: str, done: bool = True) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": c}}]}) + "\n\n" for c in contents
    ]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


@pytest.fixture
def config() -> Config:
    return Config(
        meta_api_key="test-meta-api-key",
        meta_base_url="https://api.llama.com/compat/v1",
        zerodb_api_url="https://api.ainative.studio",
        zerodb_project_id="test-project-id",
        zerodb_email="test@example.com",
        zerodb_password="test-password",
        meta_model="Llama-4-Maverick-17B-128E-Instruct-FP8",
    )


@pytest.fixture
def make_transport():
    """Build a RecordingTransport from a URL -> response (or callable) mapping."""

    def _make(routes: dict) -> RecordingTransport:
        def handler(request: httpx.Request):
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404, text=f"no route for {request.url}")
            return route(request) if callable(route) else route

        return RecordingTransport(handler)

    return _make


@pytest.fixture
def happy_routes():
    return {
        AUTH_URL: httpx.Response(200, json={"access_token": "tok"}),
        SEARCH_URL: httpx.Response(
            200, json={"results": [{"id": "1", "score": 0.9, "text": "ZeroDB is a vector database"}]}
        ),
        COMPLETION_URL: httpx.Response(200, content=sse_body("ZeroDB")),
    }
