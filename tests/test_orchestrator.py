import json
from dataclasses import replace

import httpx
import pytest

from models.errors import ErrorKind, PipelineError
from orchestrator.core import DocsAssistantOrchestrator, sanitize_query

from conftest import AUTH_URL, COMPLETION_URL, SEARCH_URL, sse_body


async def collect(stream) -> str:
    return "".join([chunk async for chunk in stream])


# -------------------------------------------------------------------
# Query sanitization
# -------------------------------------------------------------------


def test_sanitize_query_trims():
    assert sanitize_query("  What is ZeroDB?\n") == "What is ZeroDB?"


@pytest.mark.parametrize("query", [None, ""])
def test_sanitize_query_missing(query):
    with pytest.raises(PipelineError) as exc_info:
        sanitize_query(query)
    assert exc_info.value.kind is ErrorKind.USER
    assert exc_info.value.message == "Missing query in request data"


@pytest.mark.parametrize("query", ["   ", "\n\t"])
def test_sanitize_query_whitespace_only(query):
    with pytest.raises(PipelineError) as exc_info:
        sanitize_query(query)
    assert exc_info.value.kind is ErrorKind.USER
    assert exc_info.value.message == "Query cannot be empty"


@pytest.mark.parametrize("query, type_name", [(42, "int"), (["q"], "list"), ({"q": 1}, "dict")])
def test_sanitize_query_wrong_type(query, type_name):
    with pytest.raises(PipelineError) as exc_info:
        sanitize_query(query)
    assert exc_info.value.message == "Query must be a string"
    assert exc_info.value.data == {"received_type": type_name}


# -------------------------------------------------------------------
# Pipeline
# -------------------------------------------------------------------


@pytest.mark.asyncio
async def test_answer_runs_stages_in_order(config, make_transport, happy_routes):
    transport = make_transport(happy_routes)
    orchestrator = DocsAssistantOrchestrator(config, transport=transport)

    stream = await orchestrator.answer("  What is ZeroDB?  ", request_id="req-1")

    assert await collect(stream) == "ZeroDB"
    assert transport.urls == [AUTH_URL, SEARCH_URL, COMPLETION_URL]


@pytest.mark.asyncio
async def test_answer_sends_sanitized_query_and_context(config, make_transport, happy_routes):
    transport = make_transport(happy_routes)
    orchestrator = DocsAssistantOrchestrator(config, transport=transport)

    await collect(await orchestrator.answer("  What is ZeroDB?  "))

    assert json.loads(transport.requests[1].content)["query"] == "What is ZeroDB?"
    prompt = transport.requests[2].content.decode()
    assert "ZeroDB is a vector database" in prompt
    assert "What is ZeroDB?" in prompt


@pytest.mark.asyncio
async def test_empty_search_results_still_stream(config, make_transport, happy_routes):
    routes = dict(happy_routes)
    routes[SEARCH_URL] = httpx.Response(200, json={"results": []})
    transport = make_transport(routes)

    stream = await DocsAssistantOrchestrator(config, transport=transport).answer("q")

    assert await collect(stream) == "ZeroDB"
    assert len(transport.requests) == 3


@pytest.mark.asyncio
async def test_invalid_query_makes_no_calls(config, make_transport, happy_routes):
    transport = make_transport(happy_routes)

    with pytest.raises(PipelineError) as exc_info:
        await DocsAssistantOrchestrator(config, transport=transport).answer("   ")

    assert exc_info.value.is_user_error
    assert transport.requests == []


@pytest.mark.asyncio
async def test_missing_configuration_fails_before_any_call(config, make_transport, happy_routes):
    transport = make_transport(happy_routes)
    cfg = replace(config, meta_api_key=None, zerodb_project_id=None)

    with pytest.raises(PipelineError) as exc_info:
        await DocsAssistantOrchestrator(cfg, transport=transport).answer("q")

    assert exc_info.value.kind is ErrorKind.APPLICATION
    assert exc_info.value.message == "Missing environment variable META_API_KEY"
    assert exc_info.value.data == {"missing": ["META_API_KEY", "ZERODB_PROJECT_ID"]}
    assert transport.requests == []


@pytest.mark.asyncio
async def test_auth_failure_short_circuits(config, make_transport, happy_routes):
    routes = dict(happy_routes)
    routes[AUTH_URL] = httpx.Response(401, text="bad credentials")
    transport = make_transport(routes)

    with pytest.raises(PipelineError) as exc_info:
        await DocsAssistantOrchestrator(config, transport=transport).answer("q")

    assert exc_info.value.message == "ZeroDB authentication failed"
    assert transport.urls == [AUTH_URL]


@pytest.mark.asyncio
async def test_search_failure_skips_completion(config, make_transport, happy_routes):
    routes = dict(happy_routes)
    routes[SEARCH_URL] = httpx.Response(503, text="unavailable")
    transport = make_transport(routes)

    with pytest.raises(PipelineError):
        await DocsAssistantOrchestrator(config, transport=transport).answer("q")

    assert transport.urls == [AUTH_URL, SEARCH_URL]


@pytest.mark.asyncio
async def test_each_request_authenticates_again(config, make_transport, happy_routes):
    routes = {
        AUTH_URL: lambda request: httpx.Response(200, json={"access_token": "tok"}),
        SEARCH_URL: lambda request: httpx.Response(200, json={"results": []}),
        COMPLETION_URL: lambda request: httpx.Response(200, content=sse_body("ok")),
    }
    transport = make_transport(routes)
    orchestrator = DocsAssistantOrchestrator(config, transport=transport)

    await collect(await orchestrator.answer("first"))
    await collect(await orchestrator.answer("second"))

    assert transport.urls.count(AUTH_URL) == 2


@pytest.mark.asyncio
async def test_context_respects_configured_budget(config, make_transport, happy_routes):
    routes = dict(happy_routes)
    routes[SEARCH_URL] = httpx.Response(
        200,
        json={
            "results": [
                {"id": "1", "score": 0.9, "text": "short hit"},
                {"id": "2", "score": 0.8, "text": "overflow " * 200},
            ]
        },
    )
    transport = make_transport(routes)
    cfg = replace(config, context_max_tokens=50)

    await collect(await DocsAssistantOrchestrator(cfg, transport=transport).answer("q"))

    prompt = transport.requests[2].content.decode()
    assert "short hit" in prompt
    assert "overflow" not in prompt


class TrackedBody(httpx.AsyncByteStream):
    def __init__(self, body: bytes):
        self.body = body
        self.closed = False

    async def __aiter__(self):
        yield self.body

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_answer_closed_before_first_read_releases_upstream(config, make_transport, happy_routes):
    upstream = TrackedBody(sse_body("never read"))
    routes = dict(happy_routes)
    routes[COMPLETION_URL] = lambda request: httpx.Response(200, stream=upstream)
    transport = make_transport(routes)

    stream = await DocsAssistantOrchestrator(config, transport=transport).answer("q")
    await stream.aclose()

    assert upstream.closed


@pytest.mark.asyncio
async def test_answer_releases_upstream_when_exhausted(config, make_transport, happy_routes):
    upstream = TrackedBody(sse_body("done"))
    routes = dict(happy_routes)
    routes[COMPLETION_URL] = lambda request: httpx.Response(200, stream=upstream)
    transport = make_transport(routes)

    stream = await DocsAssistantOrchestrator(config, transport=transport).answer("q")

    assert await collect(stream) == "done"
    assert upstream.closed
