"""Documentation question endpoint with a streamed plain-text answer."""

import json

from fastapi import APIRouter, Depends, Request

from models.errors import PipelineError
from orchestrator.core import DocsAssistantOrchestrator
from server.dependencies import get_orchestrator
from server.errors import error_response
from server.schemas.requests import VectorSearchRequest
from server.utils import STREAM_HEADERS, STREAM_MEDIA_TYPE, ClosingStreamingResponse
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Vector Search"])


def parse_request_body(raw: bytes) -> VectorSearchRequest:
    """Decode the JSON body; malformed or missing bodies are the caller's fault."""
    try:
        payload = json.loads(raw) if raw.strip() else None
    except ValueError as exc:
        raise PipelineError.user("Invalid request body", {"error": str(exc)}) from exc

    if payload is None:
        raise PipelineError.user("Missing request data")
    if not isinstance(payload, dict):
        raise PipelineError.user(
            "Invalid request body", {"received_type": type(payload).__name__}
        )
    return VectorSearchRequest.model_validate(payload)


@router.post("/vector-search")
async def vector_search(
    http_request: Request,
    orchestrator: DocsAssistantOrchestrator = Depends(get_orchestrator),
):
    """Answer a documentation question, streaming the model output as it arrives."""
    request_id = getattr(http_request.state, "request_id", "unknown")

    try:
        orchestrator.check_configuration()
        body = parse_request_body(await http_request.body())
        stream = await orchestrator.answer(body.prompt, request_id=request_id)
    except Exception as exc:
        return error_response(exc, request_id)

    return ClosingStreamingResponse(stream, media_type=STREAM_MEDIA_TYPE, headers=STREAM_HEADERS)
