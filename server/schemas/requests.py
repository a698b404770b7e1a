"""Pydantic request models for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class VectorSearchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Left untyped on purpose: emptiness and type checks produce user-facing
    # messages in orchestrator.core.sanitize_query
    prompt: Any = None
