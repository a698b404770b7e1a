"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel

GENERIC_ERROR_MESSAGE = "There was an error processing your request"


class ErrorResponseDTO(BaseModel):
    error: str
    data: dict[str, Any] | None = None

    def to_content(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
    configured: bool
    missing_config: list[str] = []
