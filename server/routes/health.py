"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from config.config import Config
from server.dependencies import get_config
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(config: Config = Depends(get_config)):
    """Liveness plus a configuration summary (key names only, never values)."""
    missing = config.missing_required()
    return HealthResponseDTO(
        status="healthy" if not missing else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=API_VERSION,
        configured=not missing,
        missing_config=missing,
    )
