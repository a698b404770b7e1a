"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.dependencies import get_config
from server.middleware import RequestIDMiddleware
from server.routes import health, vector_search
from server.routes.health import API_VERSION
from utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown logic."""
    config = get_config()
    logger.info(
        "FastAPI server starting up", extra={"extra_fields": {"config": config.describe()}}
    )

    missing = config.missing_required()
    if missing:
        logger.warning(f"Missing environment variables: {missing}")

    yield

    logger.info("FastAPI server shutting down")


def create_app() -> FastAPI:
    """Factory function to create FastAPI application."""
    app = FastAPI(
        title="Docs Assistant API",
        description="Retrieval-augmented answers over the project documentation",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(vector_search.router)

    return app
