"""FastAPI dependencies for configuration and orchestrator access."""

from config.config import Config
from orchestrator.core import DocsAssistantOrchestrator


def get_config() -> Config:
    """Dependency to get the process configuration (read once)."""
    if not hasattr(get_config, "_instance"):
        get_config._instance = Config.from_env()
    return get_config._instance


def get_orchestrator() -> DocsAssistantOrchestrator:
    """Dependency to get orchestrator instance (singleton pattern)."""
    if not hasattr(get_orchestrator, "_instance"):
        get_orchestrator._instance = DocsAssistantOrchestrator(get_config())
    return get_orchestrator._instance
