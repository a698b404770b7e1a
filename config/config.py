import os
from dataclasses import dataclass, fields
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_META_MODEL = "Llama-4-Maverick-17B-128E-Instruct-FP8"
DEFAULT_CONTEXT_MAX_TOKENS = 1500

# Field name -> environment variable, in the order they are validated.
ENV_KEYS = {
    "meta_api_key": "META_API_KEY",
    "meta_base_url": "META_BASE_URL",
    "zerodb_api_url": "ZERODB_API_URL",
    "zerodb_project_id": "ZERODB_PROJECT_ID",
    "zerodb_email": "ZERODB_EMAIL",
    "zerodb_password": "ZERODB_PASSWORD",
}


@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.

    Built once at process start (``Config.from_env()``) and handed to every
    client, so nothing below the entry points reads the environment itself.
    """

    meta_api_key: str | None = None
    meta_base_url: str | None = None
    zerodb_api_url: str | None = None
    zerodb_project_id: str | None = None
    zerodb_email: str | None = None
    zerodb_password: str | None = None
    meta_model: str = DEFAULT_META_MODEL
    context_max_tokens: int = DEFAULT_CONTEXT_MAX_TOKENS

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Read configuration from the process environment.

        Args:
            env_file: Optional .env file to load first. Defaults to the .env
                file at the repository root when it exists.
        """
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        values = {name: _clean(os.getenv(env_name)) for name, env_name in ENV_KEYS.items()}
        max_tokens = _clean(os.getenv("CONTEXT_MAX_TOKENS"))

        return cls(
            **values,
            meta_model=_clean(os.getenv("META_MODEL")) or DEFAULT_META_MODEL,
            context_max_tokens=_parse_max_tokens(max_tokens),
        )

    def missing_required(self) -> list[str]:
        """Return the environment variable names of every unset required key."""
        return [env_name for name, env_name in ENV_KEYS.items() if not getattr(self, name)]

    def missing(self, *names: str) -> list[str]:
        """Like ``missing_required`` but restricted to the given field names."""
        return [ENV_KEYS[name] for name in names if not getattr(self, name)]

    def describe(self) -> dict[str, object]:
        """Loggable view of the configuration with secrets masked."""
        secret = {"meta_api_key", "zerodb_password"}
        view = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in secret:
                view[f.name] = "[REDACTED]" if value else None
            else:
                view[f.name] = value
        return view


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_max_tokens(value: str | None) -> int:
    """Positive integer budget; anything else falls back to the default."""
    if value is None:
        return DEFAULT_CONTEXT_MAX_TOKENS
    try:
        parsed = int(value)
    except ValueError:
        parsed = 0
    if parsed <= 0:
        logger.warning(
            "Invalid CONTEXT_MAX_TOKENS, using default",
            extra={"extra_fields": {"value": value, "default": DEFAULT_CONTEXT_MAX_TOKENS}},
        )
        return DEFAULT_CONTEXT_MAX_TOKENS
    return parsed
