"""Token counting for context budgeting, backed by tiktoken."""

from __future__ import annotations

import tiktoken

from utils.logger import get_logger

logger = get_logger(__name__)

# GPT-3 family byte-pair encoding; only used as a conservative length estimate
DEFAULT_ENCODING = "r50k_base"
FALLBACK_CHARS_PER_TOKEN = 4

_encodings: dict[str, tiktoken.Encoding | None] = {}


def get_encoding(name: str = DEFAULT_ENCODING) -> tiktoken.Encoding | None:
    """Load (once) and return the named encoding, or None if it cannot be loaded."""
    if name not in _encodings:
        try:
            _encodings[name] = tiktoken.get_encoding(name)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Could not load tiktoken encoding, using character heuristic",
                extra={"extra_fields": {"encoding": name, "error": str(exc)}},
            )
            _encodings[name] = None
    return _encodings[name]


def count_tokens(text: str, encoding_name: str = DEFAULT_ENCODING) -> int:
    """Count tokens in ``text``; deterministic for a given input."""
    if not text:
        return 0
    encoding = get_encoding(encoding_name)
    if encoding is None:
        return -(-len(text) // FALLBACK_CHARS_PER_TOKEN)
    return len(encoding.encode(text, disallowed_special=()))
