from collections.abc import Callable, Iterable

from config.config import DEFAULT_CONTEXT_MAX_TOKENS
from config.prompt_templates import CONTEXT_SEPARATOR
from models.search_result import SearchResult
from utils.token_counter import count_tokens


def build_context(
    results: Iterable[SearchResult],
    max_tokens: int = DEFAULT_CONTEXT_MAX_TOKENS,
    *,
    token_counter: Callable[[str], int] = count_tokens,
) -> str:
    """
    Concatenate result contents in rank order under a token budget.

    Blank results are skipped. Each result's tokens are added to the running
    total before it is appended; once the total reaches ``max_tokens`` the
    result that crossed the line and everything after it are left out, so a
    result is either included whole or not at all.

    An empty string is a valid outcome (no hits, or only blank hits).
    """
    token_count = 0
    blocks: list[str] = []

    for result in results:
        if not result.has_content:
            continue
        content = result.content

        token_count += token_counter(content)
        if token_count >= max_tokens:
            break

        blocks.append(f"{content.strip()}{CONTEXT_SEPARATOR}")

    return "".join(blocks)
