"""
Prompt templates for the documentation assistant.

All model-facing text lives here so it can be reviewed and versioned
separately from the pipeline code.
"""

SYSTEM_INSTRUCTIONS: str = (
    "You are a helpful AI assistant who provides accurate information "
    "based on the provided documentation. Given the following sections from the "
    "documentation, answer the question using only that information, "
    "outputted in markdown format. If you are unsure and the answer "
    "is not explicitly written in the documentation, say "
    '"Sorry, I don\'t know how to help with that."'
)

RAG_PROMPT_TEMPLATE: str = """{instructions}

Context sections:
{context}

Question: \"\"\"
{query}
\"\"\"

Answer as markdown (including related code snippets if available):"""

CONTEXT_SEPARATOR: str = "\n---\n"


def build_prompt(context: str, query: str) -> str:
    """Interpolate the assembled context and the sanitized query."""
    return RAG_PROMPT_TEMPLATE.format(
        instructions=SYSTEM_INSTRUCTIONS,
        context=context.rstrip("\n"),
        query=query,
    )
