"""
Token estimation for contract chunking.

The model tokenizer averages roughly 4 characters per token on Italian legal
text. Accuracy is not the goal here: the estimate only drives sizing decisions,
so it must be monotonic and stable.
"""
import math

# Characters per token used for all estimates
CHARS_PER_TOKEN = 4

# gpt-4o-mini has a 128K context window; 100K leaves room for prompts and output
DEFAULT_CONTEXT_TOKENS = 100_000

CHUNK_CONFIG = {
    # Leaves space for the system prompt (~2K) and the structured output (~1K)
    'max_chunk_tokens': 3000,
    'overlap_paragraphs': 1,
}


def estimate_tokens(text: str) -> int:
    """
    Estimate the token count of a text span.

    Args:
        text: Text to estimate.

    Returns:
        ceil(len(text) / 4).
    """
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def fits_in_context(text: str, max_tokens: int = DEFAULT_CONTEXT_TOKENS) -> bool:
    """Check whether text fits within a token budget."""
    return estimate_tokens(text) <= max_tokens
