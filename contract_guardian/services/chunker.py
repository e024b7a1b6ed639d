"""
Contract chunking - splits long contracts into token-bounded chunks.

Chunks follow paragraph boundaries and overlap by one paragraph, so a clause
sitting on a chunk boundary is always seen whole by at least one model call.
Duplicate findings caused by the overlap are removed later by deduplicate.py.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import List, NamedTuple

from contract_guardian.services.tokens import CHARS_PER_TOKEN, CHUNK_CONFIG, estimate_tokens

logger = logging.getLogger(__name__)

# Standard A4 page of contract text, used for page estimates
CHARS_PER_PAGE = 3000

PARAGRAPH_SEPARATOR = '\n\n'

# A blank line (possibly holding only whitespace) separates paragraphs
_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')


@dataclass
class Chunk:
    """A bounded, positionally tracked slice of the contract."""
    text: str
    index: int
    start_char: int
    end_char: int
    page_estimate: int
    token_estimate: int


@dataclass
class ChunkingResult:
    chunks: List[Chunk]
    total_chunks: int
    requires_chunking: bool


class _Paragraph(NamedTuple):
    text: str
    start: int
    end: int


def estimate_pages(text: str) -> int:
    """
    Estimate page count at ~3000 characters per page.

    Returns:
        Pages rounded up; 0 for empty text.
    """
    return math.ceil(len(text) / CHARS_PER_PAGE)


def _split_paragraphs(text: str) -> List[_Paragraph]:
    """Split on blank lines, keeping each trimmed paragraph's span in the original text."""
    paragraphs = []
    position = 0

    for match in _PARAGRAPH_BREAK.finditer(text):
        _append_paragraph(paragraphs, text, position, match.start())
        position = match.end()
    _append_paragraph(paragraphs, text, position, len(text))

    return paragraphs


def _append_paragraph(paragraphs: List[_Paragraph], text: str, start: int, end: int) -> None:
    block = text[start:end]
    stripped = block.strip()
    if not stripped:
        return
    leading = len(block) - len(block.lstrip())
    paragraph_start = start + leading
    paragraphs.append(_Paragraph(stripped, paragraph_start, paragraph_start + len(stripped)))


def _tokens_for_length(length: int) -> int:
    return math.ceil(length / CHARS_PER_TOKEN)


def _build_chunk(paragraphs: List[_Paragraph], index: int) -> Chunk:
    chunk_text = PARAGRAPH_SEPARATOR.join(p.text for p in paragraphs)
    end_char = paragraphs[-1].end
    return Chunk(
        text=chunk_text,
        index=index,
        start_char=paragraphs[0].start,
        end_char=end_char,
        page_estimate=max(1, math.ceil(end_char / CHARS_PER_PAGE)),
        token_estimate=estimate_tokens(chunk_text),
    )


def _single_chunk(text: str) -> ChunkingResult:
    chunk = Chunk(
        text=text.strip(),
        index=0,
        start_char=0,
        end_char=len(text),
        page_estimate=1,
        token_estimate=estimate_tokens(text),
    )
    return ChunkingResult(chunks=[chunk], total_chunks=1, requires_chunking=False)


def chunk_contract(
    text: str,
    max_tokens_per_chunk: int = CHUNK_CONFIG['max_chunk_tokens'],
    overlap_paragraphs: int = CHUNK_CONFIG['overlap_paragraphs']
) -> ChunkingResult:
    """
    Split contract text into overlapping, token-bounded chunks.

    Strategy:
    1. If the whole text fits in one chunk, return it as a single chunk.
    2. Otherwise split by paragraphs and group them greedily up to the limit.
    3. Seed each new chunk with the last overlap_paragraphs paragraphs of the
       previous one.

    A paragraph that alone exceeds the budget still becomes (part of) a chunk;
    the chunker never splits inside a paragraph.

    Args:
        text: Full contract text.
        max_tokens_per_chunk: Token budget per chunk.
        overlap_paragraphs: Paragraphs carried over from one chunk into the next.

    Returns:
        ChunkingResult with the ordered chunks.
    """
    if estimate_tokens(text) <= max_tokens_per_chunk:
        return _single_chunk(text)

    paragraphs = _split_paragraphs(text)
    if not paragraphs:
        # Whitespace-only input longer than the budget
        return _single_chunk(text)

    chunks: List[Chunk] = []
    current: List[_Paragraph] = []
    current_length = 0

    for paragraph in paragraphs:
        candidate_length = current_length + len(PARAGRAPH_SEPARATOR) + len(paragraph.text)

        if current and _tokens_for_length(candidate_length) > max_tokens_per_chunk:
            chunks.append(_build_chunk(current, len(chunks)))

            # Overlap: the closed chunk's trailing paragraphs open the next one
            current = current[-overlap_paragraphs:] if overlap_paragraphs > 0 else []
            current_length = len(PARAGRAPH_SEPARATOR.join(p.text for p in current))
            candidate_length = current_length + len(PARAGRAPH_SEPARATOR) + len(paragraph.text)

        current.append(paragraph)
        current_length = candidate_length if len(current) > 1 else len(paragraph.text)

    if current:
        chunks.append(_build_chunk(current, len(chunks)))

    logger.info(
        f"Split contract into {len(chunks)} chunks "
        f"({len(text)} chars, budget {max_tokens_per_chunk} tokens/chunk)"
    )

    return ChunkingResult(chunks=chunks, total_chunks=len(chunks), requires_chunking=True)
