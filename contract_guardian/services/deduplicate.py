"""
Finding deduplication and canonical ordering.

Overlapping chunks make the model report the same clause twice; duplicates are
detected by Jaccard similarity of the clause texts.
"""
import logging
from typing import List, Sequence

from contract_guardian.models import PRIORITY_ORDER, Finding

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.8

_TYPE_ORDER = {'improvement': 0, 'strength': 1}


def text_similarity(a: str, b: str) -> float:
    """
    Jaccard index over lowercase whitespace-separated words.

    Returns:
        Score in [0, 1]; 0 when both texts are empty.
    """
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())

    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def deduplicate_findings(findings: Sequence[Finding]) -> List[Finding]:
    """
    Remove findings whose clause text is more than 80% similar to an earlier one.

    Args:
        findings: Findings in extraction order.

    Returns:
        New list keeping the first occurrence of each duplicate group.
    """
    unique: List[Finding] = []

    for finding in findings:
        is_duplicate = any(
            text_similarity(existing.clause_text, finding.clause_text) > SIMILARITY_THRESHOLD
            for existing in unique
        )
        if not is_duplicate:
            unique.append(finding)

    removed = len(findings) - len(unique)
    if removed:
        logger.info(f"Removed {removed} duplicate findings ({len(unique)} remaining)")

    return unique


def _sort_key(finding: Finding):
    type_rank = _TYPE_ORDER.get(finding.type, 1)
    if finding.type == 'improvement':
        return type_rank, PRIORITY_ORDER.get(finding.priority, 99)
    return type_rank, 0


def sort_findings(findings: Sequence[Finding]) -> List[Finding]:
    """Improvements first (importante, consigliato, suggerimento), then strengths. Stable."""
    return sorted(findings, key=_sort_key)
