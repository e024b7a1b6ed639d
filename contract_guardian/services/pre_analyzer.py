"""
Pre-analysis: propose contract metadata (parties, type, jurisdiction).

Only strategic excerpts are sent to the model: the header names the parties,
the footer usually holds the venue clause, and a midpoint sample gives context.
"""
import logging
import time
from typing import Callable

from contract_guardian.models import PreAnalysis
from contract_guardian.prompts import get_prompts
from contract_guardian.services.llm_client import StructuredLLMClient
from contract_guardian.services.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, with_retry
from contract_guardian.taxonomies import CONTRACT_TYPE_IDS

logger = logging.getLogger(__name__)

HEADER_LENGTH = 1500
FOOTER_LENGTH = 1500
BODY_SAMPLE_LENGTH = 500


def extract_metadata_excerpts(text: str) -> str:
    """
    Build labelled header, body-sample and footer excerpts.

    Args:
        text: Full contract text.

    Returns:
        The text unchanged when it is no longer than the combined excerpts,
        otherwise the three labelled sections.
    """
    if len(text) <= HEADER_LENGTH + FOOTER_LENGTH + BODY_SAMPLE_LENGTH:
        return text

    header = text[:HEADER_LENGTH]
    footer = text[-FOOTER_LENGTH:]

    midpoint = len(text) // 2
    body_start = max(0, midpoint - BODY_SAMPLE_LENGTH // 2)
    body = text[body_start:body_start + BODY_SAMPLE_LENGTH]

    return (
        f"[HEADER - First {HEADER_LENGTH} chars]\n{header}\n\n"
        f"[BODY SAMPLE - {BODY_SAMPLE_LENGTH} chars from midpoint]\n{body}\n\n"
        f"[FOOTER - Last {FOOTER_LENGTH} chars]\n{footer}"
    )


def calculate_overall_confidence(pre_analysis: PreAnalysis) -> str:
    """Any 'low' -> low; two or more 'medium' -> medium; otherwise high."""
    confidences = pre_analysis.confidences()
    if 'low' in confidences:
        return 'low'
    if confidences.count('medium') >= 2:
        return 'medium'
    return 'high'


class MetadataExtractor:
    def __init__(
        self,
        llm_client: StructuredLLMClient,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.llm_client = llm_client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def extract_contract_metadata(self, text: str, language: str = 'it') -> PreAnalysis:
        """
        Ask the model for parties, contract type and jurisdiction.

        Args:
            text: Full contract text; only excerpts are sent.
            language: 'it' or 'en'.

        Returns:
            PreAnalysis with a confidence and reasoning per field.

        Raises:
            AIError: On refusal (INVALID_REQUEST) or exhausted retries.
        """
        prompts = get_prompts(language)
        excerpts = extract_metadata_excerpts(text)
        system_prompt = prompts.build_pre_analysis_system_prompt(CONTRACT_TYPE_IDS)
        user_prompt = prompts.build_pre_analysis_user_prompt(excerpts)

        logger.info(f"Extracting contract metadata from {len(excerpts)} chars of excerpts")
        result = with_retry(
            lambda: self.llm_client.parse(system_prompt, user_prompt, PreAnalysis),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            classify=self.llm_client.classify_error,
            sleep=self.sleep,
        )
        logger.info(
            f"Metadata extracted: type={result.contract_type.type_id}, "
            f"jurisdiction={result.jurisdiction.jurisdiction}, "
            f"confidence={calculate_overall_confidence(result)}"
        )
        return result
