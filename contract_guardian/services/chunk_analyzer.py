"""
Per-chunk structured analysis.

One model call per chunk, wrapped in the retry executor. Basic mode analyzes
from one viewpoint (cliente/fornitore); enhanced mode adds actor tagging and
legal-norm citations based on the validated contract metadata.
"""
import logging
import time
from typing import Callable, List, Sequence, Union

from contract_guardian.legal_norms import LegalNorm, LegalNormIndex
from contract_guardian.models import (
    AnalysisContext,
    ChunkAnalysis,
    EnhancedChunkAnalysis,
    EnhancedMode,
    ValidatedMetadata,
)
from contract_guardian.prompts import get_prompts
from contract_guardian.services.llm_client import StructuredLLMClient
from contract_guardian.services.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, with_retry
from contract_guardian.taxonomies import UNKNOWN_JURISDICTION

logger = logging.getLogger(__name__)

# Norms embedded in the enhanced prompt; more would crowd out the chunk text
MAX_PROMPT_NORMS = 10
NORM_MIN_RELEVANCE = 0.7


class ChunkAnalyzer:
    """
    Runs the structured extraction for a single chunk.

    Args:
        llm_client: Structured extraction capability.
        norm_index: Legal norm lookup used in enhanced mode.
        max_retries: Attempts per chunk before MAX_RETRIES_EXCEEDED.
        base_delay: Initial retry delay in seconds.
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        llm_client: StructuredLLMClient,
        norm_index: LegalNormIndex,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.llm_client = llm_client
        self.norm_index = norm_index
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep

    def relevant_norms(self, metadata: ValidatedMetadata) -> List[LegalNorm]:
        """Top norms for the contract type, or none when the jurisdiction is unknown."""
        if metadata.jurisdiction == UNKNOWN_JURISDICTION:
            return []
        norms = self.norm_index.query(metadata.contract_type, metadata.jurisdiction, NORM_MIN_RELEVANCE)
        return norms[:MAX_PROMPT_NORMS]

    def analyze_chunk(
        self,
        chunk_text: str,
        policies: Sequence,
        chunk_index: int,
        context: AnalysisContext
    ) -> Union[ChunkAnalysis, EnhancedChunkAnalysis]:
        """
        Analyze one chunk against the policy set.

        Args:
            chunk_text: Text of the chunk.
            policies: Ordered policies embedded in the system prompt.
            chunk_index: Zero-based chunk position (shown 1-based to the model).
            context: Language and analysis mode.

        Returns:
            ChunkAnalysis (basic) or EnhancedChunkAnalysis (enhanced); every
            finding carries chunk_index as its source chunk.

        Raises:
            AIError: On non-retryable failures or when retries are exhausted.
        """
        prompts = get_prompts(context.language)

        if isinstance(context.mode, EnhancedMode):
            metadata = context.mode.metadata
            norms = self.relevant_norms(metadata)
            system_prompt = prompts.build_enhanced_system_prompt(
                policies, metadata.party_a, metadata.party_b, norms
            )
            user_prompt = prompts.build_enhanced_user_prompt(
                chunk_text, chunk_index, metadata.party_a, metadata.party_b
            )
            schema = EnhancedChunkAnalysis
            logger.debug(f"Chunk {chunk_index + 1}: enhanced prompt with {len(norms)} legal norms")
        else:
            viewpoint = context.mode.viewpoint
            system_prompt = prompts.build_system_prompt(policies, viewpoint)
            user_prompt = prompts.build_user_prompt(chunk_text, chunk_index, viewpoint)
            schema = ChunkAnalysis

        result = with_retry(
            lambda: self.llm_client.parse(system_prompt, user_prompt, schema),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            classify=self.llm_client.classify_error,
            sleep=self.sleep,
        )

        for finding in result.findings:
            finding.with_source(chunk_index)

        if result.has_more_content:
            logger.debug(f"Chunk {chunk_index + 1} appears cut mid-sentence")

        logger.info(f"Chunk {chunk_index + 1}: {len(result.findings)} findings")
        return result
