"""
Executive summary generation over the deduplicated findings.
"""
import logging
import time
from typing import Callable, Sequence

from contract_guardian.models import AnalysisContext, EnhancedMode, ExecutiveSummary, Finding
from contract_guardian.prompts import get_prompts
from contract_guardian.services.llm_client import StructuredLLMClient
from contract_guardian.services.retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, with_retry

logger = logging.getLogger(__name__)

# Explanations are truncated in the digest to keep the summary prompt small
DIGEST_EXPLANATION_CHARS = 80


def _digest_line(finding: Finding, with_actor: bool) -> str:
    explanation = finding.explanation[:DIGEST_EXPLANATION_CHARS]
    actor = getattr(finding, 'actor', 'general')
    if finding.is_strength:
        if with_actor:
            return f"- {finding.title} ({actor}): {explanation}..."
        return f"- {finding.title}: {explanation}..."
    if with_actor:
        return f"- [{finding.priority}] ({actor}) {finding.title}: {explanation}..."
    return f"- [{finding.priority}] {finding.title}: {explanation}..."


def build_summary_body(findings: Sequence[Finding], prompts, with_actor: bool = False) -> str:
    """Render strengths/improvements digests and priority tallies."""
    strengths = [f for f in findings if f.is_strength]
    improvements = [f for f in findings if not f.is_strength]

    strengths_digest = '\n'.join(_digest_line(f, with_actor) for f in strengths) or prompts.NO_STRENGTHS
    improvements_digest = '\n'.join(_digest_line(f, with_actor) for f in improvements) or prompts.NO_IMPROVEMENTS

    return prompts.SUMMARY_BODY_TEMPLATE.format(
        strength_count=len(strengths),
        strengths=strengths_digest,
        improvement_count=len(improvements),
        improvements=improvements_digest,
        importante=sum(1 for f in improvements if f.priority == 'importante'),
        consigliato=sum(1 for f in improvements if f.priority == 'consigliato'),
        suggerimento=sum(1 for f in improvements if f.priority == 'suggerimento'),
    )


class Summarizer:
    """Produces the ExecutiveSummary for a completed set of findings."""

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

    def generate_executive_summary(
        self,
        findings: Sequence[Finding],
        document_name: str,
        context: AnalysisContext
    ) -> ExecutiveSummary:
        """
        Summarize findings for a document.

        Args:
            findings: Deduplicated, sorted findings.
            document_name: Shown to the model in the prompt.
            context: Language and analysis mode.

        Returns:
            ExecutiveSummary with summary, overall_assessment and recommendation.
        """
        prompts = get_prompts(context.language)

        if isinstance(context.mode, EnhancedMode):
            metadata = context.mode.metadata
            party_a = metadata.party_a or prompts.PARTY_A_DEFAULT
            party_b = metadata.party_b or prompts.PARTY_B_DEFAULT
            body = build_summary_body(findings, prompts, with_actor=True)
            system_prompt = prompts.ENHANCED_SUMMARY_SYSTEM_PROMPT_TEMPLATE.format(
                party_a=party_a, party_b=party_b
            )
            user_prompt = prompts.ENHANCED_SUMMARY_PROMPT_TEMPLATE.format(
                document_name=document_name, party_a=party_a, party_b=party_b, body=body
            )
        else:
            viewpoint = prompts.VIEWPOINT_TERMS[context.mode.viewpoint]
            body = build_summary_body(findings, prompts)
            system_prompt = prompts.SUMMARY_SYSTEM_PROMPT_TEMPLATE.format(viewpoint=viewpoint)
            user_prompt = prompts.SUMMARY_PROMPT_TEMPLATE.format(
                document_name=document_name, viewpoint=viewpoint, body=body
            )

        summary = with_retry(
            lambda: self.llm_client.parse(system_prompt, user_prompt, ExecutiveSummary),
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            classify=self.llm_client.classify_error,
            sleep=self.sleep,
        )
        logger.info(f"Executive summary for '{document_name}': {summary.overall_assessment}")
        return summary
