"""
Wiring of the analysis services for the Flask application.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from contract_guardian.legal_norms import LegalNormIndex
from contract_guardian.services.analysis_orchestrator import AnalysisOrchestrator
from contract_guardian.services.chunk_analyzer import ChunkAnalyzer
from contract_guardian.services.llm_client import OpenAIStructuredClient, StructuredLLMClient
from contract_guardian.services.pre_analyzer import MetadataExtractor
from contract_guardian.services.summarizer import Summarizer
from contract_guardian.store import InMemoryStore
from contract_guardian.worker import AnalysisWorker

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: InMemoryStore
    norm_index: LegalNormIndex
    metadata_extractor: MetadataExtractor
    orchestrator: AnalysisOrchestrator
    worker: AnalysisWorker


def build_services(
    config,
    llm_client: Optional[StructuredLLMClient] = None,
    store: Optional[InMemoryStore] = None,
    norm_index: Optional[LegalNormIndex] = None
) -> Services:
    """
    Build the service graph from a config object (class or Flask config mapping).

    Args:
        config: Object exposing the Config attributes, or a dict-like app.config.
        llm_client: Structured LLM client; OpenAI when omitted.
        store: Record store; a new seeded in-memory store when omitted.
        norm_index: Legal norm index; loaded from bundled data when omitted.
    """
    def setting(name):
        return config[name] if hasattr(config, 'keys') else getattr(config, name)

    if llm_client is None:
        llm_client = OpenAIStructuredClient(
            api_key=setting('OPENAI_API_KEY'),
            model=setting('OPENAI_MODEL'),
            temperature=setting('OPENAI_TEMPERATURE'),
            timeout=setting('OPENAI_TIMEOUT'),
        )
    if store is None:
        store = InMemoryStore()
        store.seed_default_policies()
    if norm_index is None:
        norm_index = LegalNormIndex()

    retry_settings = {
        'max_retries': setting('AI_MAX_RETRIES'),
        'base_delay': setting('AI_RETRY_BASE_DELAY'),
    }

    orchestrator = AnalysisOrchestrator(
        store,
        ChunkAnalyzer(llm_client, norm_index, **retry_settings),
        Summarizer(llm_client, **retry_settings),
        timeout=setting('ANALYSIS_TIMEOUT_SECONDS'),
        max_chunk_tokens=setting('MAX_CHUNK_TOKENS'),
    )

    return Services(
        store=store,
        norm_index=norm_index,
        metadata_extractor=MetadataExtractor(llm_client, **retry_settings),
        orchestrator=orchestrator,
        worker=AnalysisWorker(store, orchestrator, max_workers=setting('ANALYSIS_WORKERS')),
    )
