"""
Background execution of analysis jobs.

The HTTP layer submits work here and returns immediately with the job id;
clients poll the job record for progress.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Tuple

from contract_guardian.models import AnalysisMode, EnhancedMode
from contract_guardian.services.analysis_orchestrator import MSG_STARTING, AnalysisOrchestrator
from contract_guardian.store import InMemoryStore, utcnow

logger = logging.getLogger(__name__)


class AnalysisWorker:
    """
    Thread pool running AnalysisOrchestrator.run_analysis.

    Args:
        store: Record store shared with the orchestrator.
        orchestrator: Runs each job to a terminal state.
        max_workers: Concurrent jobs.
    """

    def __init__(self, store: InMemoryStore, orchestrator: AnalysisOrchestrator, max_workers: int = 4):
        self.store = store
        self.orchestrator = orchestrator
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='analysis-worker')
        # Held across check-and-create so two requests cannot both start a job
        self._submit_lock = threading.Lock()

    def submit(self, document_id: int, mode: AnalysisMode, language: Optional[str] = None) -> Tuple[int, bool]:
        """
        Start an analysis unless one is already running for the document.

        Args:
            document_id: Document to analyze.
            mode: BasicMode or EnhancedMode.
            language: Prompt language override.

        Returns:
            (analysis_id, created). created is False when an analysis for the
            document was already processing and its id is returned instead.
        """
        with self._submit_lock:
            latest = self.store.latest_analysis_for_document(document_id)
            if latest is not None and latest['status'] == 'processing':
                logger.info(f"Document {document_id} already has analysis {latest['id']} in progress")
                return latest['id'], False

            record = self.store.create_analysis(
                document_id,
                status='processing',
                progress_stage='chunking',
                progress_detail=MSG_STARTING,
                started_at=utcnow(),
                enhanced=isinstance(mode, EnhancedMode),
            )

        analysis_id = record['id']
        future = self._executor.submit(
            self.orchestrator.run_analysis, document_id, mode, analysis_id, language
        )
        future.add_done_callback(lambda f: self._log_outcome(analysis_id, f))
        logger.info(f"Queued analysis {analysis_id} for document {document_id}")
        return analysis_id, True

    @staticmethod
    def _log_outcome(analysis_id: int, future: Future) -> None:
        # The orchestrator has already recorded the failure on the job
        error = future.exception()
        if error is not None:
            logger.warning(f"Background analysis {analysis_id} ended with {type(error).__name__}: {error}")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
