"""
Analysis orchestrator: runs one analysis job from document text to stored findings.

Job lifecycle:
    processing (chunking -> analyzing -> summarizing -> saving) -> completed | failed

The pipeline runs on its own thread and races a wall-clock timeout. Every write
for a job goes through a _JobRecorder; once the job is terminal the recorder is
closed, so an abandoned pipeline thread can never persist late results.
"""
import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, List, Optional, Sequence

from contract_guardian.errors import AnalysisTimeoutError, AppError, DatabaseError, NotFoundError, ValidationError
from contract_guardian.models import (
    AnalysisContext,
    AnalysisMode,
    AnalysisProgress,
    BasicMode,
    EnhancedMode,
    Finding,
    ValidatedMetadata,
)
from contract_guardian.services.chunk_analyzer import ChunkAnalyzer
from contract_guardian.services.chunker import chunk_contract
from contract_guardian.services.deduplicate import deduplicate_findings, sort_findings
from contract_guardian.services.summarizer import Summarizer
from contract_guardian.services.tokens import CHUNK_CONFIG
from contract_guardian.store import Document, InMemoryStore, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300

MSG_STARTING = 'Avvio analisi...'
MSG_CHUNKING = 'Divisione documento...'
MSG_SUMMARIZING = 'Generazione riepilogo...'
MSG_SAVING = 'Salvataggio risultati...'
MSG_COMPLETED = 'Analisi completata!'
MSG_UNKNOWN_ERROR = 'Errore sconosciuto'


def _error_message(error: BaseException) -> str:
    if isinstance(error, AppError):
        return error.message
    return str(error) or MSG_UNKNOWN_ERROR


def count_findings(findings: Sequence[Finding]) -> Dict[str, int]:
    """Tally improvements by priority, plus strengths."""
    improvements = [f for f in findings if f.type == 'improvement']
    return {
        'total_findings': len(findings),
        'importante_count': sum(1 for f in improvements if f.priority == 'importante'),
        'consigliato_count': sum(1 for f in improvements if f.priority == 'consigliato'),
        'suggerimento_count': sum(1 for f in improvements if f.priority == 'suggerimento'),
        'strength_count': sum(1 for f in findings if f.type == 'strength'),
    }


def finding_rows(findings: Sequence[Finding]) -> List[Dict[str, Any]]:
    """
    Convert sorted findings into storable rows.

    rank and the legacy chunk_index both hold the position in canonical order;
    source_chunk_index is the chunk the finding came from.
    """
    rows = []
    for rank, finding in enumerate(findings):
        rows.append({
            'title': finding.title,
            'type': finding.type,
            'clause_text': finding.clause_text,
            'policy_name': finding.policy_name,
            'priority': finding.priority,
            'severity': finding.priority or 'suggerimento',
            'explanation': finding.explanation,
            'redline_suggestion': finding.redline_suggestion,
            'rank': rank,
            'chunk_index': rank,
            'source_chunk_index': finding.source_chunk_index,
            'actor': getattr(finding, 'actor', None),
            'norm_ids': list(getattr(finding, 'norm_ids', None) or []),
        })
    return rows


class _JobRecorder:
    """Serializes writes for one job and refuses them once the job is terminal."""

    def __init__(self, store: InMemoryStore, analysis_id: int, document_id: int):
        self.store = store
        self.analysis_id = analysis_id
        self.document_id = document_id
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def update(self, **fields) -> bool:
        with self._lock:
            if self._closed:
                logger.debug(f"Analysis {self.analysis_id}: dropped late update {sorted(fields)}")
                return False
            self.store.update_analysis(self.analysis_id, **fields)
            return True

    def set_document_status(self, status: str) -> bool:
        with self._lock:
            if self._closed:
                return False
            self.store.update_document(self.document_id, analysis_status=status)
            return True

    def complete(self, fields: Dict[str, Any], rows: List[Dict[str, Any]]) -> bool:
        with self._lock:
            if self._closed:
                logger.warning(f"Analysis {self.analysis_id}: results discarded, job already terminal")
                return False
            # Findings first: a failed insert must leave the job non-terminal
            try:
                if rows:
                    self.store.insert_findings(self.analysis_id, rows)
                self.store.update_analysis(
                    self.analysis_id,
                    status='completed',
                    completed_at=utcnow(),
                    **fields
                )
            except Exception as e:
                # A job that is not completed owns no finding rows
                removed = self.store.delete_findings(self.analysis_id)
                logger.error(f"Analysis {self.analysis_id}: saving failed, discarded {removed} finding rows")
                if isinstance(e, DatabaseError):
                    raise
                raise DatabaseError() from e
            self._closed = True
            self._update_document_quietly('completed')
            return True

    def fail(self, message: str) -> bool:
        with self._lock:
            if self._closed:
                return False
            self.store.update_analysis(
                self.analysis_id,
                status='failed',
                completed_at=utcnow(),
                error_message=message
            )
            self._closed = True
            self._update_document_quietly('failed')
            return True

    def _update_document_quietly(self, status: str) -> None:
        # The document may have been deleted while the job was running
        try:
            self.store.update_document(self.document_id, analysis_status=status)
        except NotFoundError:
            logger.warning(f"Analysis {self.analysis_id}: document {self.document_id} no longer exists")


class AnalysisOrchestrator:
    """
    Drives one analysis job through chunking, analysis, summary and persistence.

    Args:
        store: Record store for documents, policies, analyses and findings.
        chunk_analyzer: Per-chunk structured extraction.
        summarizer: Executive summary generation.
        timeout: Wall-clock limit in seconds for the whole pipeline (None disables it).
        on_progress: Optional observer called with AnalysisProgress events.
        max_chunk_tokens: Token budget per chunk.
    """

    def __init__(
        self,
        store: InMemoryStore,
        chunk_analyzer: ChunkAnalyzer,
        summarizer: Summarizer,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        on_progress: Optional[Callable[[AnalysisProgress], None]] = None,
        max_chunk_tokens: int = CHUNK_CONFIG['max_chunk_tokens']
    ):
        self.store = store
        self.chunk_analyzer = chunk_analyzer
        self.summarizer = summarizer
        self.timeout = timeout
        self.on_progress = on_progress
        self.max_chunk_tokens = max_chunk_tokens

    def run_basic_analysis(
        self,
        document_id: int,
        analysis_id: Optional[int] = None,
        viewpoint: str = 'cliente',
        language: Optional[str] = None
    ) -> int:
        return self.run_analysis(document_id, BasicMode(viewpoint), analysis_id, language)

    def run_enhanced_analysis(
        self,
        document_id: int,
        analysis_id: Optional[int] = None,
        metadata: Optional[ValidatedMetadata] = None,
        language: Optional[str] = None
    ) -> int:
        return self.run_analysis(document_id, EnhancedMode(metadata), analysis_id, language)

    def run_analysis(
        self,
        document_id: int,
        mode: AnalysisMode,
        analysis_id: Optional[int] = None,
        language: Optional[str] = None
    ) -> int:
        """
        Run a full analysis job.

        Args:
            document_id: Document to analyze.
            mode: BasicMode(viewpoint) or EnhancedMode(metadata).
            analysis_id: Existing job record to reuse; created when omitted.
            language: Prompt language; defaults to the document language.

        Returns:
            The analysis id. The job is completed when this returns.

        Raises:
            Exception: Whatever made the pipeline fail (AnalysisTimeoutError on
                timeout), after the job has been marked failed.
        """
        enhanced = isinstance(mode, EnhancedMode)
        processing_fields = {
            'status': 'processing',
            'started_at': utcnow(),
            'enhanced': enhanced,
        }
        if analysis_id is None:
            analysis_id = self.store.create_analysis(document_id, **processing_fields)['id']
        else:
            self.store.update_analysis(analysis_id, **processing_fields)

        recorder = _JobRecorder(self.store, analysis_id, document_id)
        logger.info(f"Analysis {analysis_id} started for document {document_id} (enhanced={enhanced})")

        try:
            document = self.store.get_document(document_id)
            if document is None:
                raise NotFoundError('Contratto non trovato')
            policies = self.store.list_policies()
            context = AnalysisContext(
                language=language or document.language or 'it',
                mode=self._resolve_mode(mode, document),
            )
            recorder.update(language=context.language)
            recorder.set_document_status('processing')

            self._race_pipeline(recorder, document, policies, context)

        except Exception as e:
            timed_out = isinstance(e, AnalysisTimeoutError)
            if recorder.fail(_error_message(e)):
                if timed_out:
                    logger.error(f"Analysis {analysis_id} timed out after {self.timeout}s")
                else:
                    logger.exception(f"Analysis {analysis_id} failed: {e}")
                self._notify(recorder, AnalysisProgress('failed', 0, 0, _error_message(e)), force=True)
                raise
            if not timed_out:
                raise
            # The pipeline finished just as the timeout fired
            logger.info(f"Analysis {analysis_id} completed at the timeout boundary")

        return analysis_id

    def _resolve_mode(self, mode: AnalysisMode, document: Document) -> AnalysisMode:
        if not isinstance(mode, EnhancedMode) or mode.metadata is not None:
            return mode
        if not document.has_validated_metadata:
            raise ValidationError('Metadati del contratto non validati: impossibile eseguire l\'analisi avanzata')
        return EnhancedMode(ValidatedMetadata(
            party_a=document.party_a,
            party_b=document.party_b,
            contract_type=document.contract_type,
            jurisdiction=document.jurisdiction or 'unknown',
        ))

    def _race_pipeline(
        self,
        recorder: _JobRecorder,
        document: Document,
        policies: Sequence,
        context: AnalysisContext
    ) -> None:
        """Run the pipeline on a dedicated thread and wait at most self.timeout."""
        future: Future = Future()

        def target():
            try:
                self._pipeline(recorder, document, policies, context)
            except BaseException as e:
                future.set_exception(e)
            else:
                future.set_result(None)

        thread = threading.Thread(
            target=target,
            name=f'analysis-{recorder.analysis_id}',
            daemon=True
        )
        thread.start()

        try:
            future.result(timeout=self.timeout)
        except FutureTimeoutError:
            raise AnalysisTimeoutError() from None

    def _pipeline(
        self,
        recorder: _JobRecorder,
        document: Document,
        policies: Sequence,
        context: AnalysisContext
    ) -> None:
        analysis_id = recorder.analysis_id

        # 1. Chunking
        recorder.update(progress_stage='chunking', progress_detail=MSG_CHUNKING)
        self._notify(recorder, AnalysisProgress('chunking', 0, 0, MSG_CHUNKING))

        chunking = chunk_contract(document.text, self.max_chunk_tokens)
        total_chunks = chunking.total_chunks
        recorder.update(total_chunks=total_chunks, current_chunk=0)
        logger.info(f"Analysis {analysis_id}: {total_chunks} chunks")

        # 2. Sequential chunk analysis
        first_detail = f"Analisi chunk 1/{total_chunks}..."
        recorder.update(progress_stage='analyzing', progress_detail=first_detail)
        self._notify(recorder, AnalysisProgress('analyzing', 0, total_chunks, first_detail))

        all_findings: List[Finding] = []
        for chunk in chunking.chunks:
            if recorder.closed:
                logger.info(f"Analysis {analysis_id}: job closed, abandoning pipeline")
                return
            result = self.chunk_analyzer.analyze_chunk(chunk.text, policies, chunk.index, context)
            all_findings.extend(result.findings)

            done = chunk.index + 1
            detail = f"Analisi chunk {done}/{total_chunks} completata"
            recorder.update(current_chunk=done, progress_detail=detail)
            self._notify(recorder, AnalysisProgress('analyzing', done, total_chunks, detail))

        # 3. Dedup, sort, summary
        if recorder.closed:
            return
        recorder.update(progress_stage='summarizing', progress_detail=MSG_SUMMARIZING)
        self._notify(recorder, AnalysisProgress('summarizing', total_chunks, total_chunks, MSG_SUMMARIZING))

        findings = sort_findings(deduplicate_findings(all_findings))
        summary = self.summarizer.generate_executive_summary(findings, document.filename, context)

        # 4. Persist
        recorder.update(progress_stage='saving', progress_detail=MSG_SAVING)
        self._notify(recorder, AnalysisProgress('saving', total_chunks, total_chunks, MSG_SAVING))

        completed = recorder.complete(
            {
                'progress_detail': MSG_COMPLETED,
                'executive_summary': summary.summary,
                'overall_assessment': summary.overall_assessment,
                'recommendation': summary.recommendation,
                **count_findings(findings),
            },
            finding_rows(findings),
        )
        if completed:
            logger.info(f"Analysis {analysis_id} completed: {len(findings)} findings")
            self._notify(
                recorder,
                AnalysisProgress('completed', total_chunks, total_chunks, MSG_COMPLETED),
                force=True
            )

    def _notify(self, recorder: _JobRecorder, progress: AnalysisProgress, force: bool = False) -> None:
        """Send a progress event; observer failures are logged and swallowed."""
        if self.on_progress is None or (recorder.closed and not force):
            return
        try:
            self.on_progress(progress)
        except Exception:
            logger.exception(f"Progress observer failed for analysis {recorder.analysis_id}")
