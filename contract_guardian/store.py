"""
Thread-safe in-memory record store for documents, policies, analyses and findings.

Records are plain dicts (documents and policies are dataclasses); every read
returns a copy so callers never mutate stored state without going through
an update method.
"""
import copy
import itertools
import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from contract_guardian.errors import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_POLICIES_FILE = Path(__file__).parent / 'data' / 'policies.json'

TERMINAL_STATUSES = ('completed', 'failed')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """An extracted contract. The text never changes after registration."""
    id: int
    filename: str
    text: str
    language: str = 'it'
    page_count: Optional[int] = None
    extraction_confidence: Optional[float] = None
    party_a: Optional[str] = None
    party_b: Optional[str] = None
    contract_type: Optional[str] = None
    jurisdiction: Optional[str] = None
    metadata_confidence: Optional[str] = None
    metadata_validated_at: Optional[datetime] = None
    analysis_status: str = 'none'
    created_at: datetime = field(default_factory=utcnow)

    @property
    def has_validated_metadata(self) -> bool:
        return self.metadata_validated_at is not None and bool(self.contract_type)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'filename': self.filename,
            'language': self.language,
            'pageCount': self.page_count,
            'extractionConfidence': self.extraction_confidence,
            'partyA': self.party_a,
            'partyB': self.party_b,
            'contractType': self.contract_type,
            'jurisdiction': self.jurisdiction,
            'metadataConfidence': self.metadata_confidence,
            'metadataValidatedAt': self.metadata_validated_at.isoformat() if self.metadata_validated_at else None,
            'analysisStatus': self.analysis_status,
            'createdAt': self.created_at.isoformat(),
        }


@dataclass
class Policy:
    id: int
    name: str
    content: str
    category: Optional[str] = None
    description: Optional[str] = None
    language: str = 'it'


class InMemoryStore:
    """
    Record store guarded by a single re-entrant lock.

    Analyses are created in 'processing' by the caller; once an analysis is
    completed or failed it is never mutated again.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._documents: Dict[int, Document] = {}
        self._policies: Dict[int, Policy] = {}
        self._analyses: Dict[int, Dict[str, Any]] = {}
        self._findings: Dict[int, List[Dict[str, Any]]] = {}
        self._document_ids = itertools.count(1)
        self._policy_ids = itertools.count(1)
        self._analysis_ids = itertools.count(1)
        self._finding_ids = itertools.count(1)

    # Documents

    def add_document(
        self,
        filename: str,
        text: str,
        language: str = 'it',
        page_count: Optional[int] = None,
        extraction_confidence: Optional[float] = None
    ) -> Document:
        with self._lock:
            document = Document(
                id=next(self._document_ids),
                filename=filename,
                text=text,
                language=language,
                page_count=page_count,
                extraction_confidence=extraction_confidence,
            )
            self._documents[document.id] = document
            logger.info(f"Registered document {document.id} ({filename}, {len(text)} chars)")
            return replace(document)

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
            return replace(document) if document else None

    def list_documents(self) -> List[Document]:
        """Documents, newest first."""
        with self._lock:
            documents = [replace(d) for d in self._documents.values()]
        return sorted(documents, key=lambda d: (d.created_at, d.id), reverse=True)

    def update_document(self, document_id: int, **fields) -> Document:
        """Update mutable document fields (metadata and analysis_status)."""
        if 'text' in fields:
            raise ValueError("Document text is immutable")
        with self._lock:
            document = self._documents.get(document_id)
            if document is None:
                raise NotFoundError('Contratto non trovato')
            updated = replace(document, **fields)
            self._documents[document_id] = updated
            return replace(updated)

    def delete_document(self, document_id: int) -> bool:
        """Delete a document together with its analyses and findings."""
        with self._lock:
            if self._documents.pop(document_id, None) is None:
                return False
            for analysis_id in [a['id'] for a in self._analyses.values() if a['document_id'] == document_id]:
                self.delete_analysis(analysis_id)
            logger.info(f"Deleted document {document_id}")
            return True

    # Policies

    def add_policy(
        self,
        name: str,
        content: str,
        category: Optional[str] = None,
        description: Optional[str] = None,
        language: str = 'it'
    ) -> Policy:
        with self._lock:
            policy = Policy(
                id=next(self._policy_ids),
                name=name,
                content=content,
                category=category,
                description=description,
                language=language,
            )
            self._policies[policy.id] = policy
            return policy

    def list_policies(self) -> List[Policy]:
        """Policies in insertion order."""
        with self._lock:
            return list(self._policies.values())

    def seed_default_policies(self, path: Path = DEFAULT_POLICIES_FILE) -> int:
        """
        Load the default policy set unless policies already exist.

        Returns:
            Number of policies inserted.
        """
        with open(path, encoding='utf-8') as f:
            entries = json.load(f)

        with self._lock:
            existing = {p.name for p in self._policies.values()}
            inserted = 0
            for entry in entries:
                if entry['name'] in existing:
                    continue
                self.add_policy(
                    name=entry['name'],
                    content=entry['content'],
                    category=entry.get('category'),
                    description=entry.get('description'),
                    language=entry.get('language', 'it'),
                )
                inserted += 1

        logger.info(f"Seeded {inserted} default policies")
        return inserted

    # Analyses

    def create_analysis(self, document_id: int, **fields) -> Dict[str, Any]:
        with self._lock:
            now = utcnow()
            record = {
                'id': next(self._analysis_ids),
                'document_id': document_id,
                'status': 'pending',
                'progress_stage': None,
                'progress_detail': None,
                'total_chunks': None,
                'current_chunk': None,
                'started_at': None,
                'completed_at': None,
                'error_message': None,
                'executive_summary': None,
                'overall_assessment': None,
                'recommendation': None,
                'total_findings': 0,
                'importante_count': 0,
                'consigliato_count': 0,
                'suggerimento_count': 0,
                'strength_count': 0,
                'enhanced': False,
                'language': 'it',
                'created_at': now,
            }
            record.update(fields)
            self._analyses[record['id']] = record
            self._findings[record['id']] = []
            return dict(record)

    def update_analysis(self, analysis_id: int, **fields) -> Dict[str, Any]:
        with self._lock:
            record = self._analyses.get(analysis_id)
            if record is None:
                raise NotFoundError('Analisi non trovata')
            if record['status'] in TERMINAL_STATUSES:
                raise ValueError(f"Analysis {analysis_id} is {record['status']} and can no longer change")
            record.update(fields)
            return dict(record)

    def get_analysis(self, analysis_id: int) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._analyses.get(analysis_id)
            return dict(record) if record else None

    def delete_analysis(self, analysis_id: int) -> bool:
        """Delete an analysis and its findings."""
        with self._lock:
            self._findings.pop(analysis_id, None)
            return self._analyses.pop(analysis_id, None) is not None

    def list_analyses_for_document(self, document_id: int) -> List[Dict[str, Any]]:
        """Analyses of a document, newest first."""
        with self._lock:
            records = [dict(a) for a in self._analyses.values() if a['document_id'] == document_id]
        return sorted(records, key=lambda a: a['id'], reverse=True)

    def latest_analysis_for_document(self, document_id: int) -> Optional[Dict[str, Any]]:
        analyses = self.list_analyses_for_document(document_id)
        return analyses[0] if analyses else None

    # Findings

    def insert_findings(self, analysis_id: int, rows: Iterable[Dict[str, Any]]) -> int:
        with self._lock:
            if analysis_id not in self._analyses:
                raise NotFoundError('Analisi non trovata')
            stored = self._findings[analysis_id]
            count = 0
            for row in rows:
                stored.append({**copy.deepcopy(row), 'id': next(self._finding_ids), 'analysis_id': analysis_id})
                count += 1
            return count

    def delete_findings(self, analysis_id: int) -> int:
        """Remove every finding row of an analysis; returns how many were removed."""
        with self._lock:
            rows = self._findings.get(analysis_id)
            if not rows:
                return 0
            removed = len(rows)
            rows.clear()
            return removed

    def get_findings(self, analysis_id: int) -> List[Dict[str, Any]]:
        """Finding rows of an analysis in rank order."""
        with self._lock:
            rows = copy.deepcopy(self._findings.get(analysis_id, []))
        return sorted(rows, key=lambda r: r.get('rank', 0))
