"""
Data models for contract analysis.

The pydantic models double as the structured-output schemas sent to the model:
field names travel in camelCase on the wire (clauseText, normIds, ...) and are
snake_case in Python. Plain dataclasses describe the in-process analysis
context and progress events.
"""
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel

Priority = Literal['importante', 'consigliato', 'suggerimento']
FindingType = Literal['strength', 'improvement']
Actor = Literal['partyA', 'partyB', 'general']
Assessment = Literal['positivo', 'equilibrato', 'da_rivedere']
Confidence = Literal['high', 'medium', 'low']
Jurisdiction = Literal['italia', 'eu', 'usa', 'unknown']
Viewpoint = Literal['cliente', 'fornitore']
Language = Literal['it', 'en']

# Improvements persisted without a priority fall back to the mildest level
DEFAULT_PRIORITY = 'suggerimento'

# Canonical severity order; lower sorts first
PRIORITY_ORDER = {'importante': 0, 'consigliato': 1, 'suggerimento': 2}


class SchemaModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Finding(SchemaModel):
    """
    A single strength or improvement extracted from a chunk.

    Strengths never carry a priority or a redline; improvements always carry a
    priority (a missing one is normalised to 'suggerimento').
    """
    title: str = Field(description='Titolo breve e diretto, massimo 10 parole')
    clause_text: str = Field(description='Testo esatto della clausola analizzata')
    type: FindingType = Field(description='"strength" per punti di forza, "improvement" per aree di miglioramento')
    policy_name: str = Field(description='Nome della policy di riferimento')
    priority: Optional[Priority] = Field(default=None, description='Priorità per miglioramenti, null per punti di forza')
    explanation: str = Field(description='Spiegazione concisa e azionabile, max 2 frasi')
    redline_suggestion: Optional[str] = Field(
        default=None,
        description='Linguaggio alternativo suggerito, solo per miglioramenti'
    )

    _source_chunk_index: Optional[int] = PrivateAttr(default=None)

    @model_validator(mode='after')
    def _normalise_type_fields(self):
        if self.type == 'strength':
            self.priority = None
            self.redline_suggestion = None
        elif self.priority is None:
            self.priority = DEFAULT_PRIORITY
        return self

    @property
    def source_chunk_index(self) -> Optional[int]:
        """Index of the chunk this finding was extracted from."""
        return self._source_chunk_index

    def with_source(self, chunk_index: int) -> 'Finding':
        self._source_chunk_index = chunk_index
        return self

    @property
    def is_strength(self) -> bool:
        return self.type == 'strength'


class EnhancedFinding(Finding):
    """Finding tagged with the affected party and the legal norms it relates to."""
    actor: Actor = Field(
        default='general',
        description='"partyA" se il rischio riguarda la Parte A, "partyB" per la Parte B, "general" per entrambe'
    )
    norm_ids: List[str] = Field(
        default_factory=list,
        description='ID delle norme legali pertinenti dalla lista fornita, array vuoto se nessuna'
    )


class ChunkAnalysis(SchemaModel):
    findings: List[Finding] = Field(default_factory=list)
    has_more_content: bool = Field(default=False, description='True se il chunk sembra tagliato a metà frase')


class EnhancedChunkAnalysis(SchemaModel):
    findings: List[EnhancedFinding] = Field(default_factory=list)
    has_more_content: bool = Field(default=False, description='True se il chunk sembra tagliato a metà frase')


class ExecutiveSummary(SchemaModel):
    summary: str = Field(description='Riepilogo esecutivo in 2-3 frasi')
    overall_assessment: Assessment = Field(description='Valutazione complessiva del contratto')
    recommendation: str = Field(description='Raccomandazione principale concisa')


class PartyExtraction(SchemaModel):
    name: Optional[str] = Field(default=None, description='Nome della parte contrattuale (null se non trovato)')
    confidence: Confidence
    reasoning: str


class TypeExtraction(SchemaModel):
    type_id: str = Field(description='ID del tipo dalla tassonomia (es. "nda", "service_agreement")')
    confidence: Confidence
    reasoning: str


class JurisdictionExtraction(SchemaModel):
    jurisdiction: Jurisdiction
    confidence: Confidence
    reasoning: str


class PreAnalysis(SchemaModel):
    """Metadata proposed by the model before the user validates it."""
    party_a: PartyExtraction
    party_b: PartyExtraction
    contract_type: TypeExtraction
    jurisdiction: JurisdictionExtraction

    def confidences(self) -> List[str]:
        return [
            self.party_a.confidence,
            self.party_b.confidence,
            self.contract_type.confidence,
            self.jurisdiction.confidence,
        ]


class ValidatedMetadata(SchemaModel):
    """Contract metadata confirmed by the user; drives enhanced analysis."""
    party_a: Optional[str] = None
    party_b: Optional[str] = None
    contract_type: str = Field(min_length=1)
    jurisdiction: Jurisdiction = 'unknown'


@dataclass(frozen=True)
class BasicMode:
    """Analysis from one side of the contract."""
    viewpoint: Viewpoint = 'cliente'


@dataclass(frozen=True)
class EnhancedMode:
    """
    Two-party analysis with actor tagging and legal-norm citations.

    Without explicit metadata the document's validated metadata is used.
    """
    metadata: Optional[ValidatedMetadata] = None


AnalysisMode = Union[BasicMode, EnhancedMode]


@dataclass(frozen=True)
class AnalysisContext:
    language: Language = 'it'
    mode: AnalysisMode = field(default_factory=BasicMode)

    @property
    def enhanced(self) -> bool:
        return isinstance(self.mode, EnhancedMode)


@dataclass
class AnalysisProgress:
    """Event sent to the progress observer after each stage and chunk."""
    status: str
    current_chunk: int
    total_chunks: int
    message: str
