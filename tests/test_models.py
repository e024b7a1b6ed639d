"""
Tests for the finding and metadata models.
"""
import pytest
from pydantic import ValidationError

from contract_guardian.models import (
    AnalysisContext,
    BasicMode,
    EnhancedChunkAnalysis,
    EnhancedMode,
    Finding,
    PreAnalysis,
    ValidatedMetadata,
)


class TestFinding:

    def test_parses_camel_case_payload(self):
        finding = Finding.model_validate({
            'title': 'Penale eccessiva',
            'clauseText': 'La penale è pari al 50% del corrispettivo.',
            'type': 'improvement',
            'policyName': 'Penali e Sanzioni',
            'priority': 'importante',
            'explanation': 'La penale supera il 10%.',
            'redlineSuggestion': 'Ridurre la penale al 10%.',
        })

        assert finding.clause_text.startswith('La penale')
        assert finding.policy_name == 'Penali e Sanzioni'
        assert finding.redline_suggestion == 'Ridurre la penale al 10%.'

    def test_strength_drops_priority_and_redline(self):
        finding = Finding(
            title='Pagamento a 30 giorni',
            clause_text='Pagamento entro 30 giorni.',
            type='strength',
            policy_name='Termini di Pagamento',
            priority='importante',
            explanation='In linea con la policy.',
            redline_suggestion='Nessuna',
        )

        assert finding.priority is None
        assert finding.redline_suggestion is None
        assert finding.is_strength

    def test_improvement_defaults_to_suggerimento(self):
        finding = Finding(
            title='Foro non indicato',
            clause_text='Le controversie saranno risolte amichevolmente.',
            type='improvement',
            policy_name='Foro Competente',
            explanation='Manca il foro competente.',
        )

        assert finding.priority == 'suggerimento'

    def test_rejects_unknown_priority(self):
        with pytest.raises(ValidationError):
            Finding(
                title='x', clause_text='x', type='improvement', policy_name='x',
                priority='critico', explanation='x'
            )

    def test_source_chunk_index_is_not_serialized(self, make_finding):
        finding = make_finding().with_source(2)

        assert finding.source_chunk_index == 2
        assert 'source_chunk_index' not in finding.model_dump()

    def test_enhanced_finding_defaults(self):
        result = EnhancedChunkAnalysis.model_validate({'findings': [{
            'title': 'Riservatezza',
            'clauseText': 'Obbligo di riservatezza di 5 anni.',
            'type': 'strength',
            'policyName': 'Riservatezza',
            'explanation': 'Durata adeguata.',
        }]})

        finding = result.findings[0]
        assert finding.actor == 'general'
        assert finding.norm_ids == []
        assert result.has_more_content is False


class TestMetadata:

    def test_validated_metadata_aliases(self):
        metadata = ValidatedMetadata.model_validate({
            'partyA': 'Acme S.r.l.',
            'partyB': 'Beta S.p.A.',
            'contractType': 'nda',
            'jurisdiction': 'italia',
        })

        assert metadata.party_a == 'Acme S.r.l.'
        assert metadata.contract_type == 'nda'

    def test_validated_metadata_defaults_jurisdiction(self):
        assert ValidatedMetadata(contract_type='nda').jurisdiction == 'unknown'

    @pytest.mark.parametrize('payload', [
        {'contractType': ''},
        {'contractType': 'nda', 'jurisdiction': 'francia'},
        {},
    ])
    def test_validated_metadata_rejects(self, payload):
        with pytest.raises(ValidationError):
            ValidatedMetadata.model_validate(payload)

    def test_pre_analysis_confidences(self):
        pre = PreAnalysis.model_validate({
            'partyA': {'name': 'Acme', 'confidence': 'high', 'reasoning': 'intestazione'},
            'partyB': {'name': None, 'confidence': 'low', 'reasoning': 'assente'},
            'contractType': {'typeId': 'nda', 'confidence': 'medium', 'reasoning': 'titolo'},
            'jurisdiction': {'jurisdiction': 'italia', 'confidence': 'high', 'reasoning': 'foro'},
        })

        assert pre.confidences() == ['high', 'low', 'medium', 'high']
        assert pre.party_b.name is None


class TestAnalysisContext:

    def test_defaults(self):
        context = AnalysisContext()

        assert context.language == 'it'
        assert context.mode == BasicMode('cliente')
        assert context.enhanced is False

    def test_enhanced(self):
        context = AnalysisContext(language='en', mode=EnhancedMode(ValidatedMetadata(contract_type='nda')))

        assert context.enhanced is True
