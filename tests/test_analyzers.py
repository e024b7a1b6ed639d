"""
Tests for the model-backed steps: chunk analysis, executive summary and
metadata pre-analysis.
"""
import pytest

from contract_guardian.errors import AIError, AIErrorCode
from contract_guardian.legal_norms import LegalNorm, LegalNormIndex
from contract_guardian.models import (
    AnalysisContext,
    BasicMode,
    ChunkAnalysis,
    EnhancedChunkAnalysis,
    EnhancedMode,
    ExecutiveSummary,
    PreAnalysis,
    ValidatedMetadata,
)
from contract_guardian.services.chunk_analyzer import MAX_PROMPT_NORMS, ChunkAnalyzer
from contract_guardian.services.pre_analyzer import (
    MetadataExtractor,
    calculate_overall_confidence,
    extract_metadata_excerpts,
)
from contract_guardian.services.summarizer import Summarizer
from contract_guardian.taxonomies import CONTRACT_TYPE_IDS

CHUNK_RESPONSE = {
    'findings': [
        {
            'title': 'Penale eccessiva',
            'clauseText': 'In caso di ritardo è dovuta una penale del 30%.',
            'type': 'improvement',
            'policyName': 'Soglia penale massima',
            'priority': 'importante',
            'explanation': 'La penale supera la soglia del 10%.',
            'redlineSuggestion': 'Ridurre la penale al 10%.',
        },
        {
            'title': 'Pagamento a 30 giorni',
            'clauseText': 'Il pagamento avverrà entro 30 giorni.',
            'type': 'strength',
            'policyName': 'Termini di pagamento standard',
            'explanation': 'Conforme alla policy.',
        },
    ],
}

NDA_METADATA = ValidatedMetadata(
    party_a='Acme S.r.l.',
    party_b='Beta S.p.A.',
    contract_type='nda',
    jurisdiction='italia',
)


def _pre_analysis(**confidences):
    levels = {'party_a': 'high', 'party_b': 'high', 'contract_type': 'high', 'jurisdiction': 'high'}
    levels.update(confidences)
    return PreAnalysis.model_validate({
        'partyA': {'name': 'Acme S.r.l.', 'confidence': levels['party_a'], 'reasoning': 'intestazione'},
        'partyB': {'name': 'Beta S.p.A.', 'confidence': levels['party_b'], 'reasoning': 'intestazione'},
        'contractType': {'typeId': 'nda', 'confidence': levels['contract_type'], 'reasoning': 'titolo'},
        'jurisdiction': {'jurisdiction': 'italia', 'confidence': levels['jurisdiction'], 'reasoning': 'foro'},
    })


class TestChunkAnalyzer:
    """Tests for ChunkAnalyzer.analyze_chunk"""

    @pytest.fixture
    def analyzer(self, fake_llm, norm_index, sleeps):
        return ChunkAnalyzer(fake_llm, norm_index, base_delay=1.0, sleep=sleeps.append)

    def test_basic_analysis(self, analyzer, fake_llm, store):
        fake_llm.queue(CHUNK_RESPONSE)

        result = analyzer.analyze_chunk('Testo del chunk', store.list_policies(), 3, AnalysisContext())

        assert isinstance(result, ChunkAnalysis)
        assert [f.title for f in result.findings] == ['Penale eccessiva', 'Pagamento a 30 giorni']
        assert all(f.source_chunk_index == 3 for f in result.findings)

        system_prompt, user_prompt, schema = fake_llm.calls[0]
        assert schema is ChunkAnalysis
        assert '**Soglia penale massima**' in system_prompt
        assert 'cliente (chi riceve il servizio/prodotto)' in system_prompt
        assert 'chunk 4' in user_prompt
        assert 'Testo del chunk' in user_prompt

    def test_supplier_viewpoint(self, analyzer, fake_llm, store):
        context = AnalysisContext(mode=BasicMode('fornitore'))

        analyzer.analyze_chunk('Testo', store.list_policies(), 0, context)

        system_prompt, user_prompt, _ = fake_llm.calls[0]
        assert 'fornitore (chi eroga il servizio/prodotto)' in system_prompt
        assert 'dal punto di vista del fornitore' in user_prompt

    def test_english_prompts(self, analyzer, fake_llm, store):
        analyzer.analyze_chunk('Text', store.list_policies(), 0, AnalysisContext(language='en'))

        system_prompt, _, _ = fake_llm.calls[0]
        assert 'COMPANY POLICIES:' in system_prompt

    def test_enhanced_analysis_cites_norms(self, analyzer, fake_llm, store):
        context = AnalysisContext(mode=EnhancedMode(NDA_METADATA))

        result = analyzer.analyze_chunk('Testo NDA', store.list_policies(), 0, context)

        assert isinstance(result, EnhancedChunkAnalysis)
        system_prompt, user_prompt, schema = fake_llm.calls[0]
        assert schema is EnhancedChunkAnalysis
        assert 'NORME LEGALI APPLICABILI:' in system_prompt
        assert '[cc-1382]' in system_prompt
        assert '[gdpr-6]' not in system_prompt
        assert 'Party A (Acme S.r.l.)' in system_prompt
        assert 'rischi per Acme S.r.l. e per Beta S.p.A.' in user_prompt

    def test_enhanced_unknown_jurisdiction_has_no_norms(self, analyzer, fake_llm, store):
        metadata = ValidatedMetadata(contract_type='nda', jurisdiction='unknown')

        analyzer.analyze_chunk('Testo', store.list_policies(), 0, AnalysisContext(mode=EnhancedMode(metadata)))

        system_prompt, user_prompt, _ = fake_llm.calls[0]
        assert 'NORME LEGALI APPLICABILI' not in system_prompt
        assert 'Party A (Prima parte)' in system_prompt
        assert 'rischi per Parte A e per Parte B' in user_prompt

    def test_relevant_norms_are_capped(self, fake_llm):
        norms = [
            LegalNorm(f'n-{i}', f'Norma {i}', f'Art. {i}', 'test', '', 'italia', {'nda': 0.7 + i / 100})
            for i in range(15)
        ]
        analyzer = ChunkAnalyzer(fake_llm, LegalNormIndex({'italia': norms}))

        selected = analyzer.relevant_norms(NDA_METADATA)

        assert len(selected) == MAX_PROMPT_NORMS
        assert selected[0].norm_id == 'n-14'

    def test_retries_invalid_output(self, analyzer, fake_llm, store, sleeps):
        fake_llm.queue(AIError(AIErrorCode.PARSE_ERROR, retryable=True), CHUNK_RESPONSE)

        result = analyzer.analyze_chunk('Testo', store.list_policies(), 0, AnalysisContext())

        assert len(result.findings) == 2
        assert len(fake_llm.calls) == 2
        assert sleeps == [1.0]

    def test_gives_up_after_max_retries(self, analyzer, fake_llm, store):
        fake_llm.queue(*[AIError(AIErrorCode.RATE_LIMIT, retryable=True)] * 3)

        with pytest.raises(AIError) as exc_info:
            analyzer.analyze_chunk('Testo', store.list_policies(), 0, AnalysisContext())

        assert exc_info.value.code is AIErrorCode.MAX_RETRIES_EXCEEDED


class TestSummarizer:
    """Tests for Summarizer.generate_executive_summary"""

    @pytest.fixture
    def summarizer(self, fake_llm, sleeps):
        return Summarizer(fake_llm, sleep=sleeps.append)

    def test_basic_summary(self, summarizer, fake_llm, make_finding):
        findings = [
            make_finding('Penale eccessiva', priority='importante'),
            make_finding('Rinnovo tacito', priority='consigliato'),
            make_finding('Pagamento a 30 giorni', type='strength', priority=None),
        ]

        summary = summarizer.generate_executive_summary(findings, 'contratto.pdf', AnalysisContext())

        assert isinstance(summary, ExecutiveSummary)
        assert summary.overall_assessment == 'equilibrato'
        system_prompt, user_prompt, schema = fake_llm.calls[0]
        assert schema is ExecutiveSummary
        assert 'dal punto di vista del cliente' in system_prompt
        assert '"contratto.pdf"' in user_prompt
        assert 'PUNTI DI FORZA (1):' in user_prompt
        assert 'AREE DI MIGLIORAMENTO (2):' in user_prompt
        assert '- [importante] Penale eccessiva: ' in user_prompt
        assert '- Pagamento a 30 giorni: ' in user_prompt
        assert '- Importanti: 1' in user_prompt
        assert '- Consigliati: 1' in user_prompt

    def test_empty_findings(self, summarizer, fake_llm):
        summarizer.generate_executive_summary([], 'vuoto.pdf', AnalysisContext())

        _, user_prompt, _ = fake_llm.calls[0]
        assert 'Nessun punto di forza specifico identificato.' in user_prompt
        assert 'Nessuna area di miglioramento identificata.' in user_prompt

    def test_explanations_are_truncated(self, summarizer, fake_llm, make_finding):
        finding = make_finding('Lunga', explanation='x' * 200)

        summarizer.generate_executive_summary([finding], 'c.pdf', AnalysisContext())

        _, user_prompt, _ = fake_llm.calls[0]
        assert f"- [importante] Lunga: {'x' * 80}..." in user_prompt
        assert 'x' * 81 not in user_prompt

    def test_enhanced_summary_names_parties(self, summarizer, fake_llm, make_finding):
        context = AnalysisContext(mode=EnhancedMode(ValidatedMetadata(contract_type='nda')))

        summarizer.generate_executive_summary([make_finding('Penale')], 'nda.pdf', context)

        system_prompt, user_prompt, _ = fake_llm.calls[0]
        assert 'tra Prima parte e Seconda parte' in system_prompt
        assert '- [importante] (general) Penale: ' in user_prompt


class TestPreAnalysis:
    """Tests for metadata excerpts and extraction"""

    def test_short_text_sent_whole(self):
        text = 'Contratto tra Acme e Beta.'
        assert extract_metadata_excerpts(text) == text

    def test_long_text_excerpts(self):
        text = 'H' * 1500 + 'M' * 7000 + 'F' * 1500

        excerpts = extract_metadata_excerpts(text)

        assert excerpts.startswith('[HEADER - First 1500 chars]\n' + 'H' * 1500)
        assert '[BODY SAMPLE - 500 chars from midpoint]\n' + 'M' * 500 + '\n\n' in excerpts
        assert excerpts.endswith('[FOOTER - Last 1500 chars]\n' + 'F' * 1500)

    @pytest.mark.parametrize('confidences, expected', [
        ({}, 'high'),
        ({'party_b': 'medium'}, 'high'),
        ({'party_b': 'medium', 'jurisdiction': 'medium'}, 'medium'),
        ({'contract_type': 'low'}, 'low'),
    ])
    def test_overall_confidence(self, confidences, expected):
        assert calculate_overall_confidence(_pre_analysis(**confidences)) == expected

    def test_extract_contract_metadata(self, fake_llm, sleeps):
        fake_llm.queue(_pre_analysis())
        extractor = MetadataExtractor(fake_llm, sleep=sleeps.append)

        result = extractor.extract_contract_metadata('Accordo di riservatezza tra Acme e Beta', 'it')

        assert result.contract_type.type_id == 'nda'
        system_prompt, user_prompt, schema = fake_llm.calls[0]
        assert schema is PreAnalysis
        for type_id in CONTRACT_TYPE_IDS:
            assert f'- "{type_id}"' in system_prompt
        assert 'Accordo di riservatezza tra Acme e Beta' in user_prompt

    def test_refusal_is_not_retried(self, fake_llm, sleeps):
        fake_llm.queue(AIError(AIErrorCode.INVALID_REQUEST))
        extractor = MetadataExtractor(fake_llm, sleep=sleeps.append)

        with pytest.raises(AIError) as exc_info:
            extractor.extract_contract_metadata('Testo')

        assert exc_info.value.code is AIErrorCode.INVALID_REQUEST
        assert len(fake_llm.calls) == 1
