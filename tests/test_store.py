"""
Tests for the in-memory record store.
"""
import pytest

from contract_guardian.errors import NotFoundError
from contract_guardian.store import InMemoryStore


class TestDocuments:

    def test_add_and_get(self, store):
        document = store.add_document('nda.pdf', 'Testo', language='en', page_count=2)

        fetched = store.get_document(document.id)
        assert fetched.filename == 'nda.pdf'
        assert fetched.language == 'en'
        assert fetched.analysis_status == 'none'
        assert fetched.has_validated_metadata is False
        assert 'text' not in fetched.to_dict()

    def test_reads_are_copies(self, store):
        document = store.add_document('a.pdf', 'Testo')

        fetched = store.get_document(document.id)
        fetched.party_a = 'Modificato'

        assert store.get_document(document.id).party_a is None

    def test_text_is_immutable(self, store):
        document = store.add_document('a.pdf', 'Testo')

        with pytest.raises(ValueError):
            store.update_document(document.id, text='Altro')

    def test_update_missing_document(self, store):
        with pytest.raises(NotFoundError):
            store.update_document(999, analysis_status='processing')

    def test_delete_cascades(self, store):
        document = store.add_document('a.pdf', 'Testo')
        analysis = store.create_analysis(document.id)
        store.insert_findings(analysis['id'], [{'title': 'x', 'rank': 0}])

        assert store.delete_document(document.id) is True
        assert store.get_document(document.id) is None
        assert store.get_analysis(analysis['id']) is None
        assert store.get_findings(analysis['id']) == []
        assert store.delete_document(document.id) is False


class TestPolicies:

    def test_seed_is_idempotent(self):
        store = InMemoryStore()

        assert store.seed_default_policies() == 8
        assert store.seed_default_policies() == 0
        assert len(store.list_policies()) == 8

    def test_insertion_order(self, store):
        names = [p.name for p in store.list_policies()]

        assert names[0] == 'Soglia penale massima'
        assert names[-1] == 'Auto-rinnovo con opt-out'


class TestAnalyses:

    def test_create_defaults(self, store):
        analysis = store.create_analysis(1, enhanced=True)

        assert analysis['status'] == 'pending'
        assert analysis['enhanced'] is True
        assert analysis['total_findings'] == 0
        assert analysis['language'] == 'it'

    def test_update_missing_analysis(self, store):
        with pytest.raises(NotFoundError):
            store.update_analysis(42, status='failed')

    def test_latest_analysis(self, store):
        first = store.create_analysis(1)
        second = store.create_analysis(1)
        store.create_analysis(2)

        assert [a['id'] for a in store.list_analyses_for_document(1)] == [second['id'], first['id']]
        assert store.latest_analysis_for_document(1)['id'] == second['id']
        assert store.latest_analysis_for_document(3) is None

    def test_findings_in_rank_order(self, store):
        analysis = store.create_analysis(1)
        store.insert_findings(analysis['id'], [
            {'title': 'Secondo', 'rank': 1},
            {'title': 'Primo', 'rank': 0},
        ])

        findings = store.get_findings(analysis['id'])

        assert [f['title'] for f in findings] == ['Primo', 'Secondo']
        assert all(f['analysis_id'] == analysis['id'] for f in findings)

    def test_insert_findings_for_missing_analysis(self, store):
        with pytest.raises(NotFoundError):
            store.insert_findings(999, [{'title': 'x'}])

    def test_terminal_analysis_is_frozen(self, store):
        analysis = store.create_analysis(1, status='processing')
        store.update_analysis(analysis['id'], status='failed', error_message='Errore')

        with pytest.raises(ValueError):
            store.update_analysis(analysis['id'], status='completed')
        assert store.get_analysis(analysis['id'])['status'] == 'failed'

    def test_delete_findings(self, store):
        analysis = store.create_analysis(1)
        store.insert_findings(analysis['id'], [{'title': 'x', 'rank': 0}, {'title': 'y', 'rank': 1}])

        assert store.delete_findings(analysis['id']) == 2
        assert store.get_findings(analysis['id']) == []
        assert store.delete_findings(analysis['id']) == 0
        assert store.delete_findings(999) == 0
