"""
Shared fixtures for the Contract Guardian tests.

No test reaches the network: the model is replaced by FakeLLMClient, which
returns scripted responses and records every call.
"""
import threading

import pytest
from pydantic import BaseModel

from contract_guardian.config import TestingConfig
from contract_guardian.legal_norms import LegalNormIndex
from contract_guardian.models import ChunkAnalysis, EnhancedChunkAnalysis, ExecutiveSummary, Finding
from contract_guardian.services.llm_client import StructuredLLMClient
from contract_guardian.store import InMemoryStore

DEFAULT_SUMMARY = {
    'summary': 'Contratto complessivamente equilibrato.',
    'overallAssessment': 'equilibrato',
    'recommendation': 'Negoziare la clausola di recesso.',
}


class FakeLLMClient(StructuredLLMClient):
    """
    Scripted stand-in for the model.

    Each queued item is consumed in order: an exception is raised, a model
    instance is returned as-is, a dict is validated against the requested
    schema and a callable is invoked with (system_prompt, user_prompt, schema).
    Once the queue is empty, chunk calls return no findings and summary calls
    return DEFAULT_SUMMARY.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self._lock = threading.Lock()

    def queue(self, *responses):
        self.responses.extend(responses)

    def parse(self, system_prompt, user_prompt, schema):
        with self._lock:
            self.calls.append((system_prompt, user_prompt, schema))
            item = self.responses.pop(0) if self.responses else None

        if callable(item) and not isinstance(item, BaseModel):
            item = item(system_prompt, user_prompt, schema)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, BaseModel):
            return item
        if isinstance(item, dict):
            return schema.model_validate(item)
        if schema in (ChunkAnalysis, EnhancedChunkAnalysis):
            return schema(findings=[])
        if schema is ExecutiveSummary:
            return ExecutiveSummary.model_validate(DEFAULT_SUMMARY)
        raise AssertionError(f"No scripted response for {schema.__name__}")

    def schemas(self):
        return [call[2] for call in self.calls]


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def sleeps():
    """Records retry delays instead of sleeping."""
    return []


@pytest.fixture
def store():
    store = InMemoryStore()
    store.seed_default_policies()
    return store


@pytest.fixture(scope='session')
def norm_index():
    return LegalNormIndex()


@pytest.fixture
def make_finding():
    """Build a Finding with sensible defaults."""
    def factory(title='Penale di recesso eccessiva', type='improvement', priority='importante',
                clause_text=None, **extra):
        data = {
            'title': title,
            'clause_text': clause_text if clause_text is not None else f'Clausola relativa a {title}',
            'type': type,
            'policy_name': 'Termini di Recesso',
            'priority': priority,
            'explanation': f'Spiegazione per {title}.',
            'redline_suggestion': 'Ridurre la penale.' if type == 'improvement' else None,
        }
        data.update(extra)
        return Finding(**data)
    return factory


@pytest.fixture
def app(fake_llm, store):
    """Create the application wired to the fake model."""
    from main import create_app

    app = create_app(TestingConfig, llm_client=fake_llm, store=store)
    yield app
    app.extensions['contract_guardian'].worker.shutdown(wait=True)


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
