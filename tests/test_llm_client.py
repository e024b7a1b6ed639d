"""
Tests for the OpenAI structured client.

The SDK client is replaced with a MagicMock; no request leaves the process.
"""
import json
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from contract_guardian.errors import AIError, AIErrorCode, ErrorKind
from contract_guardian.models import ExecutiveSummary
from contract_guardian.services.llm_client import OpenAIStructuredClient, StructuredLLMClient
from contract_guardian.services.retry import with_retry

SUMMARY_JSON = json.dumps({
    'summary': 'Contratto solido.',
    'overallAssessment': 'positivo',
    'recommendation': 'Firmare.',
})


def _completion(content, finish_reason='stop', refusal=None):
    message = MagicMock()
    message.content = content
    message.refusal = refusal
    choice = MagicMock()
    choice.message = message
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]
    return response


def _http_response(status):
    return httpx.Response(status, request=httpx.Request('POST', 'https://api.openai.com/v1/chat/completions'))


@pytest.fixture
def llm():
    client = OpenAIStructuredClient(api_key='sk-test', model='gpt-4o-mini', temperature=0.3, timeout=30)
    client._client = MagicMock()
    return client


class TestParse:

    def test_returns_validated_model(self, llm):
        llm._client.chat.completions.create.return_value = _completion(SUMMARY_JSON)

        result = llm.parse('Sistema', 'Utente', ExecutiveSummary)

        assert isinstance(result, ExecutiveSummary)
        assert result.overall_assessment == 'positivo'

    def test_request_uses_json_mode_and_schema(self, llm):
        llm._client.chat.completions.create.return_value = _completion(SUMMARY_JSON)

        llm.parse('Sistema', 'Utente', ExecutiveSummary)

        kwargs = llm._client.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == 'gpt-4o-mini'
        assert kwargs['response_format'] == {'type': 'json_object'}
        assert kwargs['temperature'] == 0.3
        system_message, user_message = kwargs['messages']
        assert system_message['content'].startswith('Sistema')
        assert '"overallAssessment"' in system_message['content']
        assert user_message == {'role': 'user', 'content': 'Utente'}

    @pytest.mark.parametrize('content', [None, '', 'non json', '{"summary": "solo questo"}'])
    def test_invalid_output_is_retryable_parse_error(self, llm, content):
        llm._client.chat.completions.create.return_value = _completion(content)

        with pytest.raises(AIError) as exc_info:
            llm.parse('Sistema', 'Utente', ExecutiveSummary)

        assert exc_info.value.code is AIErrorCode.PARSE_ERROR
        assert exc_info.value.retryable is True

    def test_truncated_output(self, llm):
        llm._client.chat.completions.create.return_value = _completion(SUMMARY_JSON, finish_reason='length')

        with pytest.raises(AIError) as exc_info:
            llm.parse('Sistema', 'Utente', ExecutiveSummary)

        assert exc_info.value.code is AIErrorCode.PARSE_ERROR

    def test_refusal(self, llm):
        llm._client.chat.completions.create.return_value = _completion(None, refusal='Non posso aiutarti')

        with pytest.raises(AIError) as exc_info:
            llm.parse('Sistema', 'Utente', ExecutiveSummary)

        assert exc_info.value.code is AIErrorCode.INVALID_REQUEST
        assert exc_info.value.retryable is False

    def test_missing_api_key(self):
        client = OpenAIStructuredClient(api_key='sk-test')
        client.api_key = None

        with pytest.raises(ValueError):
            client.parse('Sistema', 'Utente', ExecutiveSummary)


class TestInterface:

    def test_parse_must_be_implemented(self):
        with pytest.raises(TypeError):
            StructuredLLMClient()

        class Incomplete(StructuredLLMClient):
            pass

        with pytest.raises(TypeError):
            Incomplete()


class TestClassifyError:

    @pytest.mark.parametrize('error, expected', [
        (openai.RateLimitError('slow down', response=_http_response(429), body=None), ErrorKind.RATE_LIMIT),
        (openai.AuthenticationError('bad key', response=_http_response(401), body=None), ErrorKind.AUTHENTICATION),
        (openai.BadRequestError('bad request', response=_http_response(400), body=None), ErrorKind.MALFORMED_REQUEST),
        (openai.InternalServerError('oops', response=_http_response(500), body=None), ErrorKind.UNKNOWN),
        (openai.APIConnectionError(request=httpx.Request('POST', 'https://api.openai.com')), ErrorKind.CONNECTION),
        (openai.APITimeoutError(request=httpx.Request('POST', 'https://api.openai.com')), ErrorKind.CONNECTION),
        (KeyError('x'), ErrorKind.UNKNOWN),
    ])
    def test_sdk_exceptions(self, llm, error, expected):
        assert llm.classify_error(error) is expected

    def test_server_errors_are_not_retried(self, llm, sleeps):
        error = openai.InternalServerError('oops', response=_http_response(500), body=None)
        fn = MagicMock(side_effect=error)

        with pytest.raises(openai.InternalServerError) as exc_info:
            with_retry(fn, classify=llm.classify_error, sleep=sleeps.append)

        assert exc_info.value is error
        assert fn.call_count == 1
        assert sleeps == []
