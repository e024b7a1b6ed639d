"""
LLM client for structured contract extraction using OpenAI GPT-4o-mini.

Every call asks for a JSON object and validates it against a pydantic schema.
Retrying is not done here: callers wrap parse() with services.retry.with_retry,
passing the client's classify_error so OpenAI exceptions map onto ErrorKind.
"""
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional, Type, TypeVar

import openai
from openai import OpenAI
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from contract_guardian.config import Config
from contract_guardian.errors import AIError, AIErrorCode, ErrorKind
from contract_guardian.services.retry import classify_error as default_classify_error

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

SCHEMA_INSTRUCTION = '''

Return ONLY valid JSON matching this JSON schema (use the exact property names):
{schema}'''


class StructuredLLMClient(ABC):
    """
    Capability to turn a (system, user) prompt pair into a validated model.

    Implementations raise AIError(PARSE_ERROR) when the response
    cannot be validated, AIError(INVALID_REQUEST) when the model refuses, and
    let transport exceptions escape for classify_error to map.
    """

    @abstractmethod
    def parse(self, system_prompt: str, user_prompt: str, schema: Type[M]) -> M:
        """Return the model response validated against schema."""

    def classify_error(self, exc: BaseException) -> ErrorKind:
        return default_classify_error(exc)


def _validate_json_response(response_text: Optional[str], schema: Type[M]) -> M:
    """
    Parse and validate a JSON response against a schema.

    Args:
        response_text: Raw response content from OpenAI.
        schema: Pydantic model the response must satisfy.

    Returns:
        Validated model instance.

    Raises:
        AIError: PARSE_ERROR (retryable) if the JSON is missing, invalid or off-schema.
    """
    if not response_text:
        logger.error("Empty response from LLM")
        raise AIError(AIErrorCode.PARSE_ERROR)

    try:
        return schema.model_validate_json(response_text)
    except SchemaValidationError as e:
        logger.error(f"LLM response does not match {schema.__name__}: {e.error_count()} errors")
        raise AIError(AIErrorCode.PARSE_ERROR) from e


class OpenAIStructuredClient(StructuredLLMClient):
    """OpenAI chat-completions client in JSON mode."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key or Config.OPENAI_API_KEY
        self.model = model or Config.OPENAI_MODEL
        self.temperature = Config.OPENAI_TEMPERATURE if temperature is None else temperature
        self.timeout = timeout or Config.OPENAI_TIMEOUT
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        """Get or create the OpenAI client instance."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("OPENAI_API_KEY environment variable not set")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def parse(self, system_prompt: str, user_prompt: str, schema: Type[M]) -> M:
        """
        Request one structured response.

        Args:
            system_prompt: The system message.
            user_prompt: The user message.
            schema: Pydantic model describing the expected JSON.

        Returns:
            Validated instance of schema.

        Raises:
            AIError: PARSE_ERROR on invalid output, INVALID_REQUEST on refusal.
            openai.OpenAIError: Transport failures, classified by classify_error.
        """
        start_time = time.time()
        schema_json = json.dumps(schema.model_json_schema(by_alias=True), ensure_ascii=False)

        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "system",
                    "content": system_prompt + SCHEMA_INSTRUCTION.format(schema=schema_json)
                },
                {
                    "role": "user",
                    "content": user_prompt
                }
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            timeout=self.timeout
        )

        choice = response.choices[0]
        if getattr(choice.message, 'refusal', None):
            logger.warning(f"Model refused the request: {choice.message.refusal}")
            raise AIError(AIErrorCode.INVALID_REQUEST)
        if choice.finish_reason == 'length':
            logger.error("LLM response truncated (finish_reason=length)")
            raise AIError(AIErrorCode.PARSE_ERROR)

        result = _validate_json_response(choice.message.content, schema)

        duration = time.time() - start_time
        logger.info(f"{schema.__name__} received from {self.model} in {duration:.2f}s")
        return result

    def classify_error(self, exc: BaseException) -> ErrorKind:
        """Map OpenAI SDK exceptions onto transport-agnostic kinds."""
        if isinstance(exc, openai.RateLimitError):
            return ErrorKind.RATE_LIMIT
        # APITimeoutError subclasses APIConnectionError
        if isinstance(exc, openai.APIConnectionError):
            return ErrorKind.CONNECTION
        if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return ErrorKind.AUTHENTICATION
        if isinstance(exc, (openai.BadRequestError, openai.UnprocessableEntityError, openai.NotFoundError)):
            return ErrorKind.MALFORMED_REQUEST
        return default_classify_error(exc)
