"""
Retry logic with exponential backoff for remote model calls.

The executor knows nothing about the call it wraps or the transport behind it:
errors are mapped to an ErrorKind by a pluggable classifier, so the OpenAI
adapter (llm_client.py) and test fakes can each supply their own.

Backoff (base_delay=1.0):
- Attempt 1: immediate
- Attempt 2: after 1s
- Attempt 3: after 2s
"""
import logging
import time
from typing import Callable, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from contract_guardian.errors import AIError, AIErrorCode, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0

# How each classified failure is surfaced; retryability follows the code
_CLASSIFIED = {
    ErrorKind.RATE_LIMIT: AIErrorCode.RATE_LIMIT,
    ErrorKind.CONNECTION: AIErrorCode.CONNECTION_ERROR,
    ErrorKind.AUTHENTICATION: AIErrorCode.AUTHENTICATION_ERROR,
    ErrorKind.MALFORMED_REQUEST: AIErrorCode.INVALID_REQUEST,
}


def classify_error(exc: BaseException) -> ErrorKind:
    """
    Default, transport-agnostic classifier.

    Recognizes the built-in network exceptions; everything else is UNKNOWN
    and propagates without retry. AIErrors never reach a classifier: they
    already carry their own retryable flag.
    """
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ErrorKind.CONNECTION
    return ErrorKind.UNKNOWN


def _call_classified(fn: Callable[[], T], classify: Callable[[BaseException], ErrorKind]) -> T:
    """Run one attempt, translating transport failures into AIErrors."""
    try:
        return fn()
    except AIError:
        raise
    except Exception as e:
        kind = classify(e)
        if kind not in _CLASSIFIED:
            raise
        raise AIError(_CLASSIFIED[kind]) from e


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, AIError) and exc.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception()
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(
        f"[AI] {error.code.value} (attempt {retry_state.attempt_number}), "
        f"retrying in {delay:.1f}s..."
    )


def with_retry(
    fn: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    classify: Callable[[BaseException], ErrorKind] = classify_error,
    sleep: Callable[[float], None] = time.sleep
) -> T:
    """
    Execute fn with automatic retry on transient failures.

    Retryable: rate limits, connection errors and any AIError flagged retryable
    (e.g. PARSE_ERROR). Authentication and malformed-request failures raise a
    non-retryable AIError at once. Unclassified exceptions propagate unchanged.

    Args:
        fn: Zero-argument callable performing one attempt.
        max_retries: Maximum number of attempts.
        base_delay: Delay in seconds before the second attempt; doubles each time.
        classify: Maps an exception to an ErrorKind.
        sleep: Sleep function (injectable for tests).

    Returns:
        The result of fn.

    Raises:
        AIError: MAX_RETRIES_EXCEEDED when every attempt failed with a retryable
            error, or the classified non-retryable error.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    retrying = Retrying(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay, exp_base=2, min=0),
        retry=retry_if_exception(_is_retryable),
        before_sleep=_log_retry,
        sleep=sleep,
    )

    try:
        for attempt in retrying:
            with attempt:
                return _call_classified(fn, classify)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error(f"[AI] Giving up after {max_retries} attempts: {last_error!r}")
        raise AIError(
            AIErrorCode.MAX_RETRIES_EXCEEDED,
            attempts=max_retries
        ) from last_error
