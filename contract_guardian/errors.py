"""
Application error classes.

User-facing messages are in Italian; codes are machine-readable and are what the
HTTP layer and the retry logic switch on.
"""
from enum import Enum
from typing import Dict, List, Optional


class AppError(Exception):
    """Base application error with an error code and HTTP status."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        """Convert error to the API error payload."""
        payload = {
            'code': self.code,
            'message': self.message,
            'statusCode': self.status_code,
        }
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(AppError):
    """Bad input shape. Never reaches the analysis pipeline."""

    def __init__(self, message: str, details: Optional[Dict[str, List[str]]] = None):
        super().__init__('VALIDATION_ERROR', message, 400, details)


class ExtractionError(AppError):
    """Upstream text extraction failed."""

    def __init__(self, message: str):
        super().__init__('EXTRACTION_ERROR', message, 422)


class NotFoundError(AppError):
    def __init__(self, message: str = 'Risorsa non trovata'):
        super().__init__('NOT_FOUND', message, 404)


class DatabaseError(AppError):
    def __init__(self, message: str = 'Errore durante il salvataggio dei dati. Riprova.'):
        super().__init__('DATABASE_ERROR', message, 500)


class AnalysisError(AppError):
    def __init__(self, message: str = "Errore durante l'analisi del contratto. Riprova."):
        super().__init__('ANALYSIS_ERROR', message, 503)


class AnalysisTimeoutError(AnalysisError):
    """Raised when the pipeline loses the race against the wall-clock timeout."""

    def __init__(self, message: str = 'Analisi scaduta: tempo massimo superato (5 minuti)'):
        super().__init__(message)
        self.code = 'ANALYSIS_TIMEOUT'


class ErrorKind(str, Enum):
    """Transport-agnostic classification of a failed remote call."""
    RATE_LIMIT = 'rate_limit'
    CONNECTION = 'connection'
    AUTHENTICATION = 'authentication'
    MALFORMED_REQUEST = 'malformed_request'
    UNKNOWN = 'unknown'


class AIErrorCode(str, Enum):
    RATE_LIMIT = 'RATE_LIMIT'
    CONNECTION_ERROR = 'CONNECTION_ERROR'
    AUTHENTICATION_ERROR = 'AUTHENTICATION_ERROR'
    INVALID_REQUEST = 'INVALID_REQUEST'
    PARSE_ERROR = 'PARSE_ERROR'
    MAX_RETRIES_EXCEEDED = 'MAX_RETRIES_EXCEEDED'


AI_ERROR_MESSAGES = {
    AIErrorCode.RATE_LIMIT: 'Servizio AI temporaneamente sovraccarico. Riprova tra qualche secondo.',
    AIErrorCode.CONNECTION_ERROR: 'Impossibile connettersi al servizio AI. Verifica la connessione.',
    AIErrorCode.AUTHENTICATION_ERROR: 'Errore di autenticazione con il servizio AI.',
    AIErrorCode.INVALID_REQUEST: 'Richiesta non valida per il servizio AI.',
    AIErrorCode.PARSE_ERROR: 'Risposta AI non valida. Riprova.',
}


# Failures a later attempt may recover from
RETRYABLE_CODES = frozenset({
    AIErrorCode.RATE_LIMIT,
    AIErrorCode.CONNECTION_ERROR,
    AIErrorCode.PARSE_ERROR,
})


def max_retries_message(attempts: int) -> str:
    return f'Analisi fallita dopo {attempts} tentativi. Riprova tra qualche minuto.'


class AIError(AppError):
    """
    Classified failure of a remote model call.

    Attributes:
        code: AIErrorCode value.
        retryable: Whether the retry executor may attempt the call again.
            Defaults to membership of code in RETRYABLE_CODES.
        attempts: Number of attempts made (set for MAX_RETRIES_EXCEEDED).
    """

    def __init__(
        self,
        code: AIErrorCode,
        message: Optional[str] = None,
        retryable: Optional[bool] = None,
        attempts: Optional[int] = None
    ):
        code = AIErrorCode(code)
        if message is None:
            if code is AIErrorCode.MAX_RETRIES_EXCEEDED:
                message = max_retries_message(attempts or 0)
            else:
                message = AI_ERROR_MESSAGES[code]
        super().__init__(code.value, message, 503)
        self.code = code
        self.retryable = code in RETRYABLE_CODES if retryable is None else retryable
        self.attempts = attempts

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload['code'] = self.code.value
        return payload

    def __repr__(self) -> str:
        return f"AIError(code={self.code.value}, retryable={self.retryable})"
