"""
Application configuration loaded from environment variables.
"""
import os
from dotenv import load_dotenv

# Load environment variables before the Config class reads them
load_dotenv()


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


class Config:
    """Flask-style configuration object (used with app.config.from_object)."""

    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    DEFAULT_LANGUAGE = os.getenv('DEFAULT_LANGUAGE', 'it')

    # OpenAI
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
    OPENAI_TEMPERATURE = _get_float('OPENAI_TEMPERATURE', 0.3)
    OPENAI_TIMEOUT = _get_float('OPENAI_TIMEOUT', 60.0)

    # Analysis pipeline
    ANALYSIS_TIMEOUT_SECONDS = _get_float('ANALYSIS_TIMEOUT_SECONDS', 300.0)
    MAX_CHUNK_TOKENS = _get_int('MAX_CHUNK_TOKENS', 3000)
    AI_MAX_RETRIES = _get_int('AI_MAX_RETRIES', 3)
    AI_RETRY_BASE_DELAY = _get_float('AI_RETRY_BASE_DELAY', 1.0)
    ANALYSIS_WORKERS = _get_int('ANALYSIS_WORKERS', 4)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    AI_RETRY_BASE_DELAY = 0.0
