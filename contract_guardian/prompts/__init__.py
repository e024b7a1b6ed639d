"""
Prompt templates, one module per analysis language.
"""
from types import ModuleType

from contract_guardian.prompts import en, it

_BY_LANGUAGE = {
    'it': it,
    'en': en,
}


def get_prompts(language: str) -> ModuleType:
    """Return the prompt module for a language; unknown languages fall back to Italian."""
    return _BY_LANGUAGE.get(language, it)
