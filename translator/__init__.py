"""API translation layer between Anthropic and OpenAI formats."""

from .errors import TranslationError
from .anthropic_to_openai import translate_request
from .openai_to_anthropic import translate_response, translate_finish_reason
from .streaming import ClaudeEvent, StreamState, StreamTranslator

__all__ = [
    'TranslationError',
    'translate_request',
    'translate_response',
    'translate_finish_reason',
    'ClaudeEvent',
    'StreamState',
    'StreamTranslator',
]
