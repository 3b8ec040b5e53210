"""Translate OpenAI API responses to Anthropic format."""

import json
import logging
import uuid
from typing import Dict, Any, Optional

from .errors import TranslationError

logger = logging.getLogger(__name__)

FINISH_REASON_MAP = {
    'stop': 'end_turn',
    'length': 'max_tokens',
    'tool_calls': 'tool_use',
}


def translate_response(
    openai_response: Dict[str, Any],
    original_model: str
) -> Dict[str, Any]:
    """
    Translate an OpenAI /v1/chat/completions response to Anthropic /v1/messages format.

    Args:
        openai_response: The OpenAI API response body
        original_model: The original Claude model name from the request

    Returns:
        Anthropic-compatible response body

    Raises:
        TranslationError: If the body lacks a first choice with a message, or
            a tool call carries arguments that are not valid JSON
    """
    if not isinstance(openai_response, dict):
        raise TranslationError('OpenAI response must be a JSON object')

    choices = openai_response.get('choices')
    if not isinstance(choices, list) or not choices:
        raise TranslationError('OpenAI response has no choices')

    choice = choices[0]
    message = choice.get('message') if isinstance(choice, dict) else None
    if not isinstance(message, dict):
        raise TranslationError('OpenAI response choice has no message')

    content_blocks = []

    text_content = message.get('content')
    if text_content:
        content_blocks.append({
            'type': 'text',
            'text': text_content
        })

    tool_calls = message.get('tool_calls') or []
    if not isinstance(tool_calls, list):
        raise TranslationError('OpenAI response tool_calls must be a list')

    # Tool calls -> tool_use blocks
    for tc in tool_calls:
        if not isinstance(tc, dict):
            raise TranslationError(f"OpenAI response tool call must be an object: {tc!r}")
        func = tc.get('function') or {}
        if not isinstance(func, dict):
            raise TranslationError(f"Tool call {tc.get('id')} has no function object")

        # Only an absent arguments field means no arguments; "" is invalid JSON
        arguments = func.get('arguments')
        try:
            args = json.loads(arguments) if arguments is not None else {}
        except (TypeError, json.JSONDecodeError) as e:
            raise TranslationError(
                f"Tool call {tc.get('id')} has invalid JSON arguments: {e}"
            ) from e

        content_blocks.append({
            'type': 'tool_use',
            'id': tc.get('id'),
            'name': func.get('name'),
            'input': args
        })

    usage = openai_response.get('usage') or {}
    if not isinstance(usage, dict):
        raise TranslationError('OpenAI response usage must be an object')

    return {
        'id': openai_response.get('id') or f"msg_{uuid.uuid4().hex[:24]}",
        'type': 'message',
        'role': 'assistant',
        'model': original_model,
        'content': content_blocks,
        'stop_reason': translate_finish_reason(choice.get('finish_reason')),
        'stop_sequence': None,
        'usage': {
            'input_tokens': usage.get('prompt_tokens') or 0,
            'output_tokens': usage.get('completion_tokens') or 0
        }
    }


def translate_finish_reason(finish_reason: Optional[str]) -> str:
    """Translate OpenAI finish_reason to Anthropic stop_reason."""
    if not isinstance(finish_reason, str):
        return 'end_turn'
    return FINISH_REASON_MAP.get(finish_reason, 'end_turn')
