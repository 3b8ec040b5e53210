"""Translate Anthropic API requests to OpenAI format."""

import json
import logging
from typing import Dict, Any, List, Optional

from .errors import TranslationError

logger = logging.getLogger(__name__)

# Scalar request fields copied as-is when present
PASSTHROUGH_FIELDS = ('max_tokens', 'temperature', 'top_p', 'stream')


def translate_request(
    anthropic_request: Dict[str, Any],
    target_model: str
) -> Dict[str, Any]:
    """
    Translate an Anthropic /v1/messages request to OpenAI /v1/chat/completions format.

    Args:
        anthropic_request: The Anthropic API request body
        target_model: Model identifier to send to the OpenAI-compatible endpoint

    Returns:
        OpenAI-compatible request body

    Raises:
        TranslationError: If the request does not have the expected structure
    """
    if not isinstance(anthropic_request, dict):
        raise TranslationError('Request body must be a JSON object')

    anthropic_messages = anthropic_request.get('messages')
    if not isinstance(anthropic_messages, list):
        raise TranslationError("'messages' must be a list")

    messages = []

    # System prompt (Anthropic has it at top level, OpenAI has it as first message)
    system_prompt = _translate_system(anthropic_request.get('system'))
    if system_prompt:
        messages.append({'role': 'system', 'content': system_prompt})

    for position, msg in enumerate(anthropic_messages):
        if not isinstance(msg, dict):
            raise TranslationError(f'Message {position} must be an object')
        messages.extend(_translate_message(msg, position))

    openai_request = {
        'model': target_model,
        'messages': messages,
    }

    for name in PASSTHROUGH_FIELDS:
        if anthropic_request.get(name) is not None:
            openai_request[name] = anthropic_request[name]

    if anthropic_request.get('stop_sequences') is not None:
        openai_request['stop'] = anthropic_request['stop_sequences']

    # Request usage in stream for token counting
    if openai_request.get('stream'):
        openai_request['stream_options'] = {'include_usage': True}

    if anthropic_request.get('tools'):
        openai_request['tools'] = _translate_tools(anthropic_request['tools'])

    tool_choice = _translate_tool_choice(anthropic_request.get('tool_choice'))
    if tool_choice is not None:
        openai_request['tool_choice'] = tool_choice

    logger.debug(f"Translated {len(anthropic_messages)} messages into {len(messages)}")
    return openai_request


def _translate_system(system_prompt: Any) -> Optional[str]:
    """Flatten the Anthropic system prompt into a single string."""
    if not system_prompt:
        return None

    if isinstance(system_prompt, str):
        return system_prompt

    if isinstance(system_prompt, list):
        # Anthropic supports array of content blocks for system
        return '\n'.join(
            block.get('text', '') for block in system_prompt
            if isinstance(block, dict) and block.get('type') == 'text'
        ) or None

    raise TranslationError("'system' must be a string or a list of text blocks")


def _translate_message(msg: Dict[str, Any], position: int) -> List[Dict[str, Any]]:
    """Translate a single message; one Anthropic message may become several OpenAI ones."""
    role = msg.get('role')
    content = msg.get('content')

    if not isinstance(content, (str, list)):
        raise TranslationError(f'Message {position} content must be a string or a list of blocks')

    if role == 'user':
        return _translate_user_message(content)
    elif role == 'assistant':
        return [_translate_assistant_message(content)]

    raise TranslationError(f'Message {position} has unsupported role: {role!r}')


def _translate_user_message(content: Any) -> List[Dict[str, Any]]:
    """
    Translate a user message.

    Tool results are lifted out into separate ``tool`` messages which always
    precede the merged user message, whatever their position in the block list.
    """
    if isinstance(content, str):
        return [{'role': 'user', 'content': content}]

    tool_results = []
    other_content = []

    for block in content:
        if not isinstance(block, dict):
            logger.warning(f"Skipping non-object content block: {block!r}")
            continue

        block_type = block.get('type')
        if block_type == 'tool_result':
            tool_results.append(_translate_tool_result(block))
        elif block_type == 'text':
            other_content.append({'type': 'text', 'text': block.get('text', '')})
        elif block_type == 'image':
            other_content.append(_translate_image(block))
        else:
            logger.warning(f"Dropping unsupported user content block type: {block_type}")

    result = list(tool_results)
    if other_content:
        result.append({'role': 'user', 'content': other_content})

    return result


def _translate_tool_result(block: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a tool_result block to an OpenAI tool message."""
    tool_content = block.get('content', '')
    if not isinstance(tool_content, str):
        tool_content = json.dumps(tool_content)

    return {
        'role': 'tool',
        'tool_call_id': block.get('tool_use_id'),
        'content': tool_content,
    }


def _translate_image(block: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite an Anthropic base64 image block as an OpenAI data URL."""
    source = block.get('source') or {}
    return {
        'type': 'image_url',
        'image_url': {
            'url': f"data:{source.get('media_type')};base64,{source.get('data')}"
        }
    }


def _translate_assistant_message(content: Any) -> Dict[str, Any]:
    """Translate an assistant message."""
    if isinstance(content, str):
        return {'role': 'assistant', 'content': content or None}

    text_parts = []
    tool_calls = []

    for block in content:
        if not isinstance(block, dict):
            continue

        if block.get('type') == 'text':
            text_parts.append(block.get('text', ''))
        elif block.get('type') == 'tool_use':
            tool_calls.append({
                'id': block.get('id'),
                'type': 'function',
                'function': {
                    'name': block.get('name'),
                    'arguments': json.dumps(block.get('input') or {})
                }
            })

    # A turn made only of tool calls carries null content, not ''
    result = {'role': 'assistant', 'content': '\n'.join(text_parts) or None}
    if tool_calls:
        result['tool_calls'] = tool_calls

    return result


def _translate_tools(anthropic_tools: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Translate Anthropic tools to OpenAI functions format."""
    if not isinstance(anthropic_tools, list):
        raise TranslationError("'tools' must be a list")

    openai_tools = []

    for tool in anthropic_tools:
        if not isinstance(tool, dict):
            raise TranslationError('Each tool must be an object')

        function = {'name': tool.get('name')}
        if tool.get('description') is not None:
            function['description'] = tool['description']
        if tool.get('input_schema') is not None:
            function['parameters'] = tool['input_schema']

        openai_tools.append({'type': 'function', 'function': function})

    return openai_tools


def _translate_tool_choice(anthropic_choice: Any) -> Any:
    """Translate Anthropic tool_choice to OpenAI format, or None to omit it."""
    if not isinstance(anthropic_choice, dict):
        return None

    choice_type = anthropic_choice.get('type')

    if choice_type in ('auto', 'any'):
        return 'auto'
    elif choice_type == 'tool':
        return {
            'type': 'function',
            'function': {
                'name': anthropic_choice.get('name')
            }
        }

    return None
