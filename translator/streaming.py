"""Translate streaming responses between OpenAI and Anthropic SSE formats."""

import codecs
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .openai_to_anthropic import translate_finish_reason

logger = logging.getLogger(__name__)

DATA_PREFIX = 'data: '
DONE_SENTINEL = '[DONE]'

# Claude block index 0 is always the free-text block
TEXT_BLOCK_INDEX = 0


@dataclass
class ClaudeEvent:
    """A single Anthropic SSE event."""
    event: str
    data: Dict[str, Any]

    def to_sse(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class ToolCallAccumulator:
    """Tool call pieces collected for one OpenAI tool_calls index."""
    id: str = ''
    name: str = ''
    argument_buffer: str = ''
    claude_index: Optional[int] = None
    started: bool = False


def _new_decoder():
    return codecs.getincrementaldecoder('utf-8')(errors='replace')


@dataclass
class StreamState:
    """
    Everything the stream translator remembers between chunks.

    ``content_block_index`` is the last Claude block index handed out; tool
    blocks pre-increment it, so index 0 stays reserved for text.
    """
    model: str
    message_id: str = field(default_factory=lambda: f"msg_{uuid.uuid4().hex[:24]}")
    initialized: bool = False
    finished: bool = False
    pending_line: str = ''
    content_block_index: int = TEXT_BLOCK_INDEX
    tool_calls: Dict[int, ToolCallAccumulator] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    skipped_lines: int = 0
    decoder: Any = field(default_factory=_new_decoder, repr=False, compare=False)


def parse_stream_payload(payload: str) -> Optional[Dict[str, Any]]:
    """
    Decode the JSON payload of one ``data:`` line.

    Returns None when the payload is not valid JSON or is not a JSON object.
    """
    try:
        chunk = json.loads(payload)
    except json.JSONDecodeError:
        return None
    return chunk if isinstance(chunk, dict) else None


def first_choice(chunk: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return ``choices[0]`` if the chunk has one, else None."""
    choices = chunk.get('choices')
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def step(state: StreamState, chunk: Union[bytes, str]) -> List[ClaudeEvent]:
    """
    Feed one upstream chunk through the translator.

    Chunk boundaries are arbitrary: an incomplete trailing line is kept in
    ``state.pending_line`` until a later chunk completes it.

    Args:
        state: Per-stream state, updated in place
        chunk: Raw bytes (or already decoded text) from the upstream body

    Returns:
        Anthropic events produced by this chunk, in order
    """
    if state.finished:
        return []

    events = []
    if not state.initialized:
        events.extend(_start_events(state))
        state.initialized = True

    text = state.decoder.decode(chunk) if isinstance(chunk, bytes) else chunk
    lines = (state.pending_line + text).split('\n')
    state.pending_line = lines.pop()

    events.extend(_process_lines(state, lines))
    return events


def close(state: StreamState) -> List[ClaudeEvent]:
    """
    Finish a stream whose upstream body ended, with or without ``[DONE]``.

    Any buffered final line is processed first. If no sentinel was seen the
    normal terminal sequence is emitted anyway, so every opened block is stopped.
    """
    if state.finished:
        return []

    events = step(state, b'')
    tail = state.pending_line + state.decoder.decode(b'', final=True)
    state.pending_line = ''
    if tail:
        events.extend(_process_lines(state, [tail]))

    if not state.finished:
        logger.warning("Upstream stream ended without [DONE]; closing open blocks")
        events.extend(_stop_events(state))

    return events


def _process_lines(state: StreamState, lines: List[str]) -> List[ClaudeEvent]:
    events = []

    for line in lines:
        if not line.startswith(DATA_PREFIX):
            continue

        payload = line[len(DATA_PREFIX):]
        if payload.strip() == DONE_SENTINEL:
            events.extend(_stop_events(state))
            # Anything after the sentinel is ignored
            break

        events.extend(_process_payload(state, payload))

    return events


def _process_payload(state: StreamState, payload: str) -> List[ClaudeEvent]:
    chunk = parse_stream_payload(payload)
    if chunk is None:
        return _skip(state, 'invalid JSON', payload)

    # The include_usage trailer arrives with an empty choices list
    usage = chunk.get('usage')
    if isinstance(usage, dict):
        state.input_tokens = usage.get('prompt_tokens') or state.input_tokens
        state.output_tokens = usage.get('completion_tokens') or state.output_tokens

    choice = first_choice(chunk)
    if choice is None:
        return _skip(state, 'no choices', payload)

    if choice.get('finish_reason'):
        state.finish_reason = choice['finish_reason']

    delta = choice.get('delta')
    if not isinstance(delta, dict):
        return _skip(state, 'no delta', payload)

    tool_calls = delta.get('tool_calls')
    if tool_calls is not None and not isinstance(tool_calls, list):
        return _skip(state, 'bad tool_calls', payload)

    events = []

    content = delta.get('content')
    if isinstance(content, str) and content:
        events.append(_content_block_delta(TEXT_BLOCK_INDEX, {'type': 'text_delta', 'text': content}))

    for tc_delta in tool_calls or []:
        if isinstance(tc_delta, dict):
            events.extend(_process_tool_call_delta(state, tc_delta))

    return events


def _process_tool_call_delta(state: StreamState, tc_delta: Dict[str, Any]) -> List[ClaudeEvent]:
    events = []
    tc_index = tc_delta.get('index', 0)
    if not isinstance(tc_index, int):
        logger.debug(f"Skipping tool call delta with index {tc_index!r}")
        return events
    accumulator = state.tool_calls.setdefault(tc_index, ToolCallAccumulator())

    func = tc_delta.get('function')
    if not isinstance(func, dict):
        func = {}
    if not accumulator.id and tc_delta.get('id'):
        accumulator.id = tc_delta['id']
    if not accumulator.name and func.get('name'):
        accumulator.name = func['name']

    fragment = func.get('arguments')
    if not isinstance(fragment, str):
        fragment = ''
    accumulator.argument_buffer += fragment

    if accumulator.started:
        if fragment:
            events.append(_input_json_delta(accumulator, fragment))
        return events

    if accumulator.id and accumulator.name:
        state.content_block_index += 1
        accumulator.claude_index = state.content_block_index
        accumulator.started = True
        events.append(ClaudeEvent('content_block_start', {
            'type': 'content_block_start',
            'index': accumulator.claude_index,
            'content_block': {
                'type': 'tool_use',
                'id': accumulator.id,
                'name': accumulator.name,
                'input': {}
            }
        }))
        # Arguments that arrived before the id and name are flushed once here
        if accumulator.argument_buffer:
            events.append(_input_json_delta(accumulator, accumulator.argument_buffer))

    return events


def _skip(state: StreamState, reason: str, payload: str) -> List[ClaudeEvent]:
    state.skipped_lines += 1
    logger.debug(f"Skipping stream line ({reason}): {payload[:200]}")
    return []


def _content_block_delta(index: int, delta: Dict[str, Any]) -> ClaudeEvent:
    return ClaudeEvent('content_block_delta', {
        'type': 'content_block_delta',
        'index': index,
        'delta': delta
    })


def _input_json_delta(accumulator: ToolCallAccumulator, fragment: str) -> ClaudeEvent:
    return _content_block_delta(accumulator.claude_index, {
        'type': 'input_json_delta',
        'partial_json': fragment
    })


def _start_events(state: StreamState) -> List[ClaudeEvent]:
    message = {
        'id': state.message_id,
        'type': 'message',
        'role': 'assistant',
        'model': state.model,
        'content': [],
        'stop_reason': None,
        'stop_sequence': None,
        'usage': {
            'input_tokens': 0,
            'output_tokens': 0
        }
    }
    return [
        ClaudeEvent('message_start', {'type': 'message_start', 'message': message}),
        ClaudeEvent('content_block_start', {
            'type': 'content_block_start',
            'index': TEXT_BLOCK_INDEX,
            'content_block': {'type': 'text', 'text': ''}
        }),
    ]


def _stop_events(state: StreamState) -> List[ClaudeEvent]:
    events = [ClaudeEvent('content_block_stop', {'type': 'content_block_stop', 'index': TEXT_BLOCK_INDEX})]

    started = sorted(
        (tc for tc in state.tool_calls.values() if tc.started),
        key=lambda tc: tc.claude_index
    )
    for tc in started:
        events.append(ClaudeEvent('content_block_stop', {'type': 'content_block_stop', 'index': tc.claude_index}))

    stop_reason = translate_finish_reason(state.finish_reason)
    events.append(ClaudeEvent('message_delta', {
        'type': 'message_delta',
        'delta': {
            'stop_reason': stop_reason,
            'stop_sequence': None
        },
        'usage': {
            'output_tokens': state.output_tokens
        }
    }))
    events.append(ClaudeEvent('message_stop', {'type': 'message_stop'}))

    state.finished = True
    logger.debug(f"Stream {state.message_id} finished: stop_reason={stop_reason}, "
                 f"tool_blocks={len(started)}, skipped_lines={state.skipped_lines}")
    return events


class StreamTranslator:
    """
    Translates OpenAI streaming chunks to Anthropic SSE events.

    One instance per upstream stream; it is not reusable.

    OpenAI format:
        data: {"choices":[{"delta":{"content":"Hi"}}]}

    Anthropic format:
        event: message_start
        data: {"type":"message_start","message":{...}}

        event: content_block_start
        data: {"type":"content_block_start","index":0,...}

        event: content_block_delta
        data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hi"}}

        event: content_block_stop
        data: {"type":"content_block_stop","index":0}

        event: message_delta
        data: {"type":"message_delta","delta":{"stop_reason":"end_turn",...}}

        event: message_stop
        data: {"type":"message_stop"}
    """

    def __init__(self, original_model: str):
        self.state = StreamState(model=original_model)

    @property
    def finished(self) -> bool:
        return self.state.finished

    def feed(self, chunk: Union[bytes, str]) -> List[ClaudeEvent]:
        """Translate one raw upstream chunk into zero or more Anthropic events."""
        return step(self.state, chunk)

    def close(self) -> List[ClaudeEvent]:
        """Emit whatever is needed to end the stream cleanly."""
        return close(self.state)

    def get_usage(self) -> Dict[str, int]:
        """Get token usage reported by the upstream stream."""
        return {
            'input_tokens': self.state.input_tokens,
            'output_tokens': self.state.output_tokens
        }
