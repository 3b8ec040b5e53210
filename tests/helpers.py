"""Helpers for building upstream fixtures and reading SSE output."""

import json
from typing import List, Tuple
from unittest.mock import Mock


def parse_sse(body: str) -> List[Tuple[str, dict]]:
    """Split an SSE body into (event_name, data) pairs."""
    events = []
    for frame in body.split('\n\n'):
        if not frame.strip():
            continue
        name, data = None, None
        for line in frame.split('\n'):
            if line.startswith('event: '):
                name = line[len('event: '):]
            elif line.startswith('data: '):
                data = json.loads(line[len('data: '):])
        events.append((name, data))
    return events


def openai_sse(*chunks) -> bytes:
    """Encode OpenAI stream chunks (dicts or raw strings) as an SSE body ending in [DONE]."""
    lines = []
    for chunk in chunks:
        payload = chunk if isinstance(chunk, str) else json.dumps(chunk)
        lines.append(f"data: {payload}\n\n")
    lines.append("data: [DONE]\n\n")
    return ''.join(lines).encode('utf-8')


def upstream_response(status_code=200, json_body=None, body=b'', chunks=None, headers=None):
    """Build a stand-in for a ``requests.Response``."""
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.headers = headers or {'Content-Type': 'application/json'}
    if json_body is not None:
        body = json.dumps(json_body).encode('utf-8')
        response.json.return_value = json_body
    else:
        response.json.side_effect = ValueError('Expecting value')
    response.content = body
    response.iter_content.return_value = iter(chunks or [])
    return response


