"""Tests for OpenAI -> Anthropic response translation."""

import pytest

from translator import TranslationError, translate_finish_reason, translate_response


def _response(message, finish_reason='stop', usage=None):
    body = {
        'id': 'chatcmpl-1',
        'object': 'chat.completion',
        'choices': [{'index': 0, 'message': message, 'finish_reason': finish_reason}],
    }
    if usage is not None:
        body['usage'] = usage
    return body


class TestTranslateResponse:

    def test_text_response(self):
        result = translate_response(
            _response({'role': 'assistant', 'content': 'Hello!'},
                      usage={'prompt_tokens': 12, 'completion_tokens': 3}),
            'claude-sonnet'
        )

        assert result == {
            'id': 'chatcmpl-1',
            'type': 'message',
            'role': 'assistant',
            'model': 'claude-sonnet',
            'content': [{'type': 'text', 'text': 'Hello!'}],
            'stop_reason': 'end_turn',
            'stop_sequence': None,
            'usage': {'input_tokens': 12, 'output_tokens': 3},
        }

    def test_tool_call_response(self):
        result = translate_response(_response({
            'role': 'assistant',
            'content': None,
            'tool_calls': [{
                'id': 'call_1',
                'type': 'function',
                'function': {'name': 'get_weather', 'arguments': '{"city": "Oslo"}'},
            }],
        }, finish_reason='tool_calls'), 'claude-sonnet')

        assert result['stop_reason'] == 'tool_use'
        assert result['content'] == [{
            'type': 'tool_use',
            'id': 'call_1',
            'name': 'get_weather',
            'input': {'city': 'Oslo'},
        }]

    def test_text_and_tool_calls_keep_text_first(self):
        result = translate_response(_response({
            'content': 'Checking.',
            'tool_calls': [{'id': 'c', 'function': {'name': 'f', 'arguments': '{}'}}],
        }, finish_reason='tool_calls'), 'm')

        assert [block['type'] for block in result['content']] == ['text', 'tool_use']

    def test_empty_content_emits_no_text_block(self):
        result = translate_response(_response({'content': ''}), 'm')

        assert result['content'] == []

    def test_only_first_choice_is_used(self):
        body = _response({'content': 'first'})
        body['choices'].append({'index': 1, 'message': {'content': 'second'}, 'finish_reason': 'stop'})

        result = translate_response(body, 'm')

        assert result['content'] == [{'type': 'text', 'text': 'first'}]

    def test_missing_usage_reports_zero(self):
        result = translate_response(_response({'content': 'x'}), 'm')

        assert result['usage'] == {'input_tokens': 0, 'output_tokens': 0}

    def test_null_usage_counts_report_zero(self):
        body = _response({'content': 'x'}, usage={'prompt_tokens': None, 'completion_tokens': None})

        assert translate_response(body, 'm')['usage'] == {'input_tokens': 0, 'output_tokens': 0}

    def test_missing_id_generates_message_id(self):
        body = _response({'content': 'x'})
        del body['id']

        assert translate_response(body, 'm')['id'].startswith('msg_')

    def test_invalid_tool_arguments_raise(self):
        body = _response({'tool_calls': [{'id': 'c', 'function': {'name': 'f', 'arguments': '{"a":'}}]})

        with pytest.raises(TranslationError):
            translate_response(body, 'm')

    def test_empty_string_arguments_raise(self):
        body = _response({'tool_calls': [{'id': 'c', 'function': {'name': 'f', 'arguments': ''}}]})

        with pytest.raises(TranslationError):
            translate_response(body, 'm')

    def test_absent_arguments_default_to_empty_object(self):
        body = _response({'tool_calls': [{'id': 'c', 'function': {'name': 'f'}}]})

        assert translate_response(body, 'm')['content'][0]['input'] == {}

    @pytest.mark.parametrize('message, usage', [
        ({'tool_calls': ['call_1']}, None),
        ({'tool_calls': {'id': 'c'}}, None),
        ({'tool_calls': [{'id': 'c', 'function': 'f'}]}, None),
        ({'content': 'x'}, [4, 2]),
    ])
    def test_malformed_tool_calls_or_usage_raise(self, message, usage):
        body = _response(message)
        if usage is not None:
            body['usage'] = usage

        with pytest.raises(TranslationError):
            translate_response(body, 'm')

    @pytest.mark.parametrize('body', [
        {},
        {'choices': []},
        {'choices': [{'finish_reason': 'stop'}]},
        [],
    ])
    def test_missing_choice_or_message_raises(self, body):
        with pytest.raises(TranslationError):
            translate_response(body, 'm')


@pytest.mark.parametrize('finish_reason, expected', [
    ('stop', 'end_turn'),
    ('length', 'max_tokens'),
    ('tool_calls', 'tool_use'),
    ('content_filter', 'end_turn'),
    (None, 'end_turn'),
    ('something_new', 'end_turn'),
])
def test_translate_finish_reason(finish_reason, expected):
    assert translate_finish_reason(finish_reason) == expected
