"""Anthropic API proxy handler - translates to OpenAI format."""

import time
import logging
from typing import Optional

import requests
from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from translator import TranslationError, StreamTranslator, translate_request, translate_response

logger = logging.getLogger(__name__)

proxy_bp = Blueprint('proxy', __name__)

MESSAGES_PATH = '/v1/messages'

SSE_HEADERS = {
    'Cache-Control': 'no-cache',
    'X-Accel-Buffering': 'no',
    'Connection': 'keep-alive'
}


def get_config():
    """Get config from Flask app context."""
    return current_app.config['BRIDGE_CONFIG']


def get_log_manager():
    """Get log manager from Flask app context."""
    return current_app.config['LOG_MANAGER']


def extract_bearer_token() -> Optional[str]:
    """Return the client's credential from ``Authorization: Bearer`` or ``x-api-key``."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        token = auth_header[len('Bearer '):].strip()
    else:
        token = request.headers.get('x-api-key', '').strip()
    return token or None


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)


def _error_response(error_type: str, message: str, status: int, start_time: float,
                    anthropic_request=None):
    """Build an Anthropic error body and record the failed call."""
    error = {'type': 'error', 'error': {'type': error_type, 'message': message}}
    get_log_manager().log_api_call(request.path, status, _elapsed_ms(start_time), anthropic_request, error)
    return jsonify(error), status


@proxy_bp.route(MESSAGES_PATH, methods=['POST'])
@proxy_bp.route(f'/<path:prefix>{MESSAGES_PATH}', methods=['POST'])
def messages(prefix: Optional[str] = None):
    """
    Handle Anthropic /v1/messages requests.

    Translates to OpenAI format, forwards to the target endpoint with the
    caller's bearer token, and translates the response back to Anthropic format.
    """
    start_time = time.time()
    config = get_config()

    token = extract_bearer_token()
    if not token:
        return _error_response('authentication_error',
                               'Authorization header with Bearer token is required', 401, start_time)

    anthropic_request = request.get_json(silent=True)
    if not isinstance(anthropic_request, dict):
        return _error_response('invalid_request_error', 'Request body must be a JSON object', 400, start_time)

    original_model = anthropic_request.get('model')
    if not original_model:
        return _error_response('invalid_request_error', '"model" field is required in the request body',
                               400, start_time, anthropic_request)

    is_streaming = bool(anthropic_request.get('stream'))
    num_messages = len(anthropic_request.get('messages') or [])
    logger.info(f"-> {original_model} | msgs={num_messages} | stream={is_streaming}")

    try:
        openai_request = translate_request(anthropic_request, config.map_model_name(original_model))
    except TranslationError as e:
        logger.error(f"Translation error: {e}")
        return _error_response('invalid_request_error', f'Translation error: {e}', 400,
                               start_time, anthropic_request)

    headers = {
        'Content-Type': 'application/json',
        'Authorization': f'Bearer {config.target_api_key or token}',
    }

    try:
        if is_streaming:
            return _handle_streaming(openai_request, headers, original_model,
                                     anthropic_request, start_time, config)
        return _handle_non_streaming(openai_request, headers, original_model,
                                     anthropic_request, start_time, config)
    except requests.exceptions.Timeout:
        return _error_response('overloaded_error', 'Request timed out', 529, start_time, anthropic_request)
    except requests.exceptions.ConnectionError as e:
        return _error_response('api_error', f'Connection error: {e}', 502, start_time, anthropic_request)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return _error_response('api_error', f'Internal error: {e}', 500, start_time, anthropic_request)


def _passthrough_error(response, anthropic_request, start_time: float, streaming: bool):
    """Return a non-2xx upstream response to the client untranslated."""
    body = response.content
    logger.warning(f"<- upstream returned {response.status_code}")
    get_log_manager().log_api_call(request.path, response.status_code, _elapsed_ms(start_time),
                                   anthropic_request, None, streaming=streaming)
    return Response(
        body,
        status=response.status_code,
        content_type=response.headers.get('Content-Type', 'application/json')
    )


def _handle_non_streaming(openai_request, headers, original_model, anthropic_request,
                          start_time, config):
    """Handle non-streaming request/response."""
    response = requests.post(
        config.chat_completions_url,
        json=openai_request,
        headers=headers,
        timeout=config.request_timeout,
        verify=config.get_verify_ssl()
    )

    if not response.ok:
        return _passthrough_error(response, anthropic_request, start_time, streaming=False)

    try:
        openai_response = response.json()
    except ValueError as e:
        return _error_response('api_error', f'Invalid JSON from target: {e}', 502,
                               start_time, anthropic_request)

    try:
        anthropic_response = translate_response(openai_response, original_model)
    except TranslationError as e:
        logger.error(f"Response translation error: {e}")
        return _error_response('api_error', f'Invalid response from target: {e}', 502,
                               start_time, anthropic_request)

    usage = anthropic_response['usage']
    get_log_manager().log_api_call(request.path, 200, _elapsed_ms(start_time), anthropic_request,
                                   anthropic_response,
                                   input_tokens=usage['input_tokens'],
                                   output_tokens=usage['output_tokens'])

    logger.info(f"<- stop_reason={anthropic_response['stop_reason']} | "
                f"tokens={usage['input_tokens']}+{usage['output_tokens']}")

    return jsonify(anthropic_response), 200


def _handle_streaming(openai_request, headers, original_model, anthropic_request,
                      start_time, config):
    """Handle streaming request/response."""
    response = requests.post(
        config.chat_completions_url,
        json=openai_request,
        headers=headers,
        timeout=config.stream_timeout,
        stream=True,
        verify=config.get_verify_ssl()
    )

    if not response.ok:
        try:
            return _passthrough_error(response, anthropic_request, start_time, streaming=True)
        finally:
            response.close()

    translator = StreamTranslator(original_model)
    log_manager = get_log_manager()
    path = request.path

    def generate():
        status = 200
        try:
            try:
                for chunk in response.iter_content(chunk_size=None):
                    for event in translator.feed(chunk):
                        yield event.to_sse().encode('utf-8')
                    if translator.finished:
                        break
            except requests.exceptions.RequestException as e:
                status = 502
                logger.error(f"Upstream stream failed: {e}")
                log_manager.log_server_event('error', f'Upstream stream failed: {e}')
            except Exception as e:
                status = 500
                logger.exception(f"Stream translation failed: {e}")
                log_manager.log_server_event('error', f'Stream translation failed: {e}')

            # Terminal events if upstream ended or failed before [DONE]
            for event in translator.close():
                yield event.to_sse().encode('utf-8')

            usage = translator.get_usage()
            log_manager.log_api_call(path, status, _elapsed_ms(start_time), anthropic_request,
                                     {'streaming': True, 'skipped_lines': translator.state.skipped_lines},
                                     input_tokens=usage['input_tokens'],
                                     output_tokens=usage['output_tokens'],
                                     streaming=True)

            logger.info(f"<- stream complete | tokens={usage['input_tokens']}+{usage['output_tokens']}")

        except GeneratorExit:
            logger.warning("Client disconnected during stream")
        finally:
            response.close()

    return Response(
        stream_with_context(generate()),
        content_type='text/event-stream',
        headers=SSE_HEADERS
    ), 200
