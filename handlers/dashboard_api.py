"""Dashboard API endpoints for cc-bridge."""

import logging
from flask import Blueprint, current_app, request, jsonify

logger = logging.getLogger(__name__)

dashboard_bp = Blueprint('dashboard', __name__)


def get_config():
    """Get config from Flask app context."""
    return current_app.config['BRIDGE_CONFIG']


def get_log_manager():
    """Get log manager from Flask app context."""
    return current_app.config['LOG_MANAGER']


@dashboard_bp.route('/api/config', methods=['GET'])
def get_configuration():
    """Get current configuration (credentials are never included)."""
    return jsonify(get_config().to_dict())


@dashboard_bp.route('/api/status', methods=['GET'])
def get_status():
    """Get current proxy status."""
    config = get_config()

    return jsonify({
        'proxy': {
            'running': True,
            'port': config.port,
            'messagesUrl': f'http://localhost:{config.port}/v1/messages',
        },
        'target': {
            'endpoint': config.chat_completions_url,
            'authentication': 'api_key' if config.is_api_key_configured() else 'client_bearer',
        },
        'usage': get_log_manager().get_usage_stats(),
    })


@dashboard_bp.route('/api/logs', methods=['GET'])
def get_logs():
    """Get all logs."""
    log_manager = get_log_manager()
    limit = request.args.get('limit', 50, type=int)

    return jsonify({
        'apiCalls': log_manager.get_api_calls(limit),
        'serverEvents': log_manager.get_server_events(limit),
    })


@dashboard_bp.route('/api/logs/api-calls', methods=['GET'])
def get_api_logs():
    limit = request.args.get('limit', 50, type=int)
    return jsonify(get_log_manager().get_api_calls(limit))


@dashboard_bp.route('/api/logs/server-events', methods=['GET'])
def get_server_logs():
    limit = request.args.get('limit', 50, type=int)
    return jsonify(get_log_manager().get_server_events(limit))


@dashboard_bp.route('/api/logs', methods=['DELETE'])
def clear_logs():
    get_log_manager().clear_logs()
    return jsonify({'success': True, 'message': 'Logs cleared'})


@dashboard_bp.route('/api/usage', methods=['GET'])
def get_usage():
    """Get usage statistics."""
    return jsonify(get_log_manager().get_usage_stats())


@dashboard_bp.route('/api/usage/reset', methods=['POST'])
def reset_usage():
    get_log_manager().reset_usage()
    return jsonify({'success': True, 'message': 'Usage statistics reset'})


@dashboard_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({'status': 'healthy', 'service': 'cc-bridge'})
