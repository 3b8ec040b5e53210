#!/usr/bin/env python3
"""cc-bridge - Anthropic Messages API in front of an OpenAI-compatible endpoint."""

import os
import sys
import logging

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)

from config import Config
from logger_manager import LoggerManager
from handlers import proxy_bp, dashboard_bp


def create_app(config: Config = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    CORS(app)

    config = config or Config()
    app.config['BRIDGE_CONFIG'] = config

    log_manager = LoggerManager(max_logs=config.max_log_entries)
    app.config['LOG_MANAGER'] = log_manager

    app.register_blueprint(proxy_bp)
    app.register_blueprint(dashboard_bp)

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'message': 'Not Found. URL must end with /v1/messages'}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({'message': 'Method Not Allowed'}), 405

    log_manager.log_server_event('info', 'cc-bridge started', {
        'port': config.port,
        'target': config.chat_completions_url,
        'api_key_override': config.is_api_key_configured(),
    })

    return app


def main():
    """Main entry point."""
    app = create_app()
    config = app.config['BRIDGE_CONFIG']

    print()
    print("=" * 60)
    print("  cc-bridge - Claude Messages -> OpenAI Chat Completions")
    print("=" * 60)
    print()
    print(f"  Proxy URL:  http://localhost:{config.port}/v1/messages")
    print(f"  Target:     {config.chat_completions_url}")
    print(f"  SSL verify: {'Enabled' if config.get_verify_ssl() else 'Disabled'}")
    print()
    print("  To use with Claude Code, set:")
    print()
    print(f"    export ANTHROPIC_BASE_URL='http://localhost:{config.port}'")
    print("    export ANTHROPIC_API_KEY='<your upstream API key>'")
    print()
    print("=" * 60)
    print()

    try:
        app.run(
            host=config.host,
            port=config.port,
            debug=False,
            threaded=True
        )
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
