"""Configuration management for cc-bridge."""

import os
import logging

logger = logging.getLogger(__name__)


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        # Proxy settings
        self.host = os.getenv('PROXY_HOST', '0.0.0.0')
        self.port = self._get_int('PROXY_PORT', 5000)

        # Target endpoint (OpenAI-compatible base URL, /chat/completions is appended)
        self.target_endpoint = os.getenv('TARGET_ENDPOINT', 'https://openrouter.ai/api/v1').rstrip('/')
        # Overrides the client's bearer token when set
        self.target_api_key = os.getenv('TARGET_API_KEY') or None

        # Model configuration
        self.model_mapping = self._parse_model_mapping(os.getenv('MODEL_MAPPING', ''))

        # Upstream timeouts (seconds)
        self.request_timeout = self._get_int('REQUEST_TIMEOUT', 120)
        self.stream_timeout = self._get_int('STREAM_TIMEOUT', 600)

        # Behavior
        self.skip_ssl_verify = os.getenv('SKIP_SSL_VERIFY', 'false').lower() == 'true'
        self.log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.max_log_entries = self._get_int('MAX_LOG_ENTRIES', 100)

    @property
    def chat_completions_url(self) -> str:
        return f"{self.target_endpoint}/chat/completions"

    def _get_int(self, name: str, default: int) -> int:
        value = os.getenv(name)
        if value is None or value == '':
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid integer for {name}={value!r}, using {default}")
            return default

    def _parse_model_mapping(self, mapping_str: str) -> dict:
        """Parse model mapping from environment (format: source=target,source2=target2)."""
        mapping = {}
        if not mapping_str:
            return mapping

        for pair in mapping_str.split(','):
            if '=' in pair:
                source, target = pair.split('=', 1)
                mapping[source.strip()] = target.strip()

        return mapping

    def map_model_name(self, claude_model: str) -> str:
        """Map Claude model name to target model name; unmapped names pass through."""
        if claude_model in self.model_mapping:
            mapped = self.model_mapping[claude_model]
            logger.info(f"Model mapping: {claude_model} -> {mapped}")
            return mapped

        return claude_model

    def is_api_key_configured(self) -> bool:
        """Check if a target API key override is configured."""
        return bool(self.target_api_key)

    def get_verify_ssl(self) -> bool:
        """Get SSL verification setting."""
        return not self.skip_ssl_verify

    def to_dict(self) -> dict:
        """Return configuration as dictionary (for API response)."""
        return {
            'host': self.host,
            'port': self.port,
            'target_endpoint': self.target_endpoint,
            'model_mapping': self.model_mapping,
            'request_timeout': self.request_timeout,
            'stream_timeout': self.stream_timeout,
            'api_key_configured': self.is_api_key_configured(),
            'ssl_verify': self.get_verify_ssl(),
            'log_level': self.log_level,
        }
