"""Tests for environment-driven configuration."""

from config import Config


def test_defaults(monkeypatch):
    for name in ('PROXY_HOST', 'PROXY_PORT', 'TARGET_ENDPOINT', 'TARGET_API_KEY', 'MODEL_MAPPING',
                 'REQUEST_TIMEOUT', 'STREAM_TIMEOUT', 'SKIP_SSL_VERIFY'):
        monkeypatch.delenv(name, raising=False)

    config = Config()

    assert config.port == 5000
    assert config.chat_completions_url == 'https://openrouter.ai/api/v1/chat/completions'
    assert config.target_api_key is None
    assert config.model_mapping == {}
    assert config.request_timeout == 120
    assert config.stream_timeout == 600
    assert config.get_verify_ssl() is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv('PROXY_PORT', '8080')
    monkeypatch.setenv('TARGET_ENDPOINT', 'http://localhost:11434/v1/')
    monkeypatch.setenv('TARGET_API_KEY', 'sk-server')
    monkeypatch.setenv('SKIP_SSL_VERIFY', 'true')

    config = Config()

    assert config.port == 8080
    assert config.chat_completions_url == 'http://localhost:11434/v1/chat/completions'
    assert config.is_api_key_configured()
    assert config.get_verify_ssl() is False


def test_invalid_integer_falls_back(monkeypatch):
    monkeypatch.setenv('REQUEST_TIMEOUT', 'soon')

    assert Config().request_timeout == 120


def test_model_mapping(monkeypatch):
    monkeypatch.setenv('MODEL_MAPPING', 'claude-sonnet-4=gpt-4o, claude-haiku=gpt-4o-mini,broken')

    config = Config()

    assert config.model_mapping == {'claude-sonnet-4': 'gpt-4o', 'claude-haiku': 'gpt-4o-mini'}
    assert config.map_model_name('claude-haiku') == 'gpt-4o-mini'
    assert config.map_model_name('llama3') == 'llama3'


def test_to_dict_hides_credentials(monkeypatch):
    monkeypatch.setenv('TARGET_API_KEY', 'sk-secret')

    assert 'sk-secret' not in str(Config().to_dict())
