"""Shared fixtures for cc-bridge tests."""

import pytest

from app import create_app
from config import Config


@pytest.fixture
def config(monkeypatch):
    for name in ('TARGET_API_KEY', 'MODEL_MAPPING', 'TARGET_ENDPOINT', 'SKIP_SSL_VERIFY'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('TARGET_ENDPOINT', 'https://upstream.test/v1')
    return Config()


@pytest.fixture
def app(config):
    app = create_app(config)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
