# Path: content_installer/tests/conftest.py
"""
Shared test fixtures.

- settings: ConfigLoader factory isolated from the real environment
- serve: starts aiohttp test servers on localhost
- write_document: writes the JSON configuration document
"""

import json

import pytest
from aiohttp.test_utils import TestServer

from content_installer.core.config_loader import ConfigLoader


@pytest.fixture
def settings(tmp_path):
    """Factory for ConfigLoader bound to tmp_path with zero backoff."""
    def _settings(**overrides):
        values = {
            'data_dir': tmp_path / 'data',
            'cache_dir': tmp_path / 'cache',
            'config_path': tmp_path / 'config.json',
            'retry_attempts': 3,
            'retry_delay': 0,
            'retry_jitter': 0,
            'request_timeout': 10,
            'connect_timeout': 5,
        }
        values.update(overrides)
        return ConfigLoader(env={}, **values)
    return _settings


@pytest.fixture
def write_document(tmp_path):
    def _write(document: dict):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps(document))
        return path
    return _write


@pytest.fixture
async def serve():
    """Start aiohttp applications on localhost; closed after the test."""
    servers = []

    async def _serve(app):
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _serve

    for server in servers:
        await server.close()
