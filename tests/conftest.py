"""
Shared test setup: isolated paths, no Redis, no real API calls.
"""
import os
import tempfile
from unittest.mock import Mock

import pytest

# Setup test environment before any shop_translator import
os.environ.setdefault('SHOP_TRANSLATOR_APP_DIR', tempfile.mkdtemp(prefix='shop_translator_tests_'))
os.environ.setdefault('VERBOSE_DEBUG', 'false')
os.environ.setdefault('REDIS_ENABLED', 'false')
os.environ.setdefault('CACHE_ENABLED', 'false')
os.environ.setdefault('START_WORKERS', 'false')
os.environ.setdefault('GPT_API_KEY', 'test-key')
os.environ.setdefault('MIN_REQUEST_INTERVAL', '0')


@pytest.fixture
def make_client():
    """Mock API client whose chat() returns the given responses in order."""
    def factory(*responses):
        client = Mock()
        client.chat.side_effect = list(responses)
        client.is_healthy.return_value = True
        return client
    return factory
