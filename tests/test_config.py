"""
Unit Tests for Configuration System
"""
import pytest

from shop_translator.config.settings import (
    Config, ServerConfig, ApiConfig, TranslationConfig, QueueConfig, RedisConfig,
    _get_bool_env, _get_int_env, _get_float_env
)
from shop_translator.config.constants import (
    FailureKind, JobState, ResourceStatus, StrategyName,
    is_cjk_language, language_name, script_range
)


class TestEnvHelpers:
    """Test environment variable helper functions."""

    def test_get_bool_env_true_values(self, monkeypatch):
        for val in ["true", "1", "yes", "on", "TRUE", "True"]:
            monkeypatch.setenv("TEST_BOOL", val)
            assert _get_bool_env("TEST_BOOL", False) is True

    def test_get_bool_env_false_values(self, monkeypatch):
        for val in ["false", "0", "no", "off", "FALSE"]:
            monkeypatch.setenv("TEST_BOOL", val)
            assert _get_bool_env("TEST_BOOL", True) is False

    def test_get_bool_env_default(self, monkeypatch):
        monkeypatch.delenv("TEST_BOOL", raising=False)
        assert _get_bool_env("TEST_BOOL", True) is True

    def test_get_int_env_invalid(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "not_a_number")
        assert _get_int_env("TEST_INT", 99) == 99

    def test_get_float_env(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT", "3.14")
        assert _get_float_env("TEST_FLOAT", 0.0) == pytest.approx(3.14)


class TestSections:
    """Test configuration sections."""

    def test_server_env_override(self, monkeypatch):
        monkeypatch.setenv("SHOP_TRANSLATOR_HOST", "0.0.0.0")
        monkeypatch.setenv("SHOP_TRANSLATOR_PORT", "8080")
        server = ServerConfig()
        assert server.host == "0.0.0.0"
        assert server.port == 8080

    def test_api_base_url_trailing_slash(self, monkeypatch):
        monkeypatch.setenv("GPT_API_URL", "https://llm.example.com/v1/")
        assert ApiConfig().base_url == "https://llm.example.com/v1"

    def test_translation_defaults(self):
        translation = TranslationConfig()
        assert translation.max_chunk_size == 1000
        assert translation.max_reattach_depth == 2
        assert translation.seo_description_min < translation.seo_description_max

    def test_queue_defaults(self, monkeypatch):
        monkeypatch.delenv("QUEUE_HEALTH_CHECK_INTERVAL", raising=False)
        queue = QueueConfig()
        assert queue.concurrency == 2
        assert queue.batch_concurrency == 1
        assert queue.health_check_interval == 30.0
        assert queue.clean_grace == 5.0

    def test_redis_url_blank_is_none(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "")
        assert RedisConfig().url is None


class TestValidation:
    """Test range validation of the config container."""

    def test_default_config_is_valid(self):
        assert Config() is not None

    def test_chunk_size_too_small(self):
        with pytest.raises(ValueError, match="max_chunk_size"):
            Config(translation=TranslationConfig(max_chunk_size=100))

    def test_threshold_below_chunk_size(self):
        with pytest.raises(ValueError, match="long_text_threshold"):
            Config(translation=TranslationConfig(max_chunk_size=1000, long_text_threshold=500))

    def test_zero_concurrency(self):
        with pytest.raises(ValueError, match="concurrency"):
            Config(queue=QueueConfig(concurrency=0))

    def test_seo_band_inverted(self):
        with pytest.raises(ValueError, match="seo_description_min"):
            Config(translation=TranslationConfig(seo_description_min=200, seo_description_max=160))


class TestConstants:
    """Test enums and language helpers."""

    def test_enum_values(self):
        assert JobState.WAITING.value == 'waiting'
        assert ResourceStatus.PENDING.value == 'pending'
        assert StrategyName.SIMPLIFIED.value == 'simplified'
        assert FailureKind.TRANSIENT.value == 'transient'

    def test_cjk_languages(self):
        assert is_cjk_language('zh-CN')
        assert is_cjk_language('ja')
        assert is_cjk_language('ko')
        assert not is_cjk_language('fr')
        assert not is_cjk_language(None)

    def test_script_range(self):
        assert script_range('zh-TW')
        assert script_range('ru')
        assert script_range('de') == ''

    def test_language_name(self):
        assert language_name('zh-CN') == 'Simplified Chinese'
        assert language_name('fr-CA') == 'French'
        assert language_name('xx') == 'xx'
