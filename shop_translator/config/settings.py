"""
Centralized Configuration for Shop Translator
=============================================
All configuration values in one place, configurable via environment variables.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    elif val in ("false", "0", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    try:
        return int(os.environ.get(key, default))
    except (ValueError, TypeError):
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.environ.get(key, default))
    except (ValueError, TypeError):
        return default


APP_DIR = os.environ.get(
    'SHOP_TRANSLATOR_APP_DIR',
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
)


@dataclass
class ServerConfig:
    """Flask server configuration."""
    host: str = field(default_factory=lambda: os.environ.get("SHOP_TRANSLATOR_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: _get_int_env("SHOP_TRANSLATOR_PORT", 5002))
    debug: bool = field(default_factory=lambda: _get_bool_env("SHOP_TRANSLATOR_DEBUG", False))
    secret_key: str = field(default_factory=lambda: os.environ.get("SECRET_KEY", "dev-key-change-in-production"))
    start_workers: bool = field(default_factory=lambda: _get_bool_env("START_WORKERS", True))

    # CORS settings
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:5002",
        "http://127.0.0.1:5002"
    ])


@dataclass
class ApiConfig:
    """Chat-completion endpoint configuration."""
    base_url: str = field(default_factory=lambda: os.environ.get("GPT_API_URL", "https://api.openai.com/v1").rstrip('/'))
    api_key: str = field(default_factory=lambda: os.environ.get("GPT_API_KEY", ""))
    model: str = field(default_factory=lambda: os.environ.get("GPT_MODEL", "gpt-4o"))
    temperature: float = field(default_factory=lambda: _get_float_env("GPT_TEMPERATURE", 0.3))

    # Timeouts (seconds)
    connect_timeout: float = field(default_factory=lambda: _get_float_env("API_CONNECT_TIMEOUT", 10.0))
    timeout: float = field(default_factory=lambda: _get_float_env("TRANSLATION_TIMEOUT", 45.0))
    long_text_timeout: float = field(default_factory=lambda: _get_float_env("LONG_TEXT_TIMEOUT", 60.0))
    health_check_timeout: float = field(default_factory=lambda: _get_float_env("API_HEALTH_TIMEOUT", 5.0))

    # Token sizing
    min_tokens: int = field(default_factory=lambda: _get_int_env("MIN_DYNAMIC_TOKENS", 2000))
    max_tokens: int = field(default_factory=lambda: _get_int_env("MAX_DYNAMIC_TOKENS", 8000))
    model_token_limit: int = field(default_factory=lambda: _get_int_env("TRANSLATION_MODEL_TOKEN_LIMIT", 6000))
    token_safety_margin: int = field(default_factory=lambda: _get_int_env("TOKEN_SAFETY_MARGIN", 512))
    min_response_tokens: int = field(default_factory=lambda: _get_int_env("MIN_RESPONSE_TOKENS", 256))

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    @property
    def models_url(self) -> str:
        return f"{self.base_url}/models"


@dataclass
class TranslationConfig:
    """Translation processing configuration."""
    # Chunk settings
    max_chunk_size: int = field(default_factory=lambda: _get_int_env("MAX_CHUNK_SIZE", 1000))
    long_text_threshold: int = field(default_factory=lambda: _get_int_env("LONG_TEXT_THRESHOLD", 1500))
    list_chunk_limit: int = field(default_factory=lambda: _get_int_env("LIST_CHUNK_LIMIT", 500))
    markup_only_threshold: int = field(default_factory=lambda: _get_int_env("MARKUP_ONLY_THRESHOLD", 2))
    max_reattach_depth: int = field(default_factory=lambda: _get_int_env("MAX_REATTACH_DEPTH", 2))

    # Retry settings
    max_retries: int = field(default_factory=lambda: _get_int_env("TRANSLATION_MAX_RETRIES", 3))
    retry_delay: float = field(default_factory=lambda: _get_float_env("TRANSLATION_RETRY_DELAY", 1.0))
    max_retry_delay: float = field(default_factory=lambda: _get_float_env("TRANSLATION_MAX_RETRY_DELAY", 10.0))

    # Outbound rate limiting
    max_requests_per_minute: int = field(default_factory=lambda: _get_int_env("MAX_REQUESTS_PER_MINUTE", 60))
    min_request_interval: float = field(default_factory=lambda: _get_float_env("MIN_REQUEST_INTERVAL", 0.2))

    # SEO description target band (characters)
    seo_description_min: int = field(default_factory=lambda: _get_int_env("SEO_DESCRIPTION_MIN", 50))
    seo_description_max: int = field(default_factory=lambda: _get_int_env("SEO_DESCRIPTION_MAX", 160))

    # CJK residual pass
    residue_max_parts: int = field(default_factory=lambda: _get_int_env("RESIDUE_MAX_PARTS", 10))


@dataclass
class ValidationConfig:
    """Completeness validator thresholds."""
    short_text_min: int = field(default_factory=lambda: _get_int_env("SHORT_TEXT_MIN", 15))
    short_text_max: int = field(default_factory=lambda: _get_int_env("SHORT_TEXT_MAX", 100))

    latin_ratio_default: float = field(default_factory=lambda: _get_float_env("LATIN_RATIO_DEFAULT", 0.7))
    latin_ratio_product: float = field(default_factory=lambda: _get_float_env("LATIN_RATIO_PRODUCT", 0.8))
    latin_ratio_technical: float = field(default_factory=lambda: _get_float_env("LATIN_RATIO_TECHNICAL", 0.75))

    mixing_ratio: float = field(default_factory=lambda: _get_float_env("MIXING_RATIO", 0.8))
    mixing_min_words: int = field(default_factory=lambda: _get_int_env("MIXING_MIN_WORDS", 10))

    min_ratio_html: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_HTML", 0.05))
    min_ratio_product_cjk: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_PRODUCT_CJK", 0.1))
    min_ratio_product: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_PRODUCT", 0.15))
    min_ratio_technical_cjk: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_TECHNICAL_CJK", 0.15))
    min_ratio_technical: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_TECHNICAL", 0.2))
    min_ratio_cjk: float = field(default_factory=lambda: _get_float_env("MIN_RATIO_CJK", 0.2))
    min_ratio: float = field(default_factory=lambda: _get_float_env("MIN_RATIO", 0.3))

    tag_tolerance_min: int = field(default_factory=lambda: _get_int_env("TAG_TOLERANCE_MIN", 10))
    tag_tolerance_ratio: float = field(default_factory=lambda: _get_float_env("TAG_TOLERANCE_RATIO", 0.3))

    cjk_density_ratio: float = field(default_factory=lambda: _get_float_env("CJK_DENSITY_RATIO", 0.15))
    cjk_density_ratio_technical: float = field(default_factory=lambda: _get_float_env("CJK_DENSITY_RATIO_TECHNICAL", 0.1))
    cjk_density_ratio_tag_heavy: float = field(default_factory=lambda: _get_float_env("CJK_DENSITY_RATIO_TAG_HEAVY", 0.08))
    cjk_absolute_min: int = field(default_factory=lambda: _get_int_env("CJK_ABSOLUTE_MIN", 50))
    cjk_absolute_ratio: float = field(default_factory=lambda: _get_float_env("CJK_ABSOLUTE_RATIO", 0.05))
    cjk_word_ratio: float = field(default_factory=lambda: _get_float_env("CJK_WORD_RATIO", 0.5))

    loose_min_ratio: float = field(default_factory=lambda: _get_float_env("LOOSE_MIN_RATIO", 0.1))
    residual_english_ratio: float = field(default_factory=lambda: _get_float_env("RESIDUAL_ENGLISH_RATIO", 0.6))


@dataclass
class QueueConfig:
    """Job queue configuration."""
    name: str = field(default_factory=lambda: os.environ.get("QUEUE_NAME", "translation"))
    concurrency: int = field(default_factory=lambda: _get_int_env("QUEUE_CONCURRENCY", 2))
    batch_concurrency: int = field(default_factory=lambda: _get_int_env("QUEUE_BATCH_CONCURRENCY", 1))
    max_attempts: int = field(default_factory=lambda: _get_int_env("QUEUE_MAX_ATTEMPTS", 3))
    backoff_delay: float = field(default_factory=lambda: _get_float_env("QUEUE_BACKOFF_DELAY", 2.0))
    max_backoff_delay: float = field(default_factory=lambda: _get_float_env("QUEUE_MAX_BACKOFF_DELAY", 60.0))
    batch_stagger: float = field(default_factory=lambda: _get_float_env("QUEUE_BATCH_STAGGER", 1.0))
    health_check_interval: float = field(default_factory=lambda: _get_float_env("QUEUE_HEALTH_CHECK_INTERVAL", 30.0))
    poll_interval: float = field(default_factory=lambda: _get_float_env("QUEUE_POLL_INTERVAL", 0.5))
    clean_grace: float = field(default_factory=lambda: _get_float_env("QUEUE_CLEAN_GRACE", 5.0))
    job_ttl: int = field(default_factory=lambda: _get_int_env("QUEUE_JOB_TTL", 7 * 24 * 3600))


@dataclass
class RedisConfig:
    """Redis backend configuration."""
    enabled: bool = field(default_factory=lambda: _get_bool_env("REDIS_ENABLED", True))
    url: Optional[str] = field(default_factory=lambda: os.environ.get("REDIS_URL") or None)
    host: str = field(default_factory=lambda: os.environ.get("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_int_env("REDIS_PORT", 6379))
    db: int = field(default_factory=lambda: _get_int_env("REDIS_DB", 0))
    password: Optional[str] = field(default_factory=lambda: os.environ.get("REDIS_PASSWORD") or None)
    socket_timeout: float = field(default_factory=lambda: _get_float_env("REDIS_SOCKET_TIMEOUT", 1.0))
    key_prefix: str = field(default_factory=lambda: os.environ.get("REDIS_KEY_PREFIX", "shop_translator"))


@dataclass
class CacheConfig:
    """Cache configuration."""
    enabled: bool = field(default_factory=lambda: _get_bool_env("CACHE_ENABLED", True))
    max_age_days: int = field(default_factory=lambda: _get_int_env("CACHE_MAX_AGE_DAYS", 30))


@dataclass
class LoggingConfig:
    """Logging configuration."""
    verbose_debug: bool = field(default_factory=lambda: _get_bool_env("VERBOSE_DEBUG", True))
    log_buffer_size: int = field(default_factory=lambda: _get_int_env("LOG_BUFFER_SIZE", 500))
    log_file_max_bytes: int = field(default_factory=lambda: _get_int_env("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024))
    log_file_backup_count: int = field(default_factory=lambda: _get_int_env("LOG_FILE_BACKUP_COUNT", 5))
    db_timeout: int = field(default_factory=lambda: _get_int_env("DB_TIMEOUT", 30))


@dataclass
class PathConfig:
    """Path configuration."""
    app_dir: str = field(default_factory=lambda: APP_DIR)

    @property
    def log_folder(self) -> Path:
        return Path(self.app_dir) / 'logs'

    @property
    def db_path(self) -> str:
        return os.path.join(self.app_dir, 'shop_translations.db')

    @property
    def cache_db_path(self) -> str:
        return os.path.join(self.app_dir, 'translation_cache.db')


@dataclass
class Config:
    """Main application configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    translation: TranslationConfig = field(default_factory=TranslationConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    def __post_init__(self):
        """Create necessary directories after initialization."""
        self._create_directories()
        self._validate()

    def _create_directories(self):
        """Create necessary directories."""
        os.makedirs(self.paths.log_folder, exist_ok=True)

    def _validate(self):
        """Validate configuration values."""
        if self.translation.max_chunk_size < 200:
            raise ValueError("max_chunk_size must be at least 200")
        if self.translation.long_text_threshold < self.translation.max_chunk_size:
            raise ValueError("long_text_threshold must not be smaller than max_chunk_size")
        if self.translation.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.queue.concurrency < 1 or self.queue.batch_concurrency < 1:
            raise ValueError("queue concurrency must be at least 1")
        if self.queue.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.translation.seo_description_min >= self.translation.seo_description_max:
            raise ValueError("seo_description_min must be below seo_description_max")
        for name in ('mixing_ratio', 'latin_ratio_default', 'latin_ratio_product', 'latin_ratio_technical'):
            value = getattr(self.validation, name)
            if value < 0 or value > 1:
                raise ValueError(f"{name} must be between 0 and 1")


# Global configuration instance
config = Config()
