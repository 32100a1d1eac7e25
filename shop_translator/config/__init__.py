"""
Shop Translator - Configuration Module
"""
from shop_translator.config.settings import Config, config
from shop_translator.config.constants import (
    LANGUAGE_NAMES,
    FieldName,
    FailureKind,
    JobState,
    LogLevel,
    ResourceStatus,
    StrategyName,
    is_cjk_language,
    language_name
)

__all__ = [
    "Config",
    "config",
    "LANGUAGE_NAMES",
    "FieldName",
    "FailureKind",
    "JobState",
    "LogLevel",
    "ResourceStatus",
    "StrategyName",
    "is_cjk_language",
    "language_name"
]
