"""
Shop Translator - Utility Functions
"""
from shop_translator.utils.chunking import (
    chunk_text,
    is_likely_html,
    is_markup_only,
    split_list_segments
)
from shop_translator.utils.html_protection import (
    PlaceholderLossError,
    PlaceholderProtector,
    find_missing_placeholders,
    get_protector
)
from shop_translator.utils.language_detection import (
    count_cjk,
    has_target_script,
    latin_ratio
)
from shop_translator.utils.text_processing import (
    clean_translation_response,
    normalize_text
)
from shop_translator.utils.retry import RetryPolicy
from shop_translator.utils.logging import (
    LogBuffer,
    AppLogger,
    get_logger
)

__all__ = [
    "chunk_text",
    "is_likely_html",
    "is_markup_only",
    "split_list_segments",
    "PlaceholderLossError",
    "PlaceholderProtector",
    "find_missing_placeholders",
    "get_protector",
    "count_cjk",
    "has_target_script",
    "latin_ratio",
    "clean_translation_response",
    "normalize_text",
    "RetryPolicy",
    "LogBuffer",
    "AppLogger",
    "get_logger"
]
