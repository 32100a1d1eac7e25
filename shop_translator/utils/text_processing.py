"""
Text Processing Utilities
=========================
Response cleanup and token budgeting for chat-completion requests.
"""
import re

from shop_translator.config import config
from shop_translator.config.constants import is_cjk_language
from shop_translator.utils.language_detection import count_cjk
from shop_translator.utils.logging import get_logger

REASONING_TAGS = ('think', 'thinking', 'reasoning', 'reflection')

RESPONSE_PREFIXES = [
    r'^\s*Here is the translation[^:\n]*:?\s*\n*',
    r"^\s*Here's the translation[^:\n]*:?\s*\n*",
    r'^\s*\*\*Translation:?\*\*\s*\n*',
    r'^\s*Translation:?\s*\n+',
    r'^\s*Translated text:?\s*\n*',
    r'^\s*翻译如下[:：]?\s*\n*',
    r'^\s*翻译结果[:：]?\s*\n*',
    r'^\s*```[a-z]*\s*\n',
    r'\n\s*```\s*$',
]

TRAILING_NOTES = [
    r'\n+\*?\*?Note:.*$',
    r'\n+\[Note:.*?\]\s*$',
    r'\n+（注[:：].*$',
]


def normalize_text(text: str) -> str:
    """Normalize line endings and collapse runs of blank lines."""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def clean_translation_response(translation: str, original: str = "") -> str:
    """
    Remove model artifacts from a chat-completion response.

    Strips reasoning blocks, "Here is the translation" style preambles, code
    fences, trailing notes and wrapping quotes that the source did not have.

    Args:
        translation: Raw message content
        original: Source text, used to keep quotes the source itself had

    Returns:
        Cleaned translation
    """
    if not translation:
        return ""

    original_len = len(translation)
    cleaned = translation.strip()

    for tag in REASONING_TAGS:
        cleaned = re.sub(rf'<{tag}>.*?</{tag}>', '', cleaned, flags=re.DOTALL | re.IGNORECASE)
        cleaned = re.sub(rf'<{tag}>.*$', '', cleaned, flags=re.DOTALL | re.IGNORECASE)
    cleaned = cleaned.strip()

    for pattern in RESPONSE_PREFIXES:
        cleaned = re.sub(pattern, '', cleaned, flags=re.IGNORECASE)
    for pattern in TRAILING_NOTES:
        cleaned = re.sub(pattern, '', cleaned, flags=re.IGNORECASE | re.DOTALL)
    cleaned = cleaned.strip()

    source = (original or '').strip()
    for left, right in (('"', '"'), ("'", "'"), ('“', '”'), ('「', '」')):
        if (len(cleaned) > 2 and cleaned.startswith(left) and cleaned.endswith(right)
                and not (source.startswith(left) and source.endswith(right))):
            cleaned = cleaned[1:-1].strip()
            break

    if len(cleaned) != original_len:
        get_logger().translation_logger.debug(f"Cleaned response {original_len} -> {len(cleaned)} chars")
    return cleaned


def estimate_token_count(text: str, target_lang: str = None) -> int:
    """Rough token estimate: CJK characters are denser than Latin ones."""
    if not text:
        return 0
    cjk_chars = count_cjk(text)
    other_chars = len(text) - cjk_chars
    estimate = cjk_chars / 1.5 + other_chars / 4
    if target_lang and is_cjk_language(target_lang):
        estimate *= 1.2
    return int(estimate + 0.999)


def calculate_dynamic_token_limit(text: str, target_lang: str = None) -> int:
    """Response budget proportional to input length, clamped to the configured range."""
    multiplier = 4 if target_lang and is_cjk_language(target_lang) else 2.5
    limit = int(len(text or '') * multiplier)
    return max(config.api.min_tokens, min(limit, config.api.max_tokens))


def calculate_safe_max_tokens(text: str, target_lang: str = None, ceiling: int = None) -> int:
    """
    max_tokens that leaves room for the prompt within the model's window.

    Args:
        text: User content
        target_lang: Target language
        ceiling: Override for the dynamic limit (used by long-text retries)
    """
    api = config.api
    dynamic = ceiling if ceiling is not None else calculate_dynamic_token_limit(text, target_lang)
    available = api.model_token_limit - estimate_token_count(text, target_lang) - api.token_safety_margin
    return min(dynamic, max(api.min_response_tokens, available))
