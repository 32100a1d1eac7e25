"""
Language Detection Utilities
=============================
Script-level statistics used to judge whether text reads as the target language.
"""
import re
from typing import List, Tuple

from shop_translator.config.constants import (
    BRAND_WORDS,
    CJK_CHAR_CLASS,
    PRODUCT_KEYWORDS,
    TECHNICAL_KEYWORDS,
    is_cjk_language,
    script_range
)

CJK_CHAR = re.compile(f'[{CJK_CHAR_CLASS}]')
LATIN_CHAR = re.compile(r'[A-Za-z]')
LATIN_WORD = re.compile(r'(?<![A-Za-z])[A-Za-z]+(?![A-Za-z])')
TAG = re.compile(r'<[^>]+>')
URL = re.compile(r'https?://\S+')
MEASUREMENT = re.compile(r'\b\d+(?:\.\d+)?\s*(?:mm|cm|m|kg|g|lb|lbs|oz|in|inch|inches|ft|ml|l)\b', re.IGNORECASE)


def count_cjk(text: str) -> int:
    """Number of CJK ideographs, kana and hangul in text."""
    return len(CJK_CHAR.findall(text or ''))


def count_latin(text: str) -> int:
    return len(LATIN_CHAR.findall(text or ''))


def latin_ratio(text: str) -> float:
    """Share of Latin letters among all non-whitespace characters."""
    compact = re.sub(r'\s', '', text or '')
    if not compact:
        return 0.0
    return count_latin(compact) / len(compact)


def is_latin_only(text: str) -> bool:
    """No character outside ASCII letters, digits, whitespace and punctuation."""
    return bool(re.fullmatch(r'[\x00-\x7F]*', text or '')) and count_latin(text) > 0


def has_target_script(text: str, lang: str) -> bool:
    """
    Check the text contains at least one character of the target script.

    Latin-script targets always pass.
    """
    char_range = script_range(lang)
    if not char_range:
        return True
    return re.search(f'[{char_range}]', text or '') is not None


def latin_words(text: str) -> List[str]:
    return LATIN_WORD.findall(text or '')


def is_technical_content(text: str) -> bool:
    lowered = (text or '').lower()
    return any(keyword in lowered for keyword in TECHNICAL_KEYWORDS)


def is_product_content(text: str) -> bool:
    lowered = (text or '').lower()
    return any(keyword in lowered for keyword in PRODUCT_KEYWORDS)


def strip_non_linguistic(text: str) -> str:
    """Remove tags, URLs, brand names and measurements, leaving prose."""
    text = TAG.sub(' ', text or '')
    text = URL.sub(' ', text)
    for brand in BRAND_WORDS:
        text = re.sub(rf'(?<![A-Za-z]){re.escape(brand)}(?![A-Za-z])', ' ', text, flags=re.IGNORECASE)
    text = MEASUREMENT.sub(' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def script_profile(text: str, lang: str) -> Tuple[int, int, float]:
    """
    Summarize how much of a translation is in the target script.

    Returns:
        Tuple of (target_script_chars, residual_latin_words, target_ratio)
    """
    prose = strip_non_linguistic(text)
    if is_cjk_language(lang):
        target_chars = count_cjk(prose)
    else:
        char_range = script_range(lang)
        target_chars = len(re.findall(f'[{char_range}]', prose)) if char_range else count_latin(prose)
    words = latin_words(prose)
    compact = re.sub(r'\s', '', prose)
    ratio = target_chars / len(compact) if compact else 0.0
    return target_chars, len(words), ratio
