"""
Completeness Validator
======================
Heuristics deciding whether a translation attempt is complete enough to keep.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

from shop_translator.config import config
from shop_translator.config.constants import (
    ALLOWED_ENGLISH_TERMS,
    BRAND_WORDS,
    TEXT_TOO_LONG_SENTINEL,
    is_cjk_language,
    script_range
)
from shop_translator.config.settings import ValidationConfig
from shop_translator.utils.chunking import is_likely_html
from shop_translator.utils.language_detection import (
    has_target_script,
    is_latin_only,
    is_product_content,
    is_technical_content,
    latin_words,
    script_profile
)
from shop_translator.utils.logging import get_logger

OPEN_TAG = re.compile(r'<[^/!][^>]*>')
CLOSE_TAG = re.compile(r'</[^>]+>')

TRUNCATION_PATTERNS = [
    re.compile(r"^(?:Here is|Here's|I'll translate|The translation|Translation:|翻译如下|翻译结果)", re.IGNORECASE),
    re.compile(r'\.{3}$'),
    re.compile(r'\[继续\]|\[continued\]|\[more\]', re.IGNORECASE),
    re.compile(TEXT_TOO_LONG_SENTINEL),
]


class ValidationCode:
    """Reason codes attached to validation results."""
    OK = 'ok'
    TRIVIAL = 'trivial'
    EMPTY = 'empty'
    IDENTICAL = 'identical'
    MISSING_SCRIPT = 'missing_target_script'
    EXCESSIVE_LATIN = 'excessive_latin'
    MIXED = 'untranslated_words'
    TRUNCATED = 'truncated'
    TOO_LONG = 'too_long_sentinel'
    TOO_SHORT = 'too_short'
    TAG_MISMATCH = 'tag_mismatch'
    LOW_DENSITY = 'low_cjk_density'


LENGTH_CODES = frozenset({ValidationCode.TRUNCATED, ValidationCode.TOO_LONG, ValidationCode.TOO_SHORT})


@dataclass
class ValidationResult:
    """Verdict on one translation attempt."""
    is_complete: bool
    reason: str
    code: str = ValidationCode.OK

    @property
    def length_related(self) -> bool:
        return self.code in LENGTH_CODES


def _accept(reason: str, code: str = ValidationCode.OK) -> ValidationResult:
    return ValidationResult(True, reason, code)


def _reject(reason: str, code: str) -> ValidationResult:
    return ValidationResult(False, reason, code)


class CompletenessValidator:
    """Ordered, short-circuiting completeness checks."""

    def __init__(self, settings: ValidationConfig = None):
        self.settings = settings or config.validation

    def validate(
        self,
        original: str,
        translated: str,
        lang: str,
        resource_type: Optional[str] = None
    ) -> ValidationResult:
        """
        Validate a translation attempt.

        Args:
            original: Source text sent to the model
            translated: Model output after cleanup
            lang: Target language code
            resource_type: Resource type, when known ('product' enables product rules)

        Returns:
            ValidationResult with is_complete, reason and a reason code
        """
        s = self.settings
        original = original or ''
        translated = (translated or '').strip()

        if len(original.strip()) <= s.short_text_min:
            return _accept('trivial length', ValidationCode.TRIVIAL)

        if not translated:
            return _reject('translation is empty', ValidationCode.EMPTY)

        cjk_target = is_cjk_language(lang)
        technical = is_technical_content(original)
        product = resource_type == 'product' or is_product_content(original)
        is_html = is_likely_html(original) or ('<' in original and '>' in original)

        if len(original) <= s.short_text_max:
            return self._validate_short(original, translated, lang, cjk_target, product, technical)

        if not is_html and not product:
            result = self._check_mixing(original, translated)
            if result:
                return result

        if is_html or product:
            if TEXT_TOO_LONG_SENTINEL in translated:
                return _reject('model reported the text as too long', ValidationCode.TOO_LONG)
        else:
            for pattern in TRUNCATION_PATTERNS:
                if pattern.search(translated):
                    code = ValidationCode.TOO_LONG if pattern.pattern == TEXT_TOO_LONG_SENTINEL else ValidationCode.TRUNCATED
                    return _reject(f"incomplete translation pattern: {pattern.pattern}", code)

        ratio = len(translated) / len(original)
        min_ratio = self._min_length_ratio(is_html, product, technical, cjk_target)
        if ratio < min_ratio:
            return _reject(
                f"translation too short: ratio {ratio:.2f} below {min_ratio:.2f}",
                ValidationCode.TOO_SHORT
            )

        if is_html:
            result = self._check_tag_balance(original, translated)
            if result:
                return result

        if product and cjk_target:
            result = self._check_cjk_density(translated, lang, technical)
            if result:
                return result

        return _accept('translation complete')

    def _validate_short(self, original, translated, lang, cjk_target, product, technical) -> ValidationResult:
        s = self.settings
        if cjk_target and original.strip() == translated and is_latin_only(original):
            return _reject('short Latin text returned unchanged for a CJK target', ValidationCode.IDENTICAL)

        if cjk_target and not has_target_script(translated, lang):
            return _reject('no target-script characters in translation', ValidationCode.MISSING_SCRIPT)

        if script_range(lang):
            latin = len(re.findall(r'[A-Za-z]', translated))
            ratio = latin / max(len(translated), 1)
            threshold = s.latin_ratio_default
            if product:
                threshold = s.latin_ratio_product
            elif technical:
                threshold = s.latin_ratio_technical
            if ratio > threshold:
                return _reject(
                    f"too much Latin text: {ratio:.0%} above {threshold:.0%}",
                    ValidationCode.EXCESSIVE_LATIN
                )

        return _accept('short text accepted')

    def _check_mixing(self, original: str, translated: str) -> Optional[ValidationResult]:
        s = self.settings
        brands = {brand.lower() for brand in BRAND_WORDS}
        original_words = [w for w in original.lower().split() if len(w) > 3 and w not in brands]
        if len(original_words) < s.mixing_min_words:
            return None
        translated_words = translated.lower().split()
        survivors = sum(1 for word in original_words if any(word in t for t in translated_words))
        ratio = survivors / len(original_words)
        if ratio > s.mixing_ratio:
            return _reject(
                f"original and translation mixed: {ratio:.0%} of words untranslated",
                ValidationCode.MIXED
            )
        return None

    def _min_length_ratio(self, is_html: bool, product: bool, technical: bool, cjk_target: bool) -> float:
        s = self.settings
        if is_html:
            return s.min_ratio_html
        if product:
            return s.min_ratio_product_cjk if cjk_target else s.min_ratio_product
        if technical:
            return s.min_ratio_technical_cjk if cjk_target else s.min_ratio_technical
        return s.min_ratio_cjk if cjk_target else s.min_ratio

    def _check_tag_balance(self, original: str, translated: str) -> Optional[ValidationResult]:
        s = self.settings
        open_original = len(OPEN_TAG.findall(original))
        close_original = len(CLOSE_TAG.findall(original))
        open_translated = len(OPEN_TAG.findall(translated))
        close_translated = len(CLOSE_TAG.findall(translated))

        allowed = max(s.tag_tolerance_min, int(open_original * s.tag_tolerance_ratio))
        imbalance = abs((open_original - close_original) - (open_translated - close_translated))
        if imbalance > allowed or abs(open_original - open_translated) > allowed:
            return _reject(f"HTML tags out of balance (allowed difference {allowed})", ValidationCode.TAG_MISMATCH)
        return None

    def _check_cjk_density(self, translated: str, lang: str, technical: bool) -> Optional[ValidationResult]:
        s = self.settings
        target_chars, residual_words, ratio = script_profile(translated, lang)

        min_ratio = s.cjk_density_ratio_technical if technical else s.cjk_density_ratio
        if len(re.findall(r'<[^>]+>', translated)) > 10:
            min_ratio = s.cjk_density_ratio_tag_heavy

        prose_length = len(re.sub(r'<[^>]+>', ' ', translated))
        passes_ratio = ratio >= min_ratio
        passes_absolute = target_chars > max(s.cjk_absolute_min, prose_length * s.cjk_absolute_ratio)
        passes_relative = target_chars > residual_words * s.cjk_word_ratio

        if passes_ratio or passes_absolute or passes_relative:
            return None
        return _reject(
            f"not enough target-script text: ratio {ratio:.0%} below {min_ratio:.0%}",
            ValidationCode.LOW_DENSITY
        )

    def quality_warnings(self, original: str, translated: str, lang: str) -> List[str]:
        """Non-blocking observations recorded alongside an accepted translation."""
        warnings = []
        original = original or ''
        translated = translated or ''

        if original.strip() == translated.strip() and len(original) > 20:
            warnings.append('translation identical to original')

        if is_likely_html(original):
            original_tags = len(re.findall(r'<[^>]+>', original))
            translated_tags = len(re.findall(r'<[^>]+>', translated))
            if original_tags != translated_tags:
                warnings.append(f"tag count changed: {original_tags} -> {translated_tags}")

        for brand in BRAND_WORDS:
            before = original.count(brand)
            if before and translated.count(brand) != before:
                warnings.append(f"brand term altered: {brand}")

        if len(original) > 50 and len(translated) < len(original) * 0.3:
            warnings.append('translation much shorter than original')

        if script_range(lang) and not has_target_script(translated, lang):
            warnings.append('target script missing')

        if is_cjk_language(lang):
            residual = [
                w for w in latin_words(re.sub(r'<[^>]+>', ' ', translated))
                if len(w) > 2 and w.lower() not in ALLOWED_ENGLISH_TERMS and w not in BRAND_WORDS
            ]
            source_words = latin_words(re.sub(r'<[^>]+>', ' ', original))
            if source_words and len(residual) > len(source_words) * self.settings.residual_english_ratio:
                warnings.append(f"excessive residual English: {len(residual)} words")

        if warnings:
            get_logger().translation_logger.debug(f"Quality warnings: {'; '.join(warnings)}")
        return warnings


# Global validator instance
_validator_instance: Optional[CompletenessValidator] = None


def get_validator() -> CompletenessValidator:
    """Get or create the global validator instance."""
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = CompletenessValidator()
    return _validator_instance
