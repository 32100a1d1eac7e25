"""
Handle Translator
=================
Translates URL handles into short, URL-safe slugs in the target language.
"""
import re
import time
from typing import Callable, List

from shop_translator.config import config
from shop_translator.config.constants import (
    FieldName,
    FailureKind,
    HANDLE_FILLER_WORDS,
    HANDLE_MAX_UNITS,
    StrategyName,
    is_cjk_language
)
from shop_translator.config.settings import TranslationConfig
from shop_translator.models.translation import FieldResult
from shop_translator.services import prompts
from shop_translator.services.api_client import TranslationApiClient, get_api_client
from shop_translator.utils.logging import get_logger
from shop_translator.utils.retry import RetryPolicy

UNIT_SEPARATORS = re.compile(r'[\s,，、/|;；·]+')


def slugify(text: str) -> str:
    """Lowercase, URL-safe slug; keeps Unicode letters so CJK handles survive."""
    slug = re.sub(r'[^\w]+|_+', '-', (text or '').lower())
    return re.sub(r'-{2,}', '-', slug).strip('-')


def normalize_handle(handle: str) -> str:
    """Handle to space-delimited words with filler words removed."""
    words = [w for w in re.split(r'[-_\s]+', (handle or '').lower()) if w]
    kept = [w for w in words if w not in HANDLE_FILLER_WORDS]
    return ' '.join(kept or words)


def dedupe_units(units: List[str]) -> List[str]:
    """Drop repeated units, and units already contained in an earlier one."""
    result: List[str] = []
    for unit in units:
        lowered = unit.lower()
        if any(lowered == kept.lower() or lowered in kept.lower() for kept in result):
            continue
        result.append(unit)
    return result


class HandleTranslator:
    """Slug flow: normalize, translate by semantic units, dedupe, cap, slugify."""

    def __init__(
        self,
        client: TranslationApiClient = None,
        settings: TranslationConfig = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client or get_api_client()
        self.settings = settings or config.translation
        self.retry_policy = RetryPolicy(self.settings.retry_delay, self.settings.max_retry_delay)
        self.sleep = sleep
        self.logger = get_logger().translation_logger

    def max_units(self, lang: str) -> int:
        return HANDLE_MAX_UNITS['cjk' if is_cjk_language(lang) else 'default']

    def translate(self, handle: str, lang: str) -> FieldResult:
        original_slug = slugify(handle) or 'item'
        fallback = f"{original_slug}-{slugify(lang)}"
        words = normalize_handle(handle)

        response = None
        for attempt in range(self.settings.max_retries):
            if attempt > 0:
                self.sleep(self.retry_policy.delay(attempt - 1))
            response = self.client.chat(prompts.build_handle_prompt(lang), words, lang)
            if response.success or response.failure != FailureKind.TRANSIENT:
                break

        if not response.success:
            self.logger.warning(f"Handle '{handle}' not translated: {response.error}")
            return FieldResult(
                FieldName.HANDLE, handle, fallback, False, StrategyName.ORIGINAL,
                [f"handle fallback: {response.error}"]
            )

        units = [u for u in UNIT_SEPARATORS.split(response.text.strip()) if u]
        units = dedupe_units(units)
        cap = self.max_units(lang)
        notes = []
        if len(units) > cap:
            notes.append(f"handle capped at {cap} units (from {len(units)})")
            units = units[:cap]

        slug = slugify('-'.join(units))
        if not slug:
            return FieldResult(
                FieldName.HANDLE, handle, fallback, False, StrategyName.ORIGINAL,
                ['translated handle was empty after normalization']
            )
        return FieldResult(FieldName.HANDLE, handle, slug, True, StrategyName.HANDLE, notes)

