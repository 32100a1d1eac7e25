"""
Strategy Cascade
================
Ordered translation attempts for one piece of text.

General fields run:

1. ENHANCED            full prompt, retried with backoff on transient errors
2. RAISED_THRESHOLD    one retry with long-text allowances, for length
                       failures on borderline-long text
3. STRIPPED_ATTRIBUTES class/style/id/data-* removed, when that shrinks the
                       text by at least 20%
4. SIMPLIFIED          minimal prompt, loose acceptance
5. ORIGINAL            give up and hand back the source text

Titles and SEO descriptions use their own prompts; list items go through a
JSON array batch.
"""
import json
import time
from typing import Callable, List, Optional

from shop_translator.config import config
from shop_translator.config.constants import FailureKind, FieldName, StrategyName, is_cjk_language
from shop_translator.config.settings import TranslationConfig
from shop_translator.models.translation import StrategyOutcome
from shop_translator.services import prompts
from shop_translator.services.api_client import TranslationApiClient, get_api_client
from shop_translator.services.cache_service import TranslationCache
from shop_translator.services.validator import CompletenessValidator, get_validator
from shop_translator.utils.chunking import is_likely_html, is_markup_only
from shop_translator.utils.html_protection import placeholder_tokens, strip_non_essential_attributes
from shop_translator.utils.language_detection import has_target_script
from shop_translator.utils.logging import get_logger
from shop_translator.utils.retry import RetryPolicy

TITLE_FIELDS = (FieldName.TITLE, FieldName.SEO_TITLE)
BORDERLINE_RATIO = 0.7
MIN_STRIP_SHRINK = 0.2
SENTENCE_TERMINATORS = '.!?。！？'


def trim_to_length(text: str, max_length: int) -> str:
    """Cut text to max_length at the last sentence end, else the last word boundary."""
    if len(text) <= max_length:
        return text
    window = text[:max_length]
    sentence_end = max(window.rfind(mark) for mark in SENTENCE_TERMINATORS)
    if sentence_end >= max_length // 2:
        return window[:sentence_end + 1].strip()
    space = window.rfind(' ')
    if space >= max_length // 2:
        return window[:space].rstrip(' ,;:')
    return window.strip()


class StrategyCascade:
    """Runs the fallback strategies against the translation API."""

    def __init__(
        self,
        client: TranslationApiClient = None,
        validator: CompletenessValidator = None,
        settings: TranslationConfig = None,
        cache: Optional[TranslationCache] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.client = client or get_api_client()
        self.validator = validator or get_validator()
        self.settings = settings or config.translation
        self.cache = cache
        self.sleep = sleep
        self.retry_policy = RetryPolicy(self.settings.retry_delay, self.settings.max_retry_delay)
        self.logger = get_logger().translation_logger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def translate(
        self,
        text: str,
        lang: str,
        field: Optional[FieldName] = None,
        resource_type: Optional[str] = None
    ) -> StrategyOutcome:
        """
        Translate text, falling through the strategies until one is accepted.

        Args:
            text: Source text (may carry placeholders)
            lang: Target language code
            field: Field being translated, selects per-field specializations
            resource_type: Resource type, passed to the validator

        Returns:
            StrategyOutcome; on total failure ``success`` is False and ``text``
            is the unchanged source
        """
        if not text or not text.strip():
            return StrategyOutcome(True, text or '', StrategyName.ORIGINAL, reason='nothing to translate')

        cache_key = self._cache_key(field)
        cached = self.cache.get(text, lang, cache_key.value) if self.cache else None
        if cached:
            return StrategyOutcome(True, cached, StrategyName.CACHE, reason='cache hit')

        try:
            if field in TITLE_FIELDS:
                outcome = self._translate_title(text, lang, resource_type)
            elif field == FieldName.SEO_DESCRIPTION:
                outcome = self._translate_seo_description(text, lang, resource_type)
            else:
                outcome = self._run_cascade(text, lang, resource_type)
        except Exception as e:
            self.logger.error(f"Unexpected error translating {len(text)} chars to {lang}: {e}", exc_info=True)
            return self._exhausted(text, FailureKind.UNEXPECTED, f"unexpected error: {e}", 0)

        # A stripped-attribute translation lacks placeholders the cached source still has
        if outcome.success and self.cache and outcome.strategy != StrategyName.STRIPPED_ATTRIBUTES:
            self.cache.set(text, lang, cache_key.value, outcome.text)
        return outcome

    def translate_list(
        self,
        items: List[str],
        lang: str,
        resource_type: Optional[str] = None
    ) -> List[StrategyOutcome]:
        """
        Translate list items in one order-preserving batch.

        Items the batch gets wrong are repaired one by one with the simplified
        strategy; an item that cannot be repaired keeps its original text.
        """
        outcomes: List[Optional[StrategyOutcome]] = [None] * len(items)
        pending = []
        for index, item in enumerate(items):
            if is_markup_only(item):
                outcomes[index] = StrategyOutcome(True, item, StrategyName.ORIGINAL, reason='markup only')
            else:
                pending.append(index)

        if not pending:
            return outcomes

        try:
            batch = self._request_list([items[i] for i in pending], lang)
        except Exception as e:
            self.logger.error(f"Unexpected error in list batch: {e}", exc_info=True)
            batch = None

        for position, index in enumerate(pending):
            original = items[index]
            if batch is not None:
                outcome = self._accept(original, batch[position], lang, resource_type, StrategyName.LIST)
                if outcome.success:
                    outcomes[index] = outcome
                    continue
            outcomes[index] = self._repair_item(original, lang, resource_type)

        return outcomes

    # ------------------------------------------------------------------
    # General cascade
    # ------------------------------------------------------------------

    def _run_cascade(self, text: str, lang: str, resource_type: Optional[str]) -> StrategyOutcome:
        attempts = 0

        outcome = self._with_retries(
            text, lang, resource_type, StrategyName.ENHANCED, prompts.build_enhanced_prompt(lang)
        )
        attempts += outcome.attempts
        if outcome.success or outcome.failure == FailureKind.CONFIG:
            return self._finish(outcome, text, attempts)

        if outcome.failure == FailureKind.LENGTH and len(text) >= BORDERLINE_RATIO * self.settings.long_text_threshold:
            self.logger.info(f"Length failure on {len(text)} chars, raising limits")
            outcome = self._call(
                text, lang, resource_type, StrategyName.RAISED_THRESHOLD,
                prompts.build_enhanced_prompt(lang),
                timeout=config.api.long_text_timeout,
                max_tokens=config.api.max_tokens
            )
            attempts += outcome.attempts
            if outcome.success:
                return self._finish(outcome, text, attempts)

        if outcome.failure == FailureKind.LENGTH and is_likely_html(text):
            stripped = strip_non_essential_attributes(text)
            if len(stripped) <= (1 - MIN_STRIP_SHRINK) * len(text):
                self.logger.info(f"Stripped attributes {len(text)} -> {len(stripped)} chars")
                outcome = self._with_retries(
                    stripped, lang, resource_type, StrategyName.STRIPPED_ATTRIBUTES,
                    prompts.build_enhanced_prompt(lang)
                )
                attempts += outcome.attempts
                if outcome.success:
                    return self._finish(outcome, text, attempts)

        simplified = self._call(
            text, lang, resource_type, StrategyName.SIMPLIFIED, prompts.build_simple_prompt(lang), loose=True
        )
        attempts += simplified.attempts
        if simplified.success:
            return self._finish(simplified, text, attempts)

        return self._exhausted(text, simplified.failure or outcome.failure, simplified.reason or outcome.reason, attempts)

    def _with_retries(
        self,
        text: str,
        lang: str,
        resource_type: Optional[str],
        strategy: StrategyName,
        system_prompt: str,
        checks: Callable[[str, str], Optional[str]] = None
    ) -> StrategyOutcome:
        """One strategy, retried with backoff while failures stay transient."""
        outcome = None
        attempts = 0
        for attempt in range(self.settings.max_retries):
            if attempt > 0:
                delay = self.retry_policy.delay(attempt - 1)
                self.logger.info(f"{strategy.value}: retrying in {delay:.1f}s ({outcome.reason})")
                self.sleep(delay)
            outcome = self._call(text, lang, resource_type, strategy, system_prompt, checks=checks)
            attempts += outcome.attempts
            if outcome.success or outcome.failure != FailureKind.TRANSIENT:
                break
        outcome.attempts = attempts
        return outcome

    def _call(
        self,
        text: str,
        lang: str,
        resource_type: Optional[str],
        strategy: StrategyName,
        system_prompt: str,
        timeout: float = None,
        max_tokens: int = None,
        loose: bool = False,
        checks: Callable[[str, str], Optional[str]] = None
    ) -> StrategyOutcome:
        """Single API call plus acceptance checks."""
        response = self.client.chat(system_prompt, text, lang, timeout=timeout, max_tokens=max_tokens)
        if not response.success:
            return StrategyOutcome(False, text, strategy, failure=response.failure, reason=response.error, attempts=1)
        outcome = self._accept(text, response.text, lang, resource_type, strategy, loose=loose, checks=checks)
        outcome.attempts = 1
        return outcome

    def _accept(
        self,
        original: str,
        translated: str,
        lang: str,
        resource_type: Optional[str],
        strategy: StrategyName,
        loose: bool = False,
        checks: Callable[[str, str], Optional[str]] = None
    ) -> StrategyOutcome:
        """Apply placeholder, validator and any extra checks to one candidate."""
        translated = (translated or '').strip()
        if not translated:
            return StrategyOutcome(False, original, strategy, failure=FailureKind.EMPTY, reason='empty translation')

        present = set(placeholder_tokens(translated))
        missing = [token for token in placeholder_tokens(original) if token not in present]
        if missing:
            return StrategyOutcome(
                False, original, strategy, failure=FailureKind.PLACEHOLDER,
                reason=f"{len(missing)} placeholder(s) lost: {', '.join(missing[:3])}"
            )

        if loose:
            floor = self.validator.settings.loose_min_ratio * len(original.strip())
            if len(original.strip()) > self.validator.settings.short_text_min and len(translated) < floor:
                return StrategyOutcome(
                    False, original, strategy, failure=FailureKind.LENGTH,
                    reason=f"translation too short ({len(translated)} < {floor:.0f} chars)"
                )
        else:
            verdict = self.validator.validate(original, translated, lang, resource_type)
            if not verdict.is_complete:
                failure = FailureKind.LENGTH if verdict.length_related else FailureKind.VALIDATION
                return StrategyOutcome(False, original, strategy, failure=failure, reason=verdict.reason)

        if checks:
            problem = checks(original, translated)
            if problem:
                return StrategyOutcome(False, original, strategy, failure=FailureKind.VALIDATION, reason=problem)

        warnings = self.validator.quality_warnings(original, translated, lang)
        return StrategyOutcome(True, translated, strategy, reason='accepted', warnings=warnings)

    # ------------------------------------------------------------------
    # Field specializations
    # ------------------------------------------------------------------

    def _translate_title(self, text: str, lang: str, resource_type: Optional[str]) -> StrategyOutcome:
        checks = self._title_checks(lang)
        outcome = self._with_retries(
            text, lang, resource_type, StrategyName.TITLE, prompts.build_title_prompt(lang), checks=checks
        )
        attempts = outcome.attempts
        if outcome.success or outcome.failure == FailureKind.CONFIG:
            return self._finish(outcome, text, attempts)

        simplified = self._call(
            text, lang, resource_type, StrategyName.SIMPLIFIED, prompts.build_simple_prompt(lang),
            loose=True, checks=checks
        )
        attempts += simplified.attempts
        if simplified.success:
            return self._finish(simplified, text, attempts)
        return self._exhausted(text, simplified.failure, simplified.reason, attempts)

    @staticmethod
    def _title_checks(lang: str) -> Optional[Callable[[str, str], Optional[str]]]:
        if not is_cjk_language(lang):
            return None

        def check(original: str, translated: str) -> Optional[str]:
            if translated.strip() == original.strip():
                return 'title returned untranslated'
            if not has_target_script(translated, lang):
                return 'title has no target-script characters'
            return None
        return check

    def _translate_seo_description(self, text: str, lang: str, resource_type: Optional[str]) -> StrategyOutcome:
        low, high = self.settings.seo_description_min, self.settings.seo_description_max
        outcome = self._with_retries(
            text, lang, resource_type, StrategyName.SEO_DESCRIPTION,
            prompts.build_seo_description_prompt(lang, low, high)
        )
        attempts = outcome.attempts
        if not outcome.success:
            if outcome.failure == FailureKind.CONFIG:
                return self._finish(outcome, text, attempts)
            fallback = self._run_cascade(text, lang, resource_type)
            fallback.attempts += attempts
            outcome = fallback
            if not outcome.success:
                return outcome

        if len(outcome.text) > high:
            self.logger.info(f"SEO description {len(outcome.text)} chars over {high}, asking for a shorter version")
            shorter = self._call(
                text, lang, resource_type, StrategyName.SEO_DESCRIPTION,
                prompts.build_enhanced_prompt(lang, shorten_to=high)
            )
            outcome.attempts += shorter.attempts
            if shorter.success and len(shorter.text) < len(outcome.text):
                shorter.attempts = outcome.attempts
                shorter.warnings = outcome.warnings + shorter.warnings
                outcome = shorter
            if len(outcome.text) > high:
                outcome.text = trim_to_length(outcome.text, high)
                outcome.warnings.append(f"trimmed to {high} characters")

        if len(outcome.text) < low and len(text) >= low:
            outcome.warnings.append(f"shorter than the {low}-character SEO minimum")
        return outcome

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _request_list(self, items: List[str], lang: str) -> Optional[List[str]]:
        """Send items as a JSON array; None when the reply is unusable."""
        payload = json.dumps(items, ensure_ascii=False)
        system_prompt = prompts.build_list_prompt(lang)
        response = None
        for attempt in range(self.settings.max_retries):
            if attempt > 0:
                self.sleep(self.retry_policy.delay(attempt - 1))
            response = self.client.chat(system_prompt, payload, lang)
            if response.success or not response.retryable:
                break

        if not response.success:
            self.logger.warning(f"List batch failed: {response.error}")
            return None

        try:
            translated = json.loads(response.text)
        except ValueError:
            self.logger.warning("List batch reply is not valid JSON")
            return None
        if not isinstance(translated, list) or len(translated) != len(items):
            self.logger.warning(f"List batch returned {len(translated) if isinstance(translated, list) else 'no'} items, expected {len(items)}")
            return None
        return [item if isinstance(item, str) else '' for item in translated]

    def _repair_item(self, item: str, lang: str, resource_type: Optional[str]) -> StrategyOutcome:
        repaired = self._call(
            item, lang, resource_type, StrategyName.SIMPLIFIED, prompts.build_simple_prompt(lang), loose=True
        )
        if repaired.success:
            return repaired
        return self._exhausted(item, repaired.failure, repaired.reason, repaired.attempts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(field: Optional[FieldName]) -> StrategyName:
        if field in TITLE_FIELDS:
            return StrategyName.TITLE
        if field == FieldName.SEO_DESCRIPTION:
            return StrategyName.SEO_DESCRIPTION
        return StrategyName.ENHANCED

    def _finish(self, outcome: StrategyOutcome, text: str, attempts: int) -> StrategyOutcome:
        outcome.attempts = attempts
        if not outcome.success:
            return self._exhausted(text, outcome.failure, outcome.reason, attempts)
        if outcome.strategy != StrategyName.ENHANCED:
            self.logger.info(f"Accepted via {outcome.strategy.value} after {attempts} attempt(s)")
        return outcome

    def _exhausted(self, text: str, failure: Optional[FailureKind], reason: str, attempts: int) -> StrategyOutcome:
        self.logger.warning(f"All strategies failed after {attempts} attempt(s): {reason}")
        return StrategyOutcome(
            success=False,
            text=text,
            strategy=StrategyName.ORIGINAL,
            failure=failure or FailureKind.VALIDATION,
            reason=f"all strategies failed: {reason}",
            attempts=attempts
        )
