"""
Translation Orchestrator
========================
Translates every field of one resource into one language.

Long fields are protected, split into list blocks and chunks, translated
chunk by chunk, joined, cleaned of residual English and restored. A field
that cannot be translated keeps its original text; it never aborts the
resource.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional, Set

from shop_translator.config import config
from shop_translator.config.constants import BRAND_WORDS, FailureKind, FieldName, StrategyName, is_cjk_language
from shop_translator.config.settings import TranslationConfig
from shop_translator.models.translation import FieldResult, Resource, TranslationResult
from shop_translator.services.api_client import TranslationApiClient
from shop_translator.services.cache_service import TranslationCache, get_cache
from shop_translator.services.handles import HandleTranslator
from shop_translator.services.rate_limiter import RequestRateLimiter
from shop_translator.services.residue import ResidueScanner
from shop_translator.services.strategies import StrategyCascade
from shop_translator.utils.chunking import (
    chunk_text,
    is_likely_html,
    is_markup_only,
    list_items,
    replace_list_items,
    split_in_half,
    split_list_segments
)
from shop_translator.utils.html_protection import (
    PlaceholderLossError,
    PlaceholderProtector,
    get_protector,
    placeholder_tokens
)
from shop_translator.utils.logging import get_logger

RESIDUE_FIELDS = (FieldName.DESCRIPTION, FieldName.SUMMARY)
BRAND_CHECK_MAX_LENGTH = 50
BRAND_PATTERN = re.compile(r'^[A-Z][a-z]{2,}$')
PRODUCT_CODE_PATTERN = re.compile(r'^[A-Z]{2,}[-_]?\d+')
ACRONYM_PATTERN = re.compile(r'^[A-Z]{2,}$')


def untranslatable_reason(text: str, vendor: Optional[str] = None) -> Optional[str]:
    """
    Why a short value should be kept as is, or None to translate it.

    Only texts under BRAND_CHECK_MAX_LENGTH characters are considered: the
    vendor name, a known brand, a single capitalized word, a product code
    such as ``AB-123`` or an all-caps acronym.
    """
    value = (text or '').strip()
    if not value or len(value) >= BRAND_CHECK_MAX_LENGTH:
        return None
    if vendor and value == vendor.strip():
        return 'vendor name'
    if value.lower() in {brand.lower() for brand in BRAND_WORDS}:
        return 'brand word'
    if BRAND_PATTERN.match(value):
        return 'brand word pattern'
    if PRODUCT_CODE_PATTERN.match(value):
        return 'product code'
    if ACRONYM_PATTERN.match(value):
        return 'acronym'
    return None


@dataclass
class PieceResult:
    """Translation of one chunk or list block."""
    text: str
    translated: int = 0
    failed: int = 0
    dropped: Set[str] = field(default_factory=set)
    strategies: Set[str] = field(default_factory=set)
    notes: List[str] = field(default_factory=list)

    def merge(self, other: 'PieceResult'):
        self.translated += other.translated
        self.failed += other.failed
        self.dropped |= other.dropped
        self.strategies |= other.strategies
        self.notes.extend(other.notes)


class TranslationOrchestrator:
    """Drives protect, chunk, cascade, validate and restore for a resource."""

    def __init__(
        self,
        cascade: StrategyCascade = None,
        protector: PlaceholderProtector = None,
        handles: HandleTranslator = None,
        residue: ResidueScanner = None,
        settings: TranslationConfig = None
    ):
        self.cascade = cascade or StrategyCascade()
        self.protector = protector or get_protector()
        self.handles = handles or HandleTranslator(client=self.cascade.client)
        self.residue = residue or ResidueScanner(client=self.cascade.client)
        self.settings = settings or config.translation
        self.logger = get_logger().translation_logger

    def translate_resource(self, resource: Resource, language: str) -> TranslationResult:
        """
        Translate each present field of a resource independently.

        Args:
            resource: Snapshot of the resource
            language: Target language code

        Returns:
            TranslationResult with one FieldResult per present field
        """
        result = TranslationResult(resource_id=resource.id, language=language)
        for name, value in resource.translatable_fields().items():
            result.fields[name] = self.translate_field(
                name, value, language, resource.resource_type, vendor=resource.vendor
            )

        failed = result.failed_fields
        self.logger.info(
            f"Resource {resource.id} -> {language}: {len(result.fields) - len(failed)}/{len(result.fields)} fields"
            + (f", needs review: {', '.join(failed)}" if failed else "")
        )
        return result

    def translate_field(
        self,
        name: FieldName,
        text: str,
        lang: str,
        resource_type: Optional[str] = None,
        vendor: Optional[str] = None
    ) -> FieldResult:
        try:
            if name == FieldName.HANDLE:
                return self.handles.translate(text, lang)
            if len(text) > self.settings.long_text_threshold:
                return self._translate_long(name, text, lang, resource_type)
            return self._translate_short(name, text, lang, resource_type, vendor)
        except Exception as e:
            self.logger.error(f"Field {name.value} failed unexpectedly: {e}", exc_info=True)
            return FieldResult(name, text, text, False, StrategyName.ORIGINAL, [f"unexpected error: {e}"])

    def _translate_short(
        self,
        name: FieldName,
        text: str,
        lang: str,
        resource_type: Optional[str],
        vendor: Optional[str] = None
    ) -> FieldResult:
        reason = untranslatable_reason(text, vendor)
        if reason:
            self.logger.info(f"{name.value}: kept '{text.strip()}' untranslated ({reason})")
            return FieldResult(name, text, text, True, StrategyName.ORIGINAL, [f"kept as is: {reason}"])

        if not is_likely_html(text):
            outcome = self.cascade.translate(text, lang, name, resource_type)
            if not outcome.success:
                return FieldResult(name, text, outcome.text, False, outcome.strategy, [outcome.reason])
            translated, notes = self._clean_residue(name, outcome.text, lang)
            return FieldResult(name, text, translated, True, outcome.strategy, list(outcome.warnings) + notes)

        protected = self.protector.protect(text)
        outcome = self.cascade.translate(protected.text, lang, name, resource_type)
        if not outcome.success:
            return FieldResult(name, text, text, False, outcome.strategy, [outcome.reason])

        dropped = self._dropped_tokens(protected.text, outcome.text, outcome.strategy)
        translated, notes = self._clean_residue(name, outcome.text, lang)
        restored = self._restore(translated, protected.placeholders, dropped)
        if restored is None:
            return FieldResult(name, text, text, False, StrategyName.ORIGINAL, ['placeholders lost during translation'])
        return FieldResult(name, text, restored, True, outcome.strategy, list(outcome.warnings) + notes)

    def _translate_long(self, name: FieldName, text: str, lang: str, resource_type: Optional[str]) -> FieldResult:
        is_html = is_likely_html(text)
        protected = self.protector.protect(text)
        total = PieceResult(text='')
        parts = []

        for segment in split_list_segments(protected.text):
            if segment.is_list:
                piece = self._translate_list_block(segment.content, lang, resource_type)
                parts.append(piece.text)
                total.merge(piece)
                continue

            chunks = chunk_text(segment.content, max_chunk_size=self.settings.max_chunk_size, is_html=is_html)
            translated_chunks = []
            for chunk in chunks:
                piece = self._translate_chunk(chunk, lang, resource_type, depth=0)
                translated_chunks.append(piece.text)
                total.merge(piece)
            parts.append(('' if is_html else '\n\n').join(translated_chunks))

        units = total.translated + total.failed
        self.logger.info(
            f"{name.value}: {len(text)} chars, {units} unit(s), {total.failed} failed, "
            f"{protected.count} placeholder(s)"
        )
        if units and total.failed * 2 > units:
            return FieldResult(
                name, text, text, False, StrategyName.ORIGINAL,
                [f"{total.failed} of {units} chunks failed"] + total.notes
            )

        joined, residue_notes = self._clean_residue(name, ''.join(parts), lang)
        total.notes.extend(residue_notes)

        restored = self._restore(joined, protected.placeholders, total.dropped)
        if restored is None:
            return FieldResult(name, text, text, False, StrategyName.ORIGINAL,
                               ['placeholders lost during translation'] + total.notes)

        if total.strategies - {StrategyName.ENHANCED.value, StrategyName.CACHE.value}:
            total.notes.append(f"strategies used: {', '.join(sorted(total.strategies))}")
        return FieldResult(name, text, restored, True, StrategyName.LONG_TEXT, total.notes)

    def _translate_chunk(self, chunk: str, lang: str, resource_type: Optional[str], depth: int) -> PieceResult:
        if is_markup_only(chunk):
            return PieceResult(text=chunk)

        oversized = len(chunk) > self.settings.max_chunk_size
        if not oversized:
            outcome = self.cascade.translate(chunk, lang, FieldName.DESCRIPTION, resource_type)
            if outcome.success:
                return PieceResult(
                    text=outcome.text,
                    translated=1,
                    dropped=self._dropped_tokens(chunk, outcome.text, outcome.strategy),
                    strategies={outcome.strategy.value},
                    notes=list(outcome.warnings)
                )
            if outcome.failure != FailureKind.LENGTH or depth >= self.settings.max_reattach_depth:
                return PieceResult(text=chunk, failed=1, notes=[outcome.reason])

        halves = split_in_half(chunk) if depth < self.settings.max_reattach_depth else [chunk]
        if len(halves) < 2:
            if oversized:
                # Nothing left to split; give the cascade the whole chunk
                outcome = self.cascade.translate(chunk, lang, FieldName.DESCRIPTION, resource_type)
                if outcome.success:
                    return PieceResult(text=outcome.text, translated=1,
                                       dropped=self._dropped_tokens(chunk, outcome.text, outcome.strategy),
                                       strategies={outcome.strategy.value})
            return PieceResult(text=chunk, failed=1, notes=['chunk could not be split further'])

        self.logger.debug(f"Reattaching {len(chunk)} chars as halves at depth {depth + 1}")
        combined = PieceResult(text='')
        texts = []
        for half in halves:
            piece = self._translate_chunk(half, lang, resource_type, depth + 1)
            texts.append(piece.text)
            combined.merge(piece)
        combined.text = ''.join(texts)
        # A reattached chunk counts once: failed if any half failed
        failed = combined.failed > 0
        combined.translated, combined.failed = (0, 1) if failed else (1, 0)
        return combined

    def _translate_list_block(self, block: str, lang: str, resource_type: Optional[str]) -> PieceResult:
        items = list_items(block)
        outcomes = []
        for batch in self._item_batches(items):
            outcomes.extend(self.cascade.translate_list(batch, lang, resource_type))

        piece = PieceResult(text=replace_list_items(block, [outcome.text for outcome in outcomes]))
        for item, outcome in zip(items, outcomes):
            if outcome.strategy == StrategyName.ORIGINAL and outcome.success:
                continue
            if outcome.success:
                piece.translated += 1
                piece.strategies.add(outcome.strategy.value)
            else:
                piece.failed += 1
                piece.notes.append(f"list item kept original: {outcome.reason}")
        return piece

    def _item_batches(self, items: List[str]) -> List[List[str]]:
        batches, current, size = [], [], 0
        for item in items:
            if current and size + len(item) > self.settings.max_chunk_size:
                batches.append(current)
                current, size = [], 0
            current.append(item)
            size += len(item)
        if current:
            batches.append(current)
        return batches

    def _clean_residue(self, name: FieldName, text: str, lang: str):
        """Residual English pass for descriptions and summaries bound for CJK languages."""
        if is_cjk_language(lang) and name in RESIDUE_FIELDS:
            return self.residue.clean(text, lang)
        return text, []

    @staticmethod
    def _dropped_tokens(source: str, translated: str, strategy: StrategyName) -> Set[str]:
        """Placeholders removed on purpose by attribute stripping."""
        if strategy != StrategyName.STRIPPED_ATTRIBUTES:
            return set()
        return set(placeholder_tokens(source)) - set(placeholder_tokens(translated))

    def _restore(self, text: str, placeholders: dict, dropped: Set[str]) -> Optional[str]:
        try:
            return self.protector.restore(text, placeholders, ignore=dropped)
        except PlaceholderLossError as e:
            self.logger.warning(f"Keeping original text: {e}")
            return None


# Global orchestrator instance
_orchestrator_instance: Optional[TranslationOrchestrator] = None


def build_orchestrator(
    rate_limiter: Optional[RequestRateLimiter] = None,
    cache: Optional[TranslationCache] = None
) -> TranslationOrchestrator:
    """Orchestrator whose API client and cascade share the given limiter and cache."""
    client = TranslationApiClient(rate_limiter=rate_limiter)
    return TranslationOrchestrator(cascade=StrategyCascade(client=client, cache=cache))


def get_orchestrator() -> TranslationOrchestrator:
    """Get or create the global orchestrator instance."""
    global _orchestrator_instance
    if _orchestrator_instance is None:
        _orchestrator_instance = build_orchestrator(cache=get_cache() if config.cache.enabled else None)
    return _orchestrator_instance
