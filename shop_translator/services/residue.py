"""
Residual English Scanner
========================
Post-pass for CJK targets that finds English phrases a translation left
behind and replaces them with targeted translations.
"""
import re
from collections import Counter
from typing import List, Optional, Tuple

from shop_translator.config import config
from shop_translator.config.constants import (
    ALLOWED_ENGLISH_TERMS,
    BRAND_WORDS,
    TECHNICAL_TERMS,
    is_cjk_language
)
from shop_translator.config.settings import TranslationConfig
from shop_translator.services import prompts
from shop_translator.services.api_client import TranslationApiClient, get_api_client
from shop_translator.utils.html_protection import PLACEHOLDER_PATTERN
from shop_translator.utils.language_detection import URL, has_target_script
from shop_translator.utils.logging import get_logger

TAG_SPLIT = re.compile(r'(<[^>]+>)')
LONG_SENTENCE = re.compile(r"[A-Z][A-Za-z'’,\- ]{20,}[A-Za-z][.!?]?")
SHORT_PHRASE = re.compile(r"(?<![A-Za-z])[A-Za-z]{3,}(?: [A-Za-z]{2,}){1,3}(?![A-Za-z])")
LABEL_ATTRIBUTE = re.compile(r'''(\s(?:title|alt)\s*=\s*")([^"]*)(")''', re.IGNORECASE)
MIN_SENTENCE_WORDS = 4


class ResidueScanner:
    """Finds and re-translates leftover English in CJK output."""

    def __init__(self, client: TranslationApiClient = None, settings: TranslationConfig = None):
        self.client = client or get_api_client()
        self.settings = settings or config.translation
        self.logger = get_logger().translation_logger

    def find_phrases(self, text: str) -> List[str]:
        """
        Candidate phrases, longest first, capped at ``residue_max_parts``.

        Looks at text nodes (long capitalized sentences, short phrases that
        repeat) and at title/alt attribute values.
        """
        candidates: List[str] = []
        repeated: Counter = Counter()

        for part in TAG_SPLIT.split(text or ''):
            if not part:
                continue
            if part.startswith('<'):
                for match in LABEL_ATTRIBUTE.finditer(part):
                    candidates.append(match.group(2).strip())
                continue
            prose = URL.sub(' ', PLACEHOLDER_PATTERN.sub(' ', part))
            for match in LONG_SENTENCE.finditer(prose):
                sentence = match.group(0).strip()
                if len(sentence.split()) >= MIN_SENTENCE_WORDS:
                    candidates.append(sentence)
            repeated.update(match.group(0) for match in SHORT_PHRASE.finditer(prose))

        candidates.extend(phrase for phrase, count in repeated.items() if count > 1)

        phrases = []
        for phrase in sorted(set(candidates), key=len, reverse=True):
            if self._skip(phrase) or any(phrase in kept for kept in phrases):
                continue
            phrases.append(phrase)
        return phrases[:self.settings.residue_max_parts]

    @staticmethod
    def _skip(phrase: str) -> bool:
        if not phrase or not re.search(r'[A-Za-z]', phrase):
            return True
        if re.search(r'\d', phrase) or '__PROTECTED' in phrase or URL.search(phrase):
            return True
        if re.search(r'[^\x00-\x7F’]', phrase):
            return True
        words = [w.lower() for w in re.findall(r'[A-Za-z]+', phrase)]
        brands = {brand.lower() for brand in BRAND_WORDS}
        return all(word in ALLOWED_ENGLISH_TERMS or word in brands for word in words)

    def clean(self, text: str, lang: str) -> Tuple[str, List[str]]:
        """
        Replace residual English phrases in (protected) text.

        Returns:
            Tuple of (text, notes)
        """
        if not text or not is_cjk_language(lang):
            return text, []

        notes = []
        for phrase in self.find_phrases(text):
            replacement = self._translate_phrase(phrase, lang)
            if not replacement:
                notes.append(f"residual English kept: {phrase[:40]}")
                continue
            text = replace_outside_markup(text, phrase, replacement)
            notes.append(f"residual English replaced: {phrase[:40]}")

        if notes:
            self.logger.info(f"{len(notes)} residual phrase(s) handled for {lang}")
        return text, notes

    def _translate_phrase(self, phrase: str, lang: str) -> Optional[str]:
        response = self.client.chat(prompts.build_residue_prompt(lang), phrase, lang)
        if (response.success and response.text and has_target_script(response.text, lang)
                and not PLACEHOLDER_PATTERN.search(response.text)):
            return response.text.strip()

        fallback = dictionary_translate(phrase, lang)
        if fallback != phrase:
            self.logger.debug(f"Residue '{phrase[:30]}' resolved from the term dictionary")
            return fallback
        return None


def dictionary_translate(phrase: str, lang: str) -> str:
    """Replace known technical terms in a phrase, longest terms first."""
    result = phrase
    for term in sorted(TECHNICAL_TERMS, key=len, reverse=True):
        translation = TECHNICAL_TERMS[term].get(lang) or TECHNICAL_TERMS[term].get(lang.split('-')[0])
        if translation:
            result = re.sub(
                rf'(?<![A-Za-z]){re.escape(term)}(?![A-Za-z])', translation, result, flags=re.IGNORECASE
            )
    return result


def replace_outside_markup(text: str, phrase: str, replacement: str) -> str:
    """Replace phrase in text nodes and title/alt values, leaving tags and placeholders alone."""
    parts = TAG_SPLIT.split(text)
    for index, part in enumerate(parts):
        if part.startswith('<'):
            parts[index] = LABEL_ATTRIBUTE.sub(
                lambda m: f"{m.group(1)}{m.group(2).replace(phrase, replacement)}{m.group(3)}", part
            )
        else:
            pieces = re.split(f'({PLACEHOLDER_PATTERN.pattern})', part)
            parts[index] = ''.join(
                piece if PLACEHOLDER_PATTERN.fullmatch(piece) else piece.replace(phrase, replacement)
                for piece in pieces
            )
    return ''.join(parts)
