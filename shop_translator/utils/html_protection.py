"""
HTML Protection
===============
Reversibly replaces non-translatable markup with placeholders before text
is sent to the model, and restores it afterwards.

Matchers run in a fixed priority order, each one on the output of the
previous:

1. literal placeholder-shaped text already present in the source
2. whole containers (comments, style, script, pre, code, embedded media)
3. self-closing media tags (img, source, track, embed)
4. attribute values (style, class, id, data-*, href/src, aria-*)

A later matcher never sees inside an earlier placeholder, so a container
protected in step 2 keeps its attributes verbatim. When an earlier matcher
fires inside a later container (a comment inside <code>, for example) the
outer placeholder's value contains the inner token; ``restore`` expands
those recursively.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from shop_translator.models.translation import ProtectedText
from shop_translator.utils.logging import get_logger

PLACEHOLDER_PATTERN = re.compile(r'__PROTECTED_[A-Z]+(?:_[A-Z]+)*_\d+__')

Span = Tuple[int, int]

LITERAL_KIND = 'LITERAL'
ATTRIBUTE_KINDS = frozenset({'STYLE_ATTR', 'CLASS', 'ID', 'DATA'})


class PlaceholderLossError(Exception):
    """Raised when translated text no longer contains every placeholder."""

    def __init__(self, missing: List[str], restored_text: str):
        self.missing = missing
        self.restored_text = restored_text
        super().__init__(f"{len(missing)} placeholder(s) missing after translation: {', '.join(missing[:5])}")


@dataclass(frozen=True)
class Matcher:
    """Finds whole-match spans of one kind of protected content."""
    kind: str
    pattern: re.Pattern

    def find(self, text: str) -> Iterator[Tuple[Span, str]]:
        for match in self.pattern.finditer(text):
            if match.end() > match.start():
                yield match.span(), self.kind


@dataclass(frozen=True)
class AttributeMatcher(Matcher):
    """Finds attribute value spans, only inside opening tags."""

    TAG_PATTERN = re.compile(r'<[a-zA-Z][^<>]*>')

    def find(self, text: str) -> Iterator[Tuple[Span, str]]:
        for tag in self.TAG_PATTERN.finditer(text):
            offset = tag.start()
            for match in self.pattern.finditer(tag.group(0)):
                for group in ('dq', 'sq', 'uq'):
                    if match.group(group):
                        start, end = match.span(group)
                        yield (offset + start, offset + end), self.kind
                        break


def _container(kind: str, tag: str) -> Matcher:
    return Matcher(kind, re.compile(rf'<{tag}\b[^>]*>.*?</{tag}\s*>', re.IGNORECASE | re.DOTALL))


def _attribute(kind: str, names: str) -> AttributeMatcher:
    return AttributeMatcher(kind, re.compile(
        rf'''\s(?:{names})\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s"'>]+))''',
        re.IGNORECASE
    ))


DEFAULT_MATCHERS: Tuple[Matcher, ...] = (
    # Anything in the source that could be mistaken for one of our tokens
    Matcher(LITERAL_KIND, re.compile(r'__PROTECTED_\w*')),
    Matcher('COMMENT', re.compile(r'<!--.*?-->', re.DOTALL)),
    _container('STYLE', 'style'),
    _container('SCRIPT', 'script'),
    _container('PRE', 'pre'),
    _container('CODE', 'code'),
    _container('IFRAME', 'iframe'),
    _container('VIDEO', 'video'),
    _container('AUDIO', 'audio'),
    _container('OBJECT', 'object'),
    Matcher('IMG', re.compile(r'<img\b[^>]*>', re.IGNORECASE)),
    Matcher('MEDIA', re.compile(r'<(?:source|track|embed)\b[^>]*>', re.IGNORECASE)),
    _attribute('STYLE_ATTR', 'style'),
    _attribute('CLASS', 'class'),
    _attribute('ID', 'id'),
    _attribute('DATA', r'data-[\w-]+'),
    _attribute('URL', 'href|src|srcset|poster'),
    _attribute('ARIA', r'aria-[\w-]+'),
)

NON_ESSENTIAL_ATTRIBUTES = re.compile(
    r'''\s(?:class|style|id|data-[\w-]+)\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'>]+)''',
    re.IGNORECASE
)


def placeholder_kind(token: str) -> str:
    """Kind segment of a placeholder token (``__PROTECTED_CLASS_3__`` -> ``CLASS``)."""
    body = token[len('__PROTECTED_'):-2]
    return body.rsplit('_', 1)[0]


def placeholder_tokens(text: str) -> List[str]:
    """All placeholder tokens in text, in order of appearance."""
    return PLACEHOLDER_PATTERN.findall(text or '')


def strip_non_essential_attributes(html: str) -> str:
    """Drop class/style/id/data-* attributes from every tag."""
    def clean_tag(match):
        return NON_ESSENTIAL_ATTRIBUTES.sub('', match.group(0))
    return AttributeMatcher.TAG_PATTERN.sub(clean_tag, html)


class PlaceholderProtector:
    """Hides non-translatable substrings behind unique placeholders."""

    def __init__(self, matchers: Iterable[Matcher] = None):
        self.matchers = tuple(matchers) if matchers is not None else DEFAULT_MATCHERS

    def protect(self, text: str) -> ProtectedText:
        """Replace every protected span with ``__PROTECTED_<KIND>_<seq>__``."""
        if not text:
            return ProtectedText(text=text or '', placeholders={})

        placeholders: Dict[str, str] = {}
        sequence = 0
        for matcher in self.matchers:
            pieces = []
            cursor = 0
            for (start, end), kind in matcher.find(text):
                if start < cursor:
                    continue
                token = f"__PROTECTED_{kind}_{sequence}__"
                sequence += 1
                placeholders[token] = text[start:end]
                pieces.append(text[cursor:start])
                pieces.append(token)
                cursor = end
            if pieces:
                pieces.append(text[cursor:])
                text = ''.join(pieces)

        if placeholders:
            get_logger().translation_logger.debug(f"{len(placeholders)} placeholders created")
        return ProtectedText(text=text, placeholders=placeholders)

    def required_tokens(self, placeholders: Dict[str, str]) -> Set[str]:
        """Top-level tokens, i.e. those not nested inside another protected value."""
        nested = set()
        for token, value in placeholders.items():
            if placeholder_kind(token) != LITERAL_KIND:
                nested.update(placeholder_tokens(value))
        return set(placeholders) - nested

    def find_missing(self, text: str, placeholders: Dict[str, str], ignore: Iterable[str] = ()) -> List[str]:
        """Top-level placeholders absent from text, in creation order."""
        present = set(placeholder_tokens(text))
        required = self.required_tokens(placeholders) - set(ignore)
        return [token for token in placeholders if token in required and token not in present]

    def restore(
        self,
        text: str,
        placeholders: Dict[str, str],
        ignore: Iterable[str] = (),
        strict: bool = True
    ) -> str:
        """
        Substitute placeholders back with their original content.

        Args:
            text: Translated text still carrying placeholders
            placeholders: Map returned by ``protect``
            ignore: Tokens dropped on purpose (e.g. by attribute stripping)
            strict: Raise when a placeholder is missing

        Returns:
            The restored text

        Raises:
            PlaceholderLossError: a required placeholder is missing and strict is set
        """
        if not placeholders:
            return text

        def expand(value: str) -> str:
            return PLACEHOLDER_PATTERN.sub(replace, value)

        def replace(match):
            token = match.group(0)
            original = placeholders.get(token)
            if original is None:
                return token
            if placeholder_kind(token) == LITERAL_KIND:
                return original
            return expand(original)

        restored = expand(text)
        missing = self.find_missing(text, placeholders, ignore)
        if missing:
            get_logger().translation_logger.warning(f"{len(missing)} placeholder(s) missing after translation: {', '.join(missing[:5])}")
            if strict:
                raise PlaceholderLossError(missing, restored)
        return restored


# Global protector instance
_protector_instance: Optional[PlaceholderProtector] = None


def get_protector() -> PlaceholderProtector:
    """Get or create the global protector instance."""
    global _protector_instance
    if _protector_instance is None:
        _protector_instance = PlaceholderProtector()
    return _protector_instance


def find_missing_placeholders(text: str, placeholders: Dict[str, str], ignore: Iterable[str] = ()) -> List[str]:
    """Placeholders from ``protect`` that ``text`` no longer contains."""
    return get_protector().find_missing(text, placeholders, ignore)
