"""
Text Chunking
=============
Splits long (already protected) text into pieces that fit one request.
"""
import re
from typing import Callable, List

from shop_translator.config import config
from shop_translator.models.translation import Segment
from shop_translator.utils.html_protection import PLACEHOLDER_PATTERN
from shop_translator.utils.logging import get_logger

MIN_CHUNK_SIZE = 200

HTML_OPEN_TAG = re.compile(r'<([a-z][^>]*?)>', re.IGNORECASE)
HTML_CLOSE_TAG = re.compile(r'</[a-z][a-z0-9]*\s*>', re.IGNORECASE)
HTML_TOKEN = re.compile(r'<[^>]+>|[^<]+|<')
LIST_OPEN = re.compile(r'<(?:ul|ol)\b', re.IGNORECASE)
LIST_BLOCK = re.compile(r'<(ul|ol)\b[^>]*>.*?</\1\s*>', re.IGNORECASE | re.DOTALL)
LIST_ITEM = re.compile(r'(<li\b[^>]*>)(.*?)(</li\s*>)', re.IGNORECASE | re.DOTALL)

PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
SENTENCE = re.compile(r'[^.!?。！？]+(?:[.!?。！？]+|$)')
SENTENCE_END = re.compile(r'[.!?。！？]+\s*')
WHITESPACE_RUN = re.compile(r'\s+')
CJK_TERMINATORS = ('。', '！', '？')


def coerce_chunk_size(value=None) -> int:
    """Chunk size from an override or config, never below MIN_CHUNK_SIZE."""
    try:
        size = int(value) if value is not None else config.translation.max_chunk_size
    except (TypeError, ValueError):
        size = config.translation.max_chunk_size
    return max(size, MIN_CHUNK_SIZE)


def is_likely_html(text: str) -> bool:
    """Both an opening and a closing tag must be present."""
    if not text:
        return False
    return bool(HTML_OPEN_TAG.search(text) and HTML_CLOSE_TAG.search(text))


def is_markup_only(chunk: str, threshold: int = None) -> bool:
    """True when a chunk has (almost) nothing left to translate once markup is removed."""
    if threshold is None:
        threshold = config.translation.markup_only_threshold
    stripped = re.sub(r'<[^>]+>', '', chunk or '')
    stripped = PLACEHOLDER_PATTERN.sub('', stripped)
    stripped = re.sub(r'&[#\w]+;', '', stripped)
    stripped = re.sub(r'[\W_]+', '', stripped)
    return len(stripped) < threshold


def chunk_text(text: str, max_chunk_size: int = None, is_html: bool = None) -> List[str]:
    """
    Split text into chunks no longer than max_chunk_size where possible.

    HTML chunks are exact slices of the input, so ``''.join(chunks) == text``.
    Plain-text chunks are trimmed and meant to be rejoined with a blank line.

    Args:
        text: Text to split, usually the output of PlaceholderProtector.protect
        max_chunk_size: Chunk size (uses config if not specified)
        is_html: Force HTML or plain handling (detected if not specified)

    Returns:
        List of chunks
    """
    if not text or not text.strip():
        return []

    limit = coerce_chunk_size(max_chunk_size)
    if len(text) <= limit:
        return [text]

    if is_html is None:
        is_html = is_likely_html(text)

    if is_html:
        chunks = _chunk_html(text, limit)
    else:
        chunks = _chunk_plain(text, limit)

    get_logger().translation_logger.debug(
        f"Chunked {len(text)} chars -> {len(chunks)} chunks (limit {limit}, html={is_html})"
    )
    return chunks


def _chunk_html(text: str, limit: int) -> List[str]:
    if LIST_OPEN.search(text):
        limit = min(limit, config.translation.list_chunk_limit)

    chunks: List[str] = []
    current = ''
    for token in HTML_TOKEN.findall(text):
        if token.startswith('<') or len(token) <= limit:
            pieces = [token]
        else:
            pieces = split_run(token, limit)
        for piece in pieces:
            if current and len(current) + len(piece) > limit:
                chunks.append(current)
                current = ''
            current += piece
    if current:
        chunks.append(current)
    return chunks


def split_run(run: str, limit: int) -> List[str]:
    """
    Split a tag-free run into exact consecutive slices of at most ``limit``.

    Breaks prefer sentence ends, then whitespace, and never fall inside a
    placeholder.
    """
    spans = [match.span() for match in PLACEHOLDER_PATTERN.finditer(run)]
    pieces = []
    start = 0
    while len(run) - start > limit:
        cut = _best_break(run, start, start + limit, spans)
        pieces.append(run[start:cut])
        start = cut
    pieces.append(run[start:])
    return pieces


def _best_break(run: str, start: int, end: int, spans) -> int:
    window = run[start:end]

    sentence_ends = [start + m.end() for m in SENTENCE_END.finditer(window)]
    sentence_ends = [pos for pos in sentence_ends if start < pos <= end]
    if sentence_ends:
        return sentence_ends[-1]

    spaces = [start + m.end() for m in WHITESPACE_RUN.finditer(window)]
    spaces = [pos for pos in spaces if start < pos <= end]
    if spaces:
        return spaces[-1]

    for span_start, span_end in spans:
        if span_start < end < span_end:
            return span_start if span_start > start else span_end
    return end


def split_in_half(chunk: str) -> List[str]:
    """
    Split a chunk into two exact slices near its middle.

    Prefers a tag edge, then a sentence end, then whitespace; never cuts
    inside a tag or placeholder. Returns ``[chunk]`` when no safe point exists.
    """
    if len(chunk) < 2:
        return [chunk]

    blocked = [m.span() for m in re.finditer(r'<[^>]*>', chunk)]
    blocked += [m.span() for m in PLACEHOLDER_PATTERN.finditer(chunk)]

    def safe(pos: int) -> bool:
        return 0 < pos < len(chunk) and not any(start < pos < end for start, end in blocked)

    middle = len(chunk) // 2
    for pattern in (r'>|(?=<)', r'[.!?。！？]+\s*', r'\s+'):
        candidates = [m.end() for m in re.finditer(pattern, chunk) if safe(m.end())]
        if candidates:
            cut = min(candidates, key=lambda pos: abs(pos - middle))
            return [chunk[:cut], chunk[cut:]]

    for offset in range(len(chunk)):
        for pos in (middle - offset, middle + offset):
            if safe(pos):
                return [chunk[:pos], chunk[pos:]]
    return [chunk]


def _chunk_plain(text: str, limit: int) -> List[str]:
    paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(text) if p.strip()]
    return _pack(paragraphs, limit, lambda a, b: '\n\n', _chunk_sentences)


def _chunk_sentences(paragraph: str, limit: int) -> List[str]:
    sentences = [s.strip() for s in SENTENCE.findall(paragraph) if s.strip()]
    return _pack(sentences, limit, _sentence_separator, _chunk_words)


def _chunk_words(sentence: str, limit: int) -> List[str]:
    words = sentence.split()
    if len(words) <= 1:
        # Unbroken run (typically CJK without punctuation)
        return split_run(sentence, limit)
    return _pack(words, limit, lambda a, b: ' ', lambda word, size: split_run(word, size))


def _sentence_separator(previous: str, _next: str) -> str:
    return '' if previous.endswith(CJK_TERMINATORS) else ' '


def _pack(
    units: List[str],
    limit: int,
    separator: Callable[[str, str], str],
    fallback: Callable[[str, int], List[str]]
) -> List[str]:
    """Greedily join units up to limit; units over limit go through fallback."""
    chunks: List[str] = []
    current = ''
    for unit in units:
        if len(unit) > limit:
            if current:
                chunks.append(current)
                current = ''
            chunks.extend(fallback(unit, limit))
            continue
        candidate = f"{current}{separator(current, unit)}{unit}" if current else unit
        if len(candidate) > limit:
            chunks.append(current)
            current = unit
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def split_list_segments(text: str) -> List[Segment]:
    """
    Separate <ul>/<ol> blocks that contain <li> items from the rest.

    Concatenating the segment contents reproduces the input exactly.
    """
    segments: List[Segment] = []
    cursor = 0
    for match in LIST_BLOCK.finditer(text or ''):
        if not LIST_ITEM.search(match.group(0)):
            continue
        if match.start() > cursor:
            segments.append(Segment('content', text[cursor:match.start()]))
        segments.append(Segment('list', match.group(0)))
        cursor = match.end()
    if cursor < len(text or ''):
        segments.append(Segment('content', text[cursor:]))
    return segments


def list_items(block: str) -> List[str]:
    """Inner contents of every <li> in a list block, in order."""
    return [match.group(2) for match in LIST_ITEM.finditer(block)]


def replace_list_items(block: str, items: List[str]) -> str:
    """Put translated item contents back into their <li> wrappers."""
    replacements = iter(items)
    return LIST_ITEM.sub(lambda m: f"{m.group(1)}{next(replacements)}{m.group(3)}", block)
