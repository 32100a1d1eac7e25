"""
Constants and Enums for Shop Translator
"""
from enum import Enum
from typing import Dict, List, Tuple

# Target languages with the display names used in prompts
LANGUAGE_NAMES: Dict[str, str] = {
    'en': 'English',
    'zh': 'Chinese',
    'zh-CN': 'Simplified Chinese',
    'zh-TW': 'Traditional Chinese',
    'ja': 'Japanese',
    'ko': 'Korean',
    'fr': 'French',
    'de': 'German',
    'es': 'Spanish',
    'pt': 'Portuguese',
    'ru': 'Russian',
    'it': 'Italian',
    'nl': 'Dutch',
    'ar': 'Arabic',
    'th': 'Thai',
    'hi': 'Hindi',
}

CJK_LANGUAGES = ('zh', 'zh-CN', 'zh-TW', 'ja', 'ko')

# Languages whose script is not Latin, keyed to the Unicode ranges of that script
SCRIPT_RANGES: Dict[str, str] = {
    'zh': r'一-鿿',
    'ja': r'぀-ゟ゠-ヿ一-鿿',
    'ko': r'가-힯ᄀ-ᇿ一-鿿',
    'ar': r'؀-ۿ',
    'ru': r'Ѐ-ӿ',
    'th': r'฀-๿',
    'hi': r'ऀ-ॿ',
}

# Any CJK ideograph, kana or hangul
CJK_CHAR_CLASS = r'一-鿿㐀-䶿぀-ゟ゠-ヿ가-힯'

# Sentinel a model is instructed to return instead of a partial translation
TEXT_TOO_LONG_SENTINEL = 'TEXT_TOO_LONG'

BRAND_WORDS: List[str] = ['Shopify', 'Onewind', 'Lightsler']

TECHNICAL_KEYWORDS: List[str] = [
    'safety', 'warning', 'caution', 'danger', 'hazard', 'risk',
    'installation', 'assembly', 'maintenance', 'repair',
    'equipment', 'components', 'specifications', 'parts',
    'hanging', 'suspension', 'mounting', 'setup',
    'worn', 'sharp', 'rip', 'damage', 'broken',
    'rocks', 'scissors', 'knife', 'blade',
]

PRODUCT_KEYWORDS: List[str] = [
    'description', 'features', 'benefits', 'product', 'item', 'material',
    'fabric', 'design', 'color', 'size', 'weight', 'dimensions', 'specifications',
    'outdoor', 'camping', 'hiking', 'backpacking', 'gear', 'equipment',
    'lightweight', 'waterproof', 'durable', 'portable', 'compact',
    'choice', 'perfect', 'ideal', 'suitable', 'recommended',
]

# Latin words that may legitimately survive in a translation
ALLOWED_ENGLISH_TERMS = frozenset({
    'online', 'shop', 'store', 'product', 'collection', 'blog', 'page',
    'menu', 'theme', 'template', 'faq', 'url', 'pdf', 'usb', 'led', 'diy',
})

# Static dictionary used when targeted re-translation of residual English fails
TECHNICAL_TERMS: Dict[str, Dict[str, str]] = {
    'waterproof': {'zh-CN': '防水', 'zh-TW': '防水', 'zh': '防水', 'ja': '防水', 'ko': '방수'},
    'lightweight': {'zh-CN': '轻量', 'zh-TW': '輕量', 'zh': '轻量', 'ja': '軽量', 'ko': '경량'},
    'durable': {'zh-CN': '耐用', 'zh-TW': '耐用', 'zh': '耐用', 'ja': '耐久性', 'ko': '내구성'},
    'portable': {'zh-CN': '便携', 'zh-TW': '便攜', 'zh': '便携', 'ja': 'ポータブル', 'ko': '휴대용'},
    'breathable': {'zh-CN': '透气', 'zh-TW': '透氣', 'zh': '透气', 'ja': '通気性', 'ko': '통기성'},
    'tarp': {'zh-CN': '天幕', 'zh-TW': '天幕', 'zh': '天幕', 'ja': 'タープ', 'ko': '타프'},
    'tent': {'zh-CN': '帐篷', 'zh-TW': '帳篷', 'zh': '帐篷', 'ja': 'テント', 'ko': '텐트'},
    'sleeping bag': {'zh-CN': '睡袋', 'zh-TW': '睡袋', 'zh': '睡袋', 'ja': '寝袋', 'ko': '침낭'},
    'free shipping': {'zh-CN': '免费配送', 'zh-TW': '免費配送', 'zh': '免费配送', 'ja': '送料無料', 'ko': '무료 배송'},
    'in stock': {'zh-CN': '有货', 'zh-TW': '有貨', 'zh': '有货', 'ja': '在庫あり', 'ko': '재고 있음'},
    'add to cart': {'zh-CN': '加入购物车', 'zh-TW': '加入購物車', 'zh': '加入购物车', 'ja': 'カートに追加', 'ko': '장바구니에 추가'},
    'warranty': {'zh-CN': '保修', 'zh-TW': '保固', 'zh': '保修', 'ja': '保証', 'ko': '보증'},
    'specifications': {'zh-CN': '规格', 'zh-TW': '規格', 'zh': '规格', 'ja': '仕様', 'ko': '사양'},
    'features': {'zh-CN': '特点', 'zh-TW': '特點', 'zh': '特点', 'ja': '特徴', 'ko': '특징'},
    'material': {'zh-CN': '材质', 'zh-TW': '材質', 'zh': '材质', 'ja': '素材', 'ko': '소재'},
    'weight': {'zh-CN': '重量', 'zh-TW': '重量', 'zh': '重量', 'ja': '重量', 'ko': '무게'},
    'size': {'zh-CN': '尺寸', 'zh-TW': '尺寸', 'zh': '尺寸', 'ja': 'サイズ', 'ko': '크기'},
}

# Words removed from handles before translation
HANDLE_FILLER_WORDS = frozenset({
    'a', 'an', 'the', 'new', 'latest', 'best', 'premium', 'quality',
    'top', 'hot', 'sale', 'product', 'for', 'and', 'with', 'of',
})

# Maximum semantic units in a translated handle, by script density
HANDLE_MAX_UNITS: Dict[str, int] = {'cjk': 4, 'default': 8}

# Resource types whose description is stored as plain text first
PLAIN_DESCRIPTION_TYPES: Tuple[str, ...] = ('page',)


class JobState(str, Enum):
    """State of a queued job."""
    WAITING = "waiting"
    DELAYED = "delayed"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class ResourceStatus(str, Enum):
    """Translation status of a resource."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class FieldName(str, Enum):
    """Translatable resource fields, in processing order."""
    TITLE = "title"
    DESCRIPTION = "description"
    HANDLE = "handle"
    SUMMARY = "summary"
    LABEL = "label"
    SEO_TITLE = "seoTitle"
    SEO_DESCRIPTION = "seoDescription"


class StrategyName(str, Enum):
    """Strategies a translation attempt can be attributed to."""
    CACHE = "cache"
    ENHANCED = "enhanced"
    RAISED_THRESHOLD = "raised_threshold"
    STRIPPED_ATTRIBUTES = "stripped_attributes"
    SIMPLIFIED = "simplified"
    TITLE = "title"
    SEO_DESCRIPTION = "seo_description"
    LIST = "list"
    HANDLE = "handle"
    LONG_TEXT = "long_text"
    ORIGINAL = "original"


class FailureKind(str, Enum):
    """Tag attached to a failed attempt."""
    TRANSIENT = "transient"
    LENGTH = "length"
    EMPTY = "empty"
    VALIDATION = "validation"
    PLACEHOLDER = "placeholder"
    CONFIG = "config"
    UNEXPECTED = "unexpected"


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def is_cjk_language(lang: str) -> bool:
    """Check whether a language code targets a CJK script."""
    if not lang:
        return False
    return lang in CJK_LANGUAGES or lang.split('-')[0].lower() in ('zh', 'ja', 'ko')


def script_range(lang: str) -> str:
    """Unicode range of the target script, or an empty string for Latin targets."""
    if not lang:
        return ''
    return SCRIPT_RANGES.get(lang.split('-')[0].lower(), '')


def language_name(lang: str) -> str:
    """Display name of a language code."""
    if not lang:
        return lang
    return LANGUAGE_NAMES.get(lang) or LANGUAGE_NAMES.get(lang.split('-')[0].lower()) or lang
