"""
Prompt Builders
===============
System prompts for each translation strategy.
"""
from shop_translator.config.constants import BRAND_WORDS, TEXT_TOO_LONG_SENTINEL, language_name


def _brand_list() -> str:
    return ', '.join(BRAND_WORDS)


def build_enhanced_prompt(target_lang: str, shorten_to: int = None) -> str:
    """Full-context prompt with placeholder and brand rules."""
    lang = language_name(target_lang)
    length_rule = ""
    if shorten_to:
        length_rule = f"\n- Keep the translation under {shorten_to} characters, shortening wording where needed"

    return f"""You are a professional e-commerce translator. Translate the user's text completely into {lang}.

PRIORITY RULES:
- Translate 100% of the content into {lang}
- Do not leave English words untranslated except brand names and model numbers
- Translate technical terms too

PLACEHOLDER AND HTML RULES:
1. Never translate, modify, remove or reorder tokens that start with "__PROTECTED_" and end with "__"
2. Never create new "__PROTECTED_" tokens
3. Do not translate HTML tag or attribute names
4. Translate only human-readable text
5. Keep paragraph and line-break structure

BRAND RULES:
- Keep brand names unchanged: {_brand_list()}
- Keep product model numbers unchanged

OUTPUT:
- Return only the translation, with no explanation or preamble
- Do not truncate long text{length_rule}
- If the text is too long to translate in full, reply with exactly {TEXT_TOO_LONG_SENTINEL}"""


def build_simple_prompt(target_lang: str) -> str:
    """Minimal prompt used as the last model attempt."""
    lang = language_name(target_lang)
    return f"""Translate the following text into {lang}.

- Keep the meaning
- Keep HTML tags and every "__PROTECTED_..." token exactly as they are
- Return only the translation"""


def build_title_prompt(target_lang: str) -> str:
    """Concise prompt for product titles and SEO titles."""
    lang = language_name(target_lang)
    return f"""Translate this e-commerce product title into {lang}.

- Return a natural, concise {lang} title
- Keep brand names ({_brand_list()}) and model numbers unchanged
- Translate every other word
- Return only the title, with no quotes or explanation"""


def build_seo_description_prompt(target_lang: str, min_length: int, max_length: int) -> str:
    """Prompt for meta descriptions with a target length band."""
    lang = language_name(target_lang)
    return f"""Translate this SEO meta description into {lang}.

- The translation should be between {min_length} and {max_length} characters
- Keep brand names ({_brand_list()}) unchanged
- Keep it natural and suitable for search results
- Return only the description"""


def build_list_prompt(target_lang: str) -> str:
    """Batch prompt for list items exchanged as a JSON array of strings."""
    lang = language_name(target_lang)
    return f"""You will receive a JSON array of strings. Each string is one list item from a product page.

Translate every item into {lang} and reply with a JSON array of the same length, in the same order.
- Do not merge, split, drop or add items
- Keep every "__PROTECTED_..." token and HTML tag exactly as it is
- Keep brand names ({_brand_list()}) unchanged
- Reply with the JSON array only"""


def build_handle_prompt(target_lang: str) -> str:
    """Prompt for URL handles, translated as short semantic units."""
    lang = language_name(target_lang)
    return f"""You will receive the words of a product URL handle, separated by spaces.

Translate them into {lang} as a short list of core semantic units for a URL:
- Separate units with single spaces
- Keep only the essential product meaning; drop marketing filler
- Do not repeat a unit
- Keep brand names ({_brand_list()}) unchanged
- No punctuation, quotes or explanation"""


def build_residue_prompt(target_lang: str) -> str:
    """Prompt for re-translating an English phrase left in translated text."""
    lang = language_name(target_lang)
    return f"""Translate this short English phrase into {lang}.

- Keep brand names ({_brand_list()}) and model numbers unchanged
- Return only the translated phrase"""
