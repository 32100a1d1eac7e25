"""
Tests for placeholder protection of HTML and non-translatable content.
"""
import re

import pytest

from shop_translator.utils.html_protection import (
    PLACEHOLDER_PATTERN,
    PlaceholderLossError,
    PlaceholderProtector,
    find_missing_placeholders,
    placeholder_tokens,
    strip_non_essential_attributes
)


@pytest.fixture
def protector():
    return PlaceholderProtector()


def long_product_description() -> str:
    paragraph = (
        '<p class="lead" style="color:#333">This lightweight hammock tarp keeps you dry on every trip. '
        'Set it up in minutes and pack it down to the size of a water bottle.</p>\n'
    )
    media = (
        '<video controls poster="https://cdn.example.com/poster.jpg">'
        '<source src="https://cdn.example.com/tarp.mp4?v=3&amp;w=1080" type="video/mp4"></video>\n'
        '<img src="https://cdn.example.com/a.jpg?width=800" alt="Tarp front">\n'
        '<img src="https://cdn.example.com/b.jpg?width=800" alt="Tarp side">\n'
        '<img src="https://cdn.example.com/c.jpg?width=800" alt="Tarp packed">\n'
    )
    body = paragraph * 30
    text = body[:2500] + media + body[2500:]
    return text[:5000] if len(text) > 5000 else text


class TestRoundTrip:
    """restore(protect(t)) reproduces t."""

    @pytest.mark.parametrize('text', [
        '',
        'Plain text without markup.',
        '<p>Hello <b>world</b></p>',
        '<div class="a" id="b" data-x="1" aria-label="c"><a href="/x">Go</a></div>',
        "<p style='margin:0'>Single quoted</p>",
        '<style>.a{color:red}</style><script>var a = "<p>";</script><p>Text</p>',
        '<!-- note --><pre>keep   spacing</pre><code>x < y</code>',
        '<iframe src="https://www.youtube.com/embed/abc"></iframe><p>After</p>',
        '<code><!-- nested comment --></code>',
        'Literal __PROTECTED_CLASS_0__ text in the source',
        'Dangling __PROTECTED_ marker',
    ])
    def test_round_trip(self, protector, text):
        protected = protector.protect(text)
        assert protector.restore(protected.text, protected.placeholders) == text

    def test_long_description_with_media(self, protector):
        text = long_product_description()
        protected = protector.protect(text)

        assert protected.count >= 4
        assert protector.restore(protected.text, protected.placeholders) == text
        for url in ('https://cdn.example.com/tarp.mp4?v=3&amp;w=1080', 'https://cdn.example.com/a.jpg?width=800'):
            assert url not in protected.text
            assert any(url in value for value in protected.placeholders.values())


class TestProtect:
    """Test placeholder creation."""

    def test_placeholder_format(self, protector):
        protected = protector.protect('<img src="a.png"><p class="x">Hi</p>')
        for token in protected.placeholders:
            assert PLACEHOLDER_PATTERN.fullmatch(token)

    def test_placeholders_are_unique(self, protector):
        protected = protector.protect('<img src="a.png"><img src="a.png"><img src="a.png">')
        tokens = placeholder_tokens(protected.text)
        assert len(tokens) == 3
        assert len(set(tokens)) == 3

    def test_attribute_value_only(self, protector):
        protected = protector.protect('<a href="https://shop.example.com/p/1" class="btn">Buy now</a>')
        assert protected.text.startswith('<a href="__PROTECTED_URL_')
        assert 'Buy now' in protected.text
        assert '</a>' in protected.text

    def test_video_is_one_placeholder(self, protector):
        protected = protector.protect('<video><source src="v.mp4"></video>')
        assert re.fullmatch(r'__PROTECTED_VIDEO_\d+__', protected.text)

    def test_text_is_not_protected(self, protector):
        protected = protector.protect('Waterproof Hammock Tarp')
        assert protected.text == 'Waterproof Hammock Tarp'
        assert protected.placeholders == {}


class TestRestore:
    """Test placeholder restoration."""

    def test_missing_placeholder_raises(self, protector):
        protected = protector.protect('<p class="a">One</p><img src="b.png">')
        damaged = PLACEHOLDER_PATTERN.sub('', protected.text, count=1)

        with pytest.raises(PlaceholderLossError) as exc_info:
            protector.restore(damaged, protected.placeholders)
        assert len(exc_info.value.missing) == 1
        assert exc_info.value.restored_text

    def test_non_strict_restore(self, protector):
        protected = protector.protect('<img src="b.png"><p>Text</p>')
        restored = protector.restore('<p>Texte</p>', protected.placeholders, strict=False)
        assert restored == '<p>Texte</p>'

    def test_ignored_tokens(self, protector):
        protected = protector.protect('<p class="a">One</p>')
        token = next(iter(protected.placeholders))
        without = protected.text.replace(f' class="{token}"', '')
        assert protector.restore(without, protected.placeholders, ignore={token}) == '<p>One</p>'

    def test_nested_tokens_are_not_required(self, protector):
        protected = protector.protect('<code><!-- c --></code>')
        # Only the outer CODE token is in the text; the COMMENT one lives inside it
        assert len(protected.placeholders) == 2
        assert find_missing_placeholders(protected.text, protected.placeholders) == []


class TestAttributeStripping:
    """Test removal of non-essential attributes."""

    def test_strips_presentation_attributes(self):
        html = '<div class="a" style="b" id="c" data-x="d"><a href="/e">Link</a></div>'
        assert strip_non_essential_attributes(html) == '<div><a href="/e">Link</a></div>'

    def test_leaves_text_alone(self):
        assert strip_non_essential_attributes('class="x" in prose') == 'class="x" in prose'
