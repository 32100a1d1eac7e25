"""
Tests for the translation strategy cascade.
"""
import json
from unittest.mock import Mock, call

import pytest

from shop_translator.config import config
from shop_translator.config.constants import FailureKind, FieldName, StrategyName
from shop_translator.config.settings import TranslationConfig
from shop_translator.services.strategies import StrategyCascade, trim_to_length
from shop_translator.services.validator import CompletenessValidator

from tests.helpers import fail, ok, rate_limited

DESCRIPTION = (
    "Our camping hammock keeps you off wet ground and away from insects, "
    "and it sets up between two trees in under five minutes."
)
DESCRIPTION_FR = (
    "Notre hamac de camping vous garde loin du sol humide et des insectes, "
    "et il s'installe entre deux arbres en moins de cinq minutes."
)


@pytest.fixture
def settings():
    return TranslationConfig(max_retries=3, retry_delay=1.0, max_retry_delay=10.0)


@pytest.fixture
def cascade_for(settings):
    def factory(client, cache=None):
        return StrategyCascade(
            client=client,
            validator=CompletenessValidator(),
            settings=settings,
            cache=cache,
            sleep=Mock()
        )
    return factory


class TestGeneralCascade:
    """Enhanced, raised threshold, stripped attributes, simplified, original."""

    def test_enhanced_success(self, make_client, cascade_for):
        cascade = cascade_for(make_client(ok(DESCRIPTION_FR)))
        outcome = cascade.translate(DESCRIPTION, 'fr')
        assert outcome.success
        assert outcome.strategy == StrategyName.ENHANCED
        assert outcome.text == DESCRIPTION_FR
        assert outcome.attempts == 1

    def test_rate_limited_then_simplified(self, make_client, cascade_for):
        client = make_client(rate_limited(), rate_limited(), rate_limited(), ok(DESCRIPTION_FR))
        cascade = cascade_for(client)

        outcome = cascade.translate(DESCRIPTION, 'fr', FieldName.DESCRIPTION)

        assert outcome.success
        assert outcome.strategy == StrategyName.SIMPLIFIED
        assert outcome.attempts == 4
        assert cascade.sleep.call_args_list == [call(1.0), call(2.0)]

    def test_config_failure_stops(self, make_client, cascade_for):
        client = make_client(fail(FailureKind.CONFIG, 'API error 401', 401))
        outcome = cascade_for(client).translate(DESCRIPTION, 'fr')

        assert not outcome.success
        assert outcome.failure == FailureKind.CONFIG
        assert outcome.text == DESCRIPTION
        assert client.chat.call_count == 1

    def test_total_failure_returns_original(self, make_client, cascade_for):
        client = make_client(fail(FailureKind.EMPTY), fail(FailureKind.EMPTY))
        outcome = cascade_for(client).translate(DESCRIPTION, 'fr')

        assert not outcome.success
        assert outcome.strategy == StrategyName.ORIGINAL
        assert outcome.text == DESCRIPTION
        assert outcome.reason.startswith('all strategies failed')
        assert client.chat.call_count == 2

    def test_raised_threshold_for_borderline_text(self, make_client, cascade_for):
        original = 'The hammock keeps campers comfortable above wet ground. ' * 20
        translated = 'Le hamac garde les campeurs confortables au-dessus du sol humide. ' * 20
        client = make_client(fail(FailureKind.LENGTH, 'Response truncated'), ok(translated))

        outcome = cascade_for(client).translate(original, 'fr')

        assert outcome.strategy == StrategyName.RAISED_THRESHOLD
        assert client.chat.call_args_list[1].kwargs['timeout'] == config.api.long_text_timeout
        assert client.chat.call_args_list[1].kwargs['max_tokens'] == config.api.max_tokens

    def test_stripped_attributes(self, make_client, cascade_for):
        original = '<p class="feature-list-paragraph-large" style="margin:0;padding:0">Stays dry.</p>' * 5
        client = make_client(fail(FailureKind.LENGTH, 'Response truncated'), ok('<p>Reste au sec.</p>' * 5))

        outcome = cascade_for(client).translate(original, 'fr')

        assert outcome.success
        assert outcome.strategy == StrategyName.STRIPPED_ATTRIBUTES
        sent = client.chat.call_args_list[1].args[1]
        assert 'class=' not in sent
        assert 'style=' not in sent

    def test_lost_placeholder_is_rejected(self, make_client, cascade_for):
        original = '__PROTECTED_IMG_0__ ' + DESCRIPTION
        client = make_client(ok(DESCRIPTION_FR), ok('__PROTECTED_IMG_0__ ' + DESCRIPTION_FR))

        outcome = cascade_for(client).translate(original, 'fr')

        assert outcome.success
        assert outcome.strategy == StrategyName.SIMPLIFIED
        assert outcome.text.startswith('__PROTECTED_IMG_0__')

    def test_unexpected_error_is_contained(self, cascade_for):
        client = Mock()
        client.chat.side_effect = RuntimeError('boom')
        outcome = cascade_for(client).translate(DESCRIPTION, 'fr')

        assert not outcome.success
        assert outcome.failure == FailureKind.UNEXPECTED
        assert outcome.text == DESCRIPTION

    def test_blank_text(self, make_client, cascade_for):
        client = make_client()
        outcome = cascade_for(client).translate('   ', 'fr')
        assert outcome.success
        client.chat.assert_not_called()


class TestTitles:
    """Title prompt and CJK checks."""

    def test_product_title_keeps_brand_word(self, make_client, cascade_for):
        client = make_client(ok('防水Hammock天幕'))
        outcome = cascade_for(client).translate('Waterproof Hammock Tarp', 'zh-CN', FieldName.TITLE, 'product')

        assert outcome.success
        assert outcome.strategy == StrategyName.TITLE
        assert outcome.text == '防水Hammock天幕'

    def test_untranslated_title_falls_back(self, make_client, cascade_for):
        client = make_client(ok('Waterproof Hammock Tarp'), ok('防水吊床天幕'))
        outcome = cascade_for(client).translate('Waterproof Hammock Tarp', 'zh-CN', FieldName.TITLE)

        assert outcome.success
        assert outcome.strategy == StrategyName.SIMPLIFIED
        assert outcome.text == '防水吊床天幕'


class TestSeoDescription:
    """SEO description length band."""

    ORIGINAL = (
        "Shop the lightweight waterproof hammock tarp for camping trips. "
        "Easy setup, compact storage and durable fabric for every season outdoors."
    )

    def test_asks_for_shorter_version(self, make_client, cascade_for):
        too_long = 'Achetez la bâche de hamac légère et imperméable. ' * 5
        shorter = 'Bâche de hamac légère et imperméable pour le camping, facile à installer et compacte.'
        client = make_client(ok(too_long), ok(shorter))

        outcome = cascade_for(client).translate(self.ORIGINAL, 'fr', FieldName.SEO_DESCRIPTION)

        assert outcome.success
        assert outcome.text == shorter
        assert client.chat.call_count == 2

    def test_trims_when_still_too_long(self, make_client, cascade_for):
        too_long = 'Achetez la bâche de hamac légère et imperméable. ' * 5
        client = make_client(ok(too_long), ok(too_long))

        outcome = cascade_for(client).translate(self.ORIGINAL, 'fr', FieldName.SEO_DESCRIPTION)

        assert outcome.success
        assert len(outcome.text) <= 160
        assert any('trimmed' in warning for warning in outcome.warnings)


class TestLists:
    """Order-preserving list batches."""

    def test_batch_translation(self, make_client, cascade_for):
        items = ['Waterproof nylon shell', '__PROTECTED_IMG_0__', 'Packs into its own pocket']
        reply = json.dumps(['Coque en nylon imperméable', 'Se range dans sa propre poche'], ensure_ascii=False)
        client = make_client(ok(reply))

        outcomes = cascade_for(client).translate_list(items, 'fr')

        assert [o.text for o in outcomes] == [
            'Coque en nylon imperméable', '__PROTECTED_IMG_0__', 'Se range dans sa propre poche'
        ]
        assert outcomes[0].strategy == StrategyName.LIST
        assert outcomes[1].strategy == StrategyName.ORIGINAL
        assert client.chat.call_count == 1

    def test_mismatched_reply_repairs_items(self, make_client, cascade_for):
        items = ['Waterproof nylon shell', 'Packs into its own pocket']
        client = make_client(ok('["Une seule"]'), ok('Coque en nylon'), fail(FailureKind.EMPTY))

        outcomes = cascade_for(client).translate_list(items, 'fr')

        assert outcomes[0].success
        assert outcomes[0].strategy == StrategyName.SIMPLIFIED
        assert not outcomes[1].success
        assert outcomes[1].text == 'Packs into its own pocket'


class TestCache:
    """Cache lookups around the cascade."""

    def test_cache_hit_skips_api(self, make_client, cascade_for):
        cache = Mock()
        cache.get.return_value = 'Texte en cache'
        client = make_client()

        outcome = cascade_for(client, cache=cache).translate(DESCRIPTION, 'fr')

        assert outcome.strategy == StrategyName.CACHE
        assert outcome.text == 'Texte en cache'
        client.chat.assert_not_called()

    def test_success_is_cached(self, make_client, cascade_for):
        cache = Mock()
        cache.get.return_value = None
        cascade_for(make_client(ok(DESCRIPTION_FR)), cache=cache).translate(DESCRIPTION, 'fr')
        cache.set.assert_called_once_with(DESCRIPTION, 'fr', StrategyName.ENHANCED.value, DESCRIPTION_FR)

    def test_stripped_attribute_result_not_cached(self, make_client, cascade_for):
        cache = Mock()
        cache.get.return_value = None
        original = '<p class="feature-list-paragraph-large" style="margin:0;padding:0">Stays dry.</p>' * 5
        client = make_client(fail(FailureKind.LENGTH, 'Response truncated'), ok('<p>Reste au sec.</p>' * 5))

        outcome = cascade_for(client, cache=cache).translate(original, 'fr')

        assert outcome.strategy == StrategyName.STRIPPED_ATTRIBUTES
        cache.set.assert_not_called()


class TestTrimToLength:
    """Trimming at sentence and word boundaries."""

    def test_short_text_unchanged(self):
        assert trim_to_length('Short.', 160) == 'Short.'

    def test_trims_at_sentence_end(self):
        text = 'First sentence is here. Second sentence runs on past the limit for sure.'
        assert trim_to_length(text, 40) == 'First sentence is here.'

    def test_trims_at_word_boundary(self):
        text = 'one two three four five six seven eight nine ten'
        trimmed = trim_to_length(text, 20)
        assert len(trimmed) <= 20
        assert text.startswith(trimmed)
        assert not trimmed.endswith(' ')
