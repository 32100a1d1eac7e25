"""
Tests for the translation orchestrator, handles and residual English cleanup.
"""
from unittest.mock import Mock

import pytest

from shop_translator.config.constants import FailureKind, FieldName, StrategyName
from shop_translator.config.settings import TranslationConfig
from shop_translator.models.translation import FieldResult, Resource, StrategyOutcome
from shop_translator.services.cache_service import TranslationCache
from shop_translator.services.handles import HandleTranslator, dedupe_units, normalize_handle, slugify
from shop_translator.services.orchestrator import TranslationOrchestrator, untranslatable_reason
from shop_translator.services.residue import ResidueScanner, dictionary_translate, replace_outside_markup
from shop_translator.services.strategies import StrategyCascade

from tests.helpers import fail, ok


class FakeCascade:
    """Word-swapping stand-in for the strategy cascade."""

    def __init__(self, limit=None, succeed=True):
        self.limit = limit
        self.succeed = succeed
        self.calls = []

    def translate(self, text, lang, field=None, resource_type=None):
        self.calls.append(text)
        if not self.succeed:
            return StrategyOutcome(False, text, StrategyName.ORIGINAL, failure=FailureKind.VALIDATION, reason='rejected')
        if self.limit and len(text) > self.limit:
            return StrategyOutcome(False, text, StrategyName.ORIGINAL, failure=FailureKind.LENGTH, reason='too long')
        return StrategyOutcome(True, text.replace('hammock', 'hamac'), StrategyName.ENHANCED, attempts=1)

    def translate_list(self, items, lang, resource_type=None):
        return [StrategyOutcome(True, 'FR ' + item, StrategyName.LIST, attempts=1) for item in items]


def long_description(paragraphs=60):
    paragraph = '<p class="copy">The hammock tarp sheds rain and blocks wind on every trip.</p>'
    images = ''.join(f'<img src="https://cdn.example.com/{i}.jpg?w=800">' for i in range(3))
    return '<div>' + paragraph * (paragraphs // 2) + images + paragraph * (paragraphs // 2) + '</div>'


@pytest.fixture
def settings():
    return TranslationConfig(max_chunk_size=1000, long_text_threshold=1500, max_reattach_depth=2)


@pytest.fixture
def orchestrator_for(settings):
    def factory(cascade, handles=None, residue=None):
        return TranslationOrchestrator(
            cascade=cascade,
            handles=handles or Mock(),
            residue=residue or Mock(clean=Mock(side_effect=lambda text, lang: (text, []))),
            settings=settings
        )
    return factory


class TestLongText:
    """Protect, chunk, translate, restore."""

    def test_long_html_is_chunked_and_restored(self, orchestrator_for):
        cascade = FakeCascade()
        text = long_description()
        result = orchestrator_for(cascade).translate_field(FieldName.DESCRIPTION, text, 'fr')

        assert result.success
        assert result.strategy == StrategyName.LONG_TEXT
        assert len(cascade.calls) > 1
        assert all(len(call) <= 1000 for call in cascade.calls)
        assert 'hammock' not in result.text
        assert result.text == text.replace('hammock', 'hamac')
        for i in range(3):
            assert f'https://cdn.example.com/{i}.jpg?w=800' in result.text

    def test_placeholders_are_sent_not_markup(self, orchestrator_for):
        cascade = FakeCascade()
        orchestrator_for(cascade).translate_field(FieldName.DESCRIPTION, long_description(), 'fr')
        sent = ''.join(cascade.calls)
        assert 'cdn.example.com' not in sent
        assert '__PROTECTED_IMG_' in sent

    def test_length_failure_reattaches_halves(self, orchestrator_for):
        cascade = FakeCascade(limit=600)
        text = long_description()
        result = orchestrator_for(cascade).translate_field(FieldName.DESCRIPTION, text, 'fr')

        assert result.success
        assert result.text == text.replace('hammock', 'hamac')
        assert any(len(call) > 600 for call in cascade.calls)

    def test_majority_failure_keeps_original(self, orchestrator_for):
        text = long_description()
        result = orchestrator_for(FakeCascade(succeed=False)).translate_field(FieldName.DESCRIPTION, text, 'fr')

        assert not result.success
        assert result.needs_review
        assert result.text == text

    def test_list_blocks_translated_in_place(self, orchestrator_for):
        items = ''.join(f'<li>Feature number {i} of the hammock</li>' for i in range(50))
        text = '<p>Intro about the hammock.</p><ul>' + items + '</ul>'
        result = orchestrator_for(FakeCascade()).translate_field(FieldName.DESCRIPTION, text, 'fr')

        assert result.success
        assert result.text.count('<li>FR Feature number') == 50
        assert result.text.startswith('<p>Intro about the hamac.</p><ul>')

    def test_cjk_description_gets_residue_pass(self, orchestrator_for):
        residue = Mock()
        residue.clean.side_effect = lambda text, lang: (text, ['residual English replaced: x'])
        result = orchestrator_for(FakeCascade(), residue=residue).translate_field(
            FieldName.DESCRIPTION, long_description(), 'zh-CN'
        )
        residue.clean.assert_called_once()
        assert 'residual English replaced: x' in result.notes


class TestShortFields:
    """Fields under the long-text threshold."""

    def test_plain_title(self, orchestrator_for):
        result = orchestrator_for(FakeCascade()).translate_field(FieldName.TITLE, 'Camping hammock', 'fr')
        assert result.success
        assert result.text == 'Camping hamac'
        assert result.strategy == StrategyName.ENHANCED

    def test_short_html_round_trip(self, orchestrator_for):
        text = '<p class="lead">Light hammock</p><img src="https://cdn.example.com/x.jpg">'
        result = orchestrator_for(FakeCascade()).translate_field(FieldName.DESCRIPTION, text, 'fr')
        assert result.text == '<p class="lead">Light hamac</p><img src="https://cdn.example.com/x.jpg">'

    def test_lost_placeholder_keeps_original(self, orchestrator_for):
        cascade = Mock()
        cascade.translate.return_value = StrategyOutcome(True, '<p>Hamac léger</p>', StrategyName.ENHANCED)
        text = '<p class="lead">Light hammock</p>'
        result = orchestrator_for(cascade).translate_field(FieldName.DESCRIPTION, text, 'fr')

        assert not result.success
        assert result.text == text

    def test_stripped_attribute_translation_survives_second_run(self, orchestrator_for, make_client, tmp_path):
        text = (
            '<p class="product-description-paragraph" id="lead-paragraph" data-track="pdp-copy">'
            'Keeps you dry and warm through the night.</p>'
        )
        translated = '<p>Vous garde au sec et au chaud toute la nuit.</p>'
        client = make_client(
            fail(FailureKind.LENGTH, 'Response truncated'), ok(translated),
            fail(FailureKind.LENGTH, 'Response truncated'), ok(translated)
        )
        cache = TranslationCache(db_path=str(tmp_path / 'cache.db'), enabled=True)
        cascade = StrategyCascade(client=client, settings=TranslationConfig(), cache=cache, sleep=Mock())
        orchestrator = orchestrator_for(cascade)

        first = orchestrator.translate_field(FieldName.DESCRIPTION, text, 'fr')
        second = orchestrator.translate_field(FieldName.DESCRIPTION, text, 'fr')

        for result in (first, second):
            assert result.success
            assert result.strategy == StrategyName.STRIPPED_ATTRIBUTES
            assert result.text == translated
        assert cache.get_stats()['total_entries'] == 0

    def test_unexpected_error_keeps_original(self, orchestrator_for):
        cascade = Mock()
        cascade.translate.side_effect = RuntimeError('boom')
        result = orchestrator_for(cascade).translate_field(FieldName.TITLE, 'Camping hammock', 'fr')

        assert not result.success
        assert result.text == 'Camping hammock'


class TestUntranslatableValues:
    """Brand names, product codes and acronyms skip the API."""

    @pytest.mark.parametrize('text, reason', [
        ('Onewind', 'brand word'),
        ('Hammockly', 'brand word pattern'),
        ('AB-123', 'product code'),
        ('HX2040 Pro', 'product code'),
        ('CPU', 'acronym'),
    ])
    def test_reasons(self, text, reason):
        assert untranslatable_reason(text) == reason

    @pytest.mark.parametrize('text', [
        'Camping hammock',
        'lightweight tarp',
        'Go',
        'A long sentence that is well over the fifty character limit',
    ])
    def test_translatable(self, text):
        assert untranslatable_reason(text) is None

    def test_vendor_value(self):
        assert untranslatable_reason('Trail Works', vendor='Trail Works') == 'vendor name'
        assert untranslatable_reason('Trail Works') is None

    def test_skipped_field_makes_no_call(self, orchestrator_for):
        cascade = FakeCascade()
        result = orchestrator_for(cascade).translate_field(FieldName.LABEL, 'SKU-2040', 'fr')

        assert result.success
        assert result.text == 'SKU-2040'
        assert result.strategy == StrategyName.ORIGINAL
        assert result.notes == ['kept as is: product code']
        assert cascade.calls == []

    def test_vendor_passed_from_resource(self, orchestrator_for):
        cascade = FakeCascade()
        resource = Resource(id='r1', shop_id='s1', title='Trail Works', label='Trail Works', vendor='Trail Works')

        result = orchestrator_for(cascade).translate_resource(resource, 'fr')

        assert result.translations['title'] == 'Trail Works'
        assert result.success
        assert cascade.calls == []


class TestShortFieldResidue:
    """Residual English pass on short descriptions."""

    def test_short_cjk_description_gets_residue_pass(self, orchestrator_for):
        residue = Mock()
        residue.clean.side_effect = lambda text, lang: (text.replace('hamac', '吊床'), ['residual English replaced: hamac'])
        text = '<p class="lead">Light hammock</p>'

        result = orchestrator_for(FakeCascade(), residue=residue).translate_field(FieldName.DESCRIPTION, text, 'zh-CN')

        assert result.text == '<p class="lead">Light 吊床</p>'
        assert 'residual English replaced: hamac' in result.notes
        sent = residue.clean.call_args.args[0]
        assert 'lead' not in sent

    def test_title_skips_residue_pass(self, orchestrator_for):
        residue = Mock()
        orchestrator_for(FakeCascade(), residue=residue).translate_field(FieldName.TITLE, 'Camping hammock', 'ja')
        residue.clean.assert_not_called()

    def test_latin_target_skips_residue_pass(self, orchestrator_for):
        residue = Mock()
        orchestrator_for(FakeCascade(), residue=residue).translate_field(FieldName.SUMMARY, 'Light hammock', 'fr')
        residue.clean.assert_not_called()


class TestTranslateResource:
    """Whole-resource translation."""

    def test_fields_are_independent(self, orchestrator_for):
        handles = Mock()
        handles.translate.return_value = FieldResult(
            FieldName.HANDLE, 'camping-hammock', 'camping-hammock-fr', False, StrategyName.ORIGINAL, ['fallback']
        )
        resource = Resource(
            id='r1', shop_id='s1', title='Camping hammock',
            handle='camping-hammock', description_html='<p>A hammock for two.</p>'
        )

        result = orchestrator_for(FakeCascade(), handles=handles).translate_resource(resource, 'fr')

        assert result.success
        assert result.failed_fields == ['handle']
        translations = result.translations
        assert translations['title'] == 'Camping hamac'
        assert translations['description'] == '<p>A hamac for two.</p>'
        assert translations['seoTitle'] is None
        assert result.to_dict()['fields']['handle']['needsReview'] is True


class TestHandles:
    """URL handle translation."""

    def test_helpers(self):
        assert slugify('Waterproof Hammock Tarp!') == 'waterproof-hammock-tarp'
        assert slugify('防水 天幕') == '防水-天幕'
        assert normalize_handle('the-best-camping-hammock') == 'camping hammock'
        assert dedupe_units(['hammock tarp', 'tarp', 'Tarp', 'rope']) == ['hammock tarp', 'rope']

    def test_cjk_handle(self, make_client):
        client = make_client(ok('防水 天幕 吊床 户外 露营'))
        result = HandleTranslator(client=client, sleep=Mock()).translate('waterproof-hammock-tarp', 'zh-CN')

        assert result.success
        assert result.text == '防水-天幕-吊床-户外'
        assert result.strategy == StrategyName.HANDLE
        assert any('capped' in note for note in result.notes)

    def test_fallback_marks_failure(self, make_client):
        client = make_client(fail(FailureKind.CONFIG, 'API error 401', 401))
        result = HandleTranslator(client=client, sleep=Mock()).translate('waterproof-hammock-tarp', 'zh-CN')

        assert not result.success
        assert result.text == 'waterproof-hammock-tarp-zh-cn'
        assert client.chat.call_count == 1


class TestResidue:
    """Residual English cleanup for CJK output."""

    TEXT = '<p>这款天幕非常轻。Lightweight ripstop fabric keeps rain out easily.</p>'

    def test_finds_long_sentence(self):
        scanner = ResidueScanner(client=Mock())
        assert scanner.find_phrases(self.TEXT) == ['Lightweight ripstop fabric keeps rain out easily.']

    def test_skips_brands_and_placeholders(self):
        scanner = ResidueScanner(client=Mock())
        assert scanner.find_phrases('<p>中文 __PROTECTED_IMG_0__ 中文</p>') == []

    def test_clean_replaces_phrase(self, make_client):
        scanner = ResidueScanner(client=make_client(ok('轻质防撕裂面料，轻松防雨。')))
        text, notes = scanner.clean(self.TEXT, 'zh-CN')

        assert text == '<p>这款天幕非常轻。轻质防撕裂面料，轻松防雨。</p>'
        assert len(notes) == 1

    def test_clean_ignores_latin_targets(self):
        client = Mock()
        assert ResidueScanner(client=client).clean(self.TEXT, 'fr') == (self.TEXT, [])
        client.chat.assert_not_called()

    def test_replace_outside_markup(self):
        text = '<a title="Rain fly">Rain fly</a> __PROTECTED_CLASS_0__'
        assert replace_outside_markup(text, 'Rain fly', '雨篷') == '<a title="雨篷">雨篷</a> __PROTECTED_CLASS_0__'

    def test_dictionary_leaves_unknown_phrases(self):
        assert dictionary_translate('zzz unknown qqq', 'zh-CN') == 'zzz unknown qqq'
