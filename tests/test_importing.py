"""Tests for CSV row normalization and the de-duplicating importer."""

import pytest

from englishapp.errors import StorageError
from englishapp.importing import (
    SENTENCE_SCHEMA, SENTENCE_TARGET, VOCABULARY_SCHEMA, VOCABULARY_TARGET,
    import_batch, normalize_row, parse_csv_text,
)
from englishapp.speech_db import get_all_sentences
from englishapp.vocabulary_db import get_all_vocabulary


class TestNormalizeRow:
    """Mapping loosely-named CSV records onto catalog payloads"""

    def test_vocabulary_aliases_and_case(self):
        row = {'Word': '  apple ', 'Level': 'a1', 'Meaning': 'quả táo', 'Topic': 'Food'}
        payload = normalize_row(row, VOCABULARY_SCHEMA)
        assert payload == {
            'headword': 'apple',
            'cefr': 'A1',
            'vietnamese_meaning': 'quả táo',
            'topic': 'Food',
            'image_url': None,
            'audio_url': None,
        }

    def test_vocabulary_missing_required_field_is_dropped(self):
        assert normalize_row({'headword': 'apple', 'cefr': '   '}, VOCABULARY_SCHEMA) is None

    def test_positional_only_row_dropped_for_vocabulary(self):
        row = {'col_a': 'apple', 'col_b': 'A1'}
        assert normalize_row(row, VOCABULARY_SCHEMA) is None

    def test_positional_only_row_accepted_for_sentences(self):
        row = {'col_a': 'How are you?', 'col_b': 'Bạn khỏe không?'}
        payload = normalize_row(row, SENTENCE_SCHEMA)
        assert payload == {
            'sentence': 'How are you?',
            'translation': 'Bạn khỏe không?',
            'difficulty': 'medium',
            'category': 'general',
        }

    def test_unquoted_comma_spills_into_translation(self):
        batch = parse_csv_text('sentence\nHello, world\n', SENTENCE_SCHEMA)
        assert batch == [{
            'sentence': 'Hello',
            'translation': 'world',
            'difficulty': 'medium',
            'category': 'general',
        }]

    def test_extra_cells_follow_header_cells(self):
        row = {'Phrase': 'See you', None: ['Hẹn gặp lại', 'ignored']}
        payload = normalize_row(row, SENTENCE_SCHEMA)
        assert payload['sentence'] == 'See you'
        assert payload['translation'] == 'Hẹn gặp lại'

    def test_sentence_difficulty_and_category_lowercased(self):
        row = {'Text': 'Good morning', 'Level': 'EASY', 'Topic': 'Greetings'}
        payload = normalize_row(row, SENTENCE_SCHEMA)
        assert payload['difficulty'] == 'easy'
        assert payload['category'] == 'greetings'

    def test_parse_csv_text_skips_invalid_rows(self):
        text = "headword,cefr_level\napple,a2\n,B1\nbanana,\n"
        batch = parse_csv_text(text, VOCABULARY_SCHEMA)
        assert [p['headword'] for p in batch] == ['apple']
        assert batch[0]['cefr'] == 'A2'


class TestImportBatch:
    """Batch insert keyed on the natural key"""

    def test_case_variants_are_distinct_and_duplicates_skipped(self, app):
        batch = [
            {'headword': 'apple', 'cefr': 'A1'},
            {'headword': 'Apple', 'cefr': 'A1'},
            {'headword': 'apple', 'cefr': 'B2'},
        ]
        result = import_batch(VOCABULARY_TARGET, batch)
        assert result == {'success': True, 'count': 2}

        words = get_all_vocabulary()['words']
        assert sorted(w['headword'] for w in words) == ['Apple', 'apple']
        # The first occurrence wins
        assert next(w for w in words if w['headword'] == 'apple')['cefr_level'] == 'A1'

    def test_reimport_is_idempotent(self, app):
        batch = [{'headword': 'run', 'cefr': 'A1'}, {'headword': 'walk', 'cefr': 'A2'}]
        assert import_batch(VOCABULARY_TARGET, batch)['count'] == 2
        assert import_batch(VOCABULARY_TARGET, batch)['count'] == 0
        assert get_all_vocabulary()['pagination']['total'] == 2

    def test_defaults_fill_blank_columns(self, app):
        import_batch(SENTENCE_TARGET, [{'sentence': 'Hello there', 'difficulty': None, 'category': ''}])
        sentence = get_all_sentences()['sentences'][0]
        assert sentence['difficulty'] == 'medium'
        assert sentence['category'] == 'general'

    def test_failure_rolls_back_whole_batch(self, app):
        batch = [
            {'sentence': 'First sentence', 'difficulty': 'easy'},
            {'sentence': 'Second sentence', 'difficulty': 'extreme'},
        ]
        with pytest.raises(StorageError):
            import_batch(SENTENCE_TARGET, batch)
        assert get_all_sentences()['pagination']['total'] == 0
