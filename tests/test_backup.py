"""
Tests for database/backup.py: export and import of all learner data.
"""
import copy
import json

import pytest

import database.database as db
from app import open_app
from database.backup import export_data, import_data
from utils.constants import EXPORT_VERSION, STORE_KEY, USER_DATA_KEY
from utils.obfuscation import obfuscate


@pytest.fixture()
def app(tdb, clock):
    app = open_app(clock=clock)
    app.flashcards.add_set('Capitals', [{'question': 'Capital of Japan?', 'answer': 'Tokyo'}],
                           tags=['geo'])
    app.user_data.update_profile(nickname='Ada')
    app.user_data.update_preferences(llm_api_key='sk-live-42')
    app.user_data.add_note('Verbs', 'être', tags=['fr'])
    app.user_data.add_goal('Read more', milestones=['One book'])
    return app


def without_updated_at(document):
    document = copy.deepcopy(document)
    document['metadata'].pop('updated_at')
    return document


# ── Export ────────────────────────────────────────────────────

class TestExport:
    def test_envelope(self, app, clock):
        parsed = json.loads(export_data(app.flashcards, app.user_data, clock()))
        assert parsed['version'] == EXPORT_VERSION
        assert parsed['exported_at'] == clock().isoformat()
        assert parsed['profile']['nickname'] == 'Ada'
        assert parsed['sets'][0]['title'] == 'Capitals'
        assert parsed['gamification']['total_xp'] == 0
        assert 'hearts' not in parsed

    def test_api_key_scrambled(self, app, clock):
        text = export_data(app.flashcards, app.user_data, clock())
        assert 'sk-live-42' not in text
        assert json.loads(text)['preferences']['llm_api_key'] == obfuscate('sk-live-42')
        # the live store still holds the usable key
        assert app.user_data.preferences['llm_api_key'] == 'sk-live-42'

    def test_human_readable(self, app, clock):
        text = export_data(app.flashcards, app.user_data, clock())
        assert text.startswith('{\n  "')
        assert 'être' in text


# ── Import ────────────────────────────────────────────────────

class TestImport:
    def test_round_trip(self, app, clock):
        flashcards_before = copy.deepcopy(app.flashcards.document)
        user_before = copy.deepcopy(app.user_data.document)
        text = export_data(app.flashcards, app.user_data, clock())

        app.flashcards.reset()
        app.user_data.clear_all_data()
        clock.advance(hours=2)

        assert import_data(app.flashcards, app.user_data, text) is True
        assert app.flashcards.document == flashcards_before
        assert without_updated_at(app.user_data.document) == without_updated_at(user_before)
        assert app.user_data.document['metadata']['updated_at'] == clock().isoformat()
        assert app.user_data.preferences['llm_api_key'] == 'sk-live-42'

    def test_import_is_persisted(self, app, clock):
        text = export_data(app.flashcards, app.user_data, clock())
        app.flashcards.reset()
        app.user_data.clear_all_data()
        import_data(app.flashcards, app.user_data, text)

        again = open_app(clock=clock)
        assert [s['title'] for s in again.flashcards.sets] == ['Capitals']
        assert again.user_data.profile['nickname'] == 'Ada'
        assert again.user_data.preferences['llm_api_key'] == 'sk-live-42'

    def test_older_export_gets_defaults(self, app, clock):
        text = json.dumps({
            'version': '1.0.0',
            'profile': {'nickname': 'Grace'},
            'metadata': {'version': 1},
            'sets': [{'id': 'set-1', 'title': 'Old', 'cards': [
                {'id': 'c1', 'question': 'q', 'answer': 'a', 'difficulty': 'easy'}
            ]}],
        })
        assert import_data(app.flashcards, app.user_data, text) is True
        assert app.user_data.profile['nickname'] == 'Grace'
        assert app.user_data.profile['daily_goal_minutes'] == 15
        assert app.user_data.document['notes'] == []
        assert app.flashcards.gamification['current_level'] == 1
        assert app.flashcards.get_card('set-1', 'c1')['ease_factor'] == 2.5

    @pytest.mark.parametrize('text', [
        'not json at all',
        '[1, 2, 3]',
        '{"metadata": {}}',
        '{"profile": {}, "metadata": "yesterday"}',
        '{"profile": {}, "metadata": {}, "notes": {"a": 1}}',
        '{"profile": {}, "metadata": {}, "sets": "none"}',
        '{"profile": {}, "metadata": {}, "sets": [42]}',
        '{"profile": {}, "metadata": {}, "stats": "x"}',
        '{"profile": {}, "metadata": {}, "preferences": []}',
        '{"profile": {}, "metadata": {}, "notes": [1]}',
        '{"profile": {"daily_goal_minutes": "lots"}, "metadata": {}}',
        '{"profile": {}, "metadata": {}, "gamification": {"daily_goal": 20}}',
        '{"profile": {}, "metadata": {}, "gamification": {"current_streak": "4"}}',
    ])
    def test_bad_input_changes_nothing(self, app, text):
        flashcards_before = copy.deepcopy(app.flashcards.document)
        user_before = copy.deepcopy(app.user_data.document)
        stored = (db.get_blob(STORE_KEY), db.get_blob(USER_DATA_KEY))

        assert import_data(app.flashcards, app.user_data, text) is False
        assert app.flashcards.document == flashcards_before
        assert app.user_data.document == user_before
        assert (db.get_blob(STORE_KEY), db.get_blob(USER_DATA_KEY)) == stored

    def test_corrupted_export_rejected(self, app, clock):
        data = json.loads(export_data(app.flashcards, app.user_data, clock()))
        data['stats'] = 'garbage'
        assert import_data(app.flashcards, app.user_data, json.dumps(data)) is False
        assert app.flashcards.stats['total_sets'] == 1
        assert json.loads(db.get_blob(STORE_KEY))['stats']['total_sets'] == 1
