"""
Export and import of everything the learner owns, as one JSON file.

The file holds the user-data sections (API key in its stored, scrambled
form) and the flashcard document side by side. Hearts are not included.
"""
import copy
import json
import logging

from database.document import DECODE_ERRORS
from database.user_data import hide_api_key
from utils.constants import EXPORT_VERSION
from utils.utils import to_iso

REQUIRED_SECTIONS = ('profile', 'metadata')
FLASHCARD_SECTIONS = ('sets', 'sessions', 'stats', 'gamification')


def export_data(flashcards, user_data, now):
    envelope = {'version': EXPORT_VERSION, 'exported_at': to_iso(now)}
    envelope.update(hide_api_key(user_data.document))
    envelope.update(copy.deepcopy(flashcards.document))
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def _validate(parsed, defaults):
    if not isinstance(parsed, dict):
        raise ValueError("export must be a JSON object")
    for section in REQUIRED_SECTIONS:
        if not isinstance(parsed.get(section), dict):
            raise ValueError(f"missing section: {section}")
    for section, default in defaults.items():
        if section in parsed and type(parsed[section]) is not type(default):
            raise ValueError(f"section {section} must be a {type(default).__name__}")


def import_data(flashcards, user_data, text):
    """
    Replace both documents with the contents of an export. Returns False,
    leaving both stores untouched, if the file is unusable.
    """
    try:
        parsed = json.loads(text)
        user_defaults = user_data.defaults()
        flashcard_defaults = flashcards.defaults()
        _validate(parsed, {**user_defaults, **flashcard_defaults})

        user_document = user_data.decode(
            {k: v for k, v in parsed.items() if k in user_defaults}
        )
        flashcard_document = flashcards.decode(
            {k: v for k, v in parsed.items() if k in FLASHCARD_SECTIONS}
        )
    except DECODE_ERRORS as e:
        logging.error(f"Failed to import data: {e}")
        return False

    user_data.replace(user_document)
    flashcards.replace(flashcard_document)
    logging.info(f"Imported data exported at {parsed.get('exported_at')}")
    return True
