import copy
import logging

from database.document import BlobDocument, check_items
from utils.constants import BOOKMARK_TYPES, USER_DATA_KEY, USER_DATA_VERSION
from utils.obfuscation import deobfuscate, obfuscate
from utils.utils import generate_id, to_iso

SECTIONS = ('notes', 'memos', 'custom_data', 'goals', 'bookmarks')


def default_profile():
    return {
        'nickname': None,
        'avatar_emoji': None,
        'favorite_subjects': [],
        'learning_style': None,
        'daily_goal_minutes': 15,
        'preferred_difficulty': 'mixed',
    }


def default_preferences():
    return {
        'theme': 'dark',
        'sound_enabled': True,
        'haptic_enabled': True,
        'notifications_enabled': True,
        'streak_reminders': True,
        'weekly_digest': False,
        'language': 'fr',
        'llm_provider': 'none',
        'llm_api_key': None,
    }


def default_user_data(now):
    stamp = to_iso(now)
    return {
        'profile': default_profile(),
        'notes': [],
        'memos': [],
        'custom_data': [],
        'goals': [],
        'bookmarks': [],
        'preferences': default_preferences(),
        'metadata': {
            'version': USER_DATA_VERSION,
            'last_sync_at': None,
            'created_at': stamp,
            'updated_at': stamp,
        },
    }


def hide_api_key(document):
    """Copy of `document` with the API key in its stored form."""
    stored = copy.deepcopy(document)
    key = stored['preferences'].get('llm_api_key')
    stored['preferences']['llm_api_key'] = obfuscate(key) if key else None
    return stored


def reveal_api_key(document):
    key = document['preferences'].get('llm_api_key')
    document['preferences']['llm_api_key'] = deobfuscate(key) if key else None
    return document


class UserDataStore(BlobDocument):
    """Profile, preferences and the learner's own notes, memos, goals and bookmarks."""

    key = USER_DATA_KEY

    def defaults(self):
        return default_user_data(self.clock())

    def decode(self, parsed):
        document = super().decode(parsed)
        for section in SECTIONS:
            check_items(document[section], section)
        return reveal_api_key(document)

    def encode(self):
        return hide_api_key(self.document)

    def save(self):
        self.document['metadata']['updated_at'] = to_iso(self.clock())
        super().save()

    @property
    def profile(self):
        return self.document['profile']

    @property
    def preferences(self):
        return self.document['preferences']

    def _find(self, section, item_id):
        for item in self.document[section]:
            if item['id'] == item_id:
                return item
        raise KeyError(f"No {section} entry {item_id}")

    def _add(self, section, prefix, fields, stamp_updated=True):
        stamp = to_iso(self.clock())
        item = {**fields, 'id': generate_id(prefix), 'created_at': stamp}
        if stamp_updated:
            item['updated_at'] = stamp
        self.document[section] = [item] + self.document[section]
        self.save()
        return item['id']

    def _update(self, section, item_id, updates, stamp_updated=True):
        item = self._find(section, item_id)
        item.update(updates)
        if stamp_updated:
            item['updated_at'] = to_iso(self.clock())
        self.save()
        return item

    def _delete(self, section, item_id):
        self._find(section, item_id)
        self.document[section] = [i for i in self.document[section] if i['id'] != item_id]
        self.save()

    # PROFILE & PREFERENCES ================================

    def update_profile(self, **updates):
        self.profile.update(updates)
        self.save()

    def update_preferences(self, **updates):
        self.preferences.update(updates)
        self.save()

    # NOTES ================================================

    def add_note(self, title, content, tags=None, color=None, is_pinned=False):
        return self._add('notes', 'note', {
            'title': title,
            'content': content,
            'tags': list(tags or []),
            'color': color,
            'is_pinned': is_pinned,
        })

    def update_note(self, note_id, **updates):
        return self._update('notes', note_id, updates)

    def delete_note(self, note_id):
        self._delete('notes', note_id)

    def toggle_note_pin(self, note_id):
        note = self._find('notes', note_id)
        return self._update('notes', note_id, {'is_pinned': not note['is_pinned']})

    def get_notes_by_tag(self, tag):
        return [n for n in self.document['notes'] if tag in n['tags']]

    def get_all_tags(self):
        tags = []
        for note in self.document['notes']:
            tags.extend(t for t in note['tags'] if t not in tags)
        return tags

    # MEMOS ================================================

    def add_memo(self, text, category=None, reminder_at=None):
        return self._add('memos', 'memo', {
            'text': text,
            'category': category,
            'reminder_at': reminder_at,
            'is_completed': False,
        }, stamp_updated=False)

    def toggle_memo_complete(self, memo_id):
        memo = self._find('memos', memo_id)
        return self._update('memos', memo_id, {'is_completed': not memo['is_completed']},
                            stamp_updated=False)

    def delete_memo(self, memo_id):
        self._delete('memos', memo_id)

    def get_active_memos(self):
        return [m for m in self.document['memos'] if not m['is_completed']]

    # CUSTOM DATA ==========================================

    def add_custom_data(self, label, value, value_type='text', category=None, is_private=False):
        return self._add('custom_data', 'data', {
            'label': label,
            'value': value,
            'type': value_type,
            'category': category,
            'is_private': is_private,
        })

    def update_custom_data(self, entry_id, **updates):
        return self._update('custom_data', entry_id, updates)

    def delete_custom_data(self, entry_id):
        self._delete('custom_data', entry_id)

    def get_custom_data_by_category(self, category):
        return [d for d in self.document['custom_data'] if d['category'] == category]

    def get_all_categories(self):
        categories = []
        for entry in self.document['custom_data']:
            if entry['category'] and entry['category'] not in categories:
                categories.append(entry['category'])
        return categories

    # GOALS ================================================

    def add_goal(self, title, description=None, target_date=None, milestones=None):
        return self._add('goals', 'goal', {
            'title': title,
            'description': description,
            'target_date': target_date,
            'progress': 0,
            'milestones': [
                {'id': generate_id('milestone'), 'title': m, 'completed': False, 'completed_at': None}
                for m in (milestones or [])
            ],
        })

    def update_goal_progress(self, goal_id, progress):
        return self._update('goals', goal_id, {'progress': min(100, max(0, progress))})

    def toggle_milestone(self, goal_id, milestone_id):
        """Flip one milestone; progress becomes the share of milestones done."""
        goal = self._find('goals', goal_id)
        milestones = copy.deepcopy(goal['milestones'])
        for milestone in milestones:
            if milestone['id'] == milestone_id:
                milestone['completed'] = not milestone['completed']
                milestone['completed_at'] = to_iso(self.clock()) if milestone['completed'] else None
                break
        else:
            raise KeyError(f"No milestone {milestone_id} in goal {goal_id}")

        done = sum(1 for m in milestones if m['completed'])
        progress = round(done / len(milestones) * 100)
        return self._update('goals', goal_id, {'milestones': milestones, 'progress': progress})

    def delete_goal(self, goal_id):
        self._delete('goals', goal_id)

    # BOOKMARKS ============================================

    def add_bookmark(self, bookmark_type, reference_id, title, notes=None):
        if bookmark_type not in BOOKMARK_TYPES:
            raise ValueError(f"Unknown bookmark type: {bookmark_type}")
        return self._add('bookmarks', 'bookmark', {
            'type': bookmark_type,
            'reference_id': reference_id,
            'title': title,
            'notes': notes,
        }, stamp_updated=False)

    def delete_bookmark(self, bookmark_id):
        self._delete('bookmarks', bookmark_id)

    def get_bookmarks_by_type(self, bookmark_type):
        return [b for b in self.document['bookmarks'] if b['type'] == bookmark_type]

    # RESET ================================================

    def clear_all_data(self):
        self.document = self.defaults()
        self.kv.remove_blob(self.key)
        logging.info("Cleared user data")
