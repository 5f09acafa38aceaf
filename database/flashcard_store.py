import copy
import json
import logging
from datetime import datetime

from database.document import BlobDocument, DECODE_ERRORS, check_items, check_shape
from utils import ledger
from utils.constants import DIFFICULTIES, LEGACY_SETS_KEY, SET_SOURCES, STORE_KEY
from utils.srs import new_card
from utils.utils import day_key, generate_id, parse_notes, to_iso


def default_stats():
    return {
        'total_sets': 0,
        'total_cards': 0,
        'total_reviews': 0,
        'cards_created_today': 0,
        'average_mastery': 0,
        'study_time_today': 0,
        'most_studied_set': None,
    }


def default_store():
    return {
        'sets': [],
        'sessions': [],
        'stats': default_stats(),
        'gamification': ledger.default_gamification(),
    }


def new_set(title, cards, now, description='', source='notes', tags=None):
    stamp = to_iso(now)
    return {
        'id': generate_id('set'),
        'title': title,
        'description': description,
        'source': source,
        'cards': cards,
        'created_at': stamp,
        'updated_at': stamp,
        'total_reviews': 0,
        'average_score': 0,
        'last_studied_at': None,
        'tags': list(tags or []),
    }


def average_mastery(sets):
    levels = [card['mastery_level'] for s in sets for card in s['cards']]
    if not levels:
        return 0
    return round(sum(levels) / len(levels))


class FlashcardStore(BlobDocument):
    """
    Sets, cards, session log, stats and the gamification ledger, persisted
    as one document. Every mutation rewrites the whole document.
    """

    key = STORE_KEY

    def __init__(self, kv, clock=datetime.now):
        super().__init__(kv, clock)
        self.migrated = False

    def defaults(self):
        return default_store()

    # LOAD =================================================

    def decode(self, parsed):
        """Merged over defaults; raises ValueError on anything of the wrong type."""
        document = super().decode(parsed)
        gamification = document['gamification']

        templates = {b['id']: b for b in ledger.default_badges()}
        badges = ledger.merge_badges(check_items(gamification['badges'], 'badges'))
        for badge in badges:
            check_shape(templates.get(badge['id'], {}), badge, f"badges.{badge['id']}.")
        gamification['badges'] = badges

        weekly_xp = (list(gamification['weekly_xp']) + [0] * 7)[:7]
        if not all(isinstance(xp, (int, float)) and not isinstance(xp, bool) for xp in weekly_xp):
            raise ValueError("weekly_xp must hold numbers")
        gamification['weekly_xp'] = weekly_xp

        check_items(document['sessions'], 'sessions')
        document['sets'] = [self._backfill_set(s) for s in check_items(document['sets'], 'sets')]
        return document

    def _backfill_set(self, saved):
        now = self.clock()
        template = new_set(saved.get('title', ''), [], now)
        template['created_at'] = template['updated_at'] = saved.get('created_at', to_iso(now))
        merged = check_shape(template, {**template, **saved}, 'set.')
        card_template = new_card('', '', now=now)
        merged['cards'] = [
            check_shape(card_template, {**card_template, **card}, 'card.')
            for card in check_items(merged['cards'], 'cards')
        ]
        return merged

    def fallback(self):
        sets = self._migrate_legacy()
        document = self.defaults()
        if sets:
            self.migrated = True
            document['sets'] = sets
            document['stats']['total_sets'] = len(sets)
            document['stats']['total_cards'] = sum(len(s['cards']) for s in sets)
        return document

    def _migrate_legacy(self):
        """Sets from the old bare-list format, with every newer field filled in."""
        raw = self.kv.get_blob(LEGACY_SETS_KEY)
        if raw is None:
            return []

        try:
            old_sets = json.loads(raw)
            sets = []
            for old in check_items(old_sets, 'legacy sets'):
                flashcard_set = self._backfill_set(old)
                # Old saves predate review tracking; their counters start over.
                flashcard_set.update(
                    updated_at=flashcard_set['created_at'],
                    total_reviews=0,
                    average_score=0,
                    last_studied_at=None,
                    tags=[],
                )
                for card in flashcard_set['cards']:
                    card.update(times_reviewed=0, times_correct=0, last_reviewed_at=None, mastery_level=0)
                sets.append(flashcard_set)
        except DECODE_ERRORS as e:
            logging.warning(f"Legacy flashcard data unreadable, starting fresh: {e}")
            return []

        logging.info(f"Migrated {len(sets)} legacy flashcard sets")
        return sets

    def after_load(self):
        if self.migrated:
            # Persist the migrated sets before dropping the legacy copy.
            self.save()
            self.kv.remove_blob(LEGACY_SETS_KEY)
            self.migrated = False
        self.check_streak()
        self.roll_day()

    # ACCESSORS ============================================

    @property
    def sets(self):
        return self.document['sets']

    @property
    def sessions(self):
        return self.document['sessions']

    @property
    def stats(self):
        return self.document['stats']

    @property
    def gamification(self):
        return self.document['gamification']

    def get_set(self, set_id):
        for s in self.sets:
            if s['id'] == set_id:
                return s
        return None

    def get_card(self, set_id, card_id):
        flashcard_set = self.get_set(set_id)
        if flashcard_set is None:
            return None
        for card in flashcard_set['cards']:
            if card['id'] == card_id:
                return card
        return None

    def require_set(self, set_id):
        flashcard_set = self.get_set(set_id)
        if flashcard_set is None:
            raise KeyError(f"No flashcard set {set_id}")
        return flashcard_set

    def all_cards(self):
        return [card for s in self.sets for card in s['cards']]

    def get_recent_sessions(self, limit=10):
        return self.sessions[:limit]

    def get_unlocked_badges(self):
        return ledger.get_unlocked_badges(self.gamification['badges'])

    def get_next_badges(self, limit=3):
        return ledger.get_next_badges(self.gamification['badges'], limit)

    # SETS & CARDS =========================================

    def add_set(self, title, cards, description='', source='notes', tags=None):
        """cards is a list of {'question', 'answer', optional 'difficulty'}"""
        if source not in SET_SOURCES:
            raise ValueError(f"Unknown set source: {source}")
        now = self.clock()
        built = [
            new_card(c['question'], c['answer'], _difficulty(c.get('difficulty', 'medium')), now=now)
            for c in cards
        ]
        flashcard_set = new_set(title, built, now, description, source, tags)

        self.document['sets'] = [flashcard_set] + self.sets
        self.stats['total_sets'] += 1
        self.stats['total_cards'] += len(built)
        self.stats['cards_created_today'] += len(built)
        self._refresh_badges(now)
        self.save()
        logging.info(f"Created set {flashcard_set['id']} with {len(built)} cards")
        return flashcard_set['id']

    def add_set_from_notes(self, title, notes, description='', tags=None):
        """Build a set from pasted notes; None if no block parsed into a card."""
        cards = parse_notes(notes)
        if not cards:
            logging.info("No cards found in notes")
            return None
        return self.add_set(title, cards, description, 'notes', tags)

    def add_card(self, set_id, question, answer, difficulty='medium'):
        now = self.clock()
        flashcard_set = self.require_set(set_id)
        card = new_card(question, answer, _difficulty(difficulty), now=now)

        flashcard_set['cards'].append(card)
        flashcard_set['updated_at'] = to_iso(now)
        self.stats['total_cards'] += 1
        self.stats['cards_created_today'] += 1
        self._refresh_badges(now)
        self.save()
        return card['id']

    def delete_set(self, set_id):
        flashcard_set = self.require_set(set_id)
        self.document['sets'] = [s for s in self.sets if s['id'] != set_id]
        self.stats['total_sets'] -= 1
        self.stats['total_cards'] -= len(flashcard_set['cards'])
        self.stats['average_mastery'] = average_mastery(self.sets)
        self.save()
        logging.info(f"Deleted set {set_id}")

    def delete_card(self, set_id, card_id):
        flashcard_set = self.require_set(set_id)
        remaining = [c for c in flashcard_set['cards'] if c['id'] != card_id]
        if len(remaining) == len(flashcard_set['cards']):
            raise KeyError(f"No card {card_id} in set {set_id}")
        flashcard_set['cards'] = remaining
        flashcard_set['updated_at'] = to_iso(self.clock())
        self.stats['total_cards'] -= 1
        self.stats['average_mastery'] = average_mastery(self.sets)
        self.save()

    def put_card(self, set_id, card):
        """Swap in a rescheduled card. Only the review flow calls this."""
        flashcard_set = self.require_set(set_id)
        for index, existing in enumerate(flashcard_set['cards']):
            if existing['id'] == card['id']:
                flashcard_set['cards'][index] = card
                break
        else:
            raise KeyError(f"No card {card['id']} in set {set_id}")
        self.stats['average_mastery'] = average_mastery(self.sets)
        self.save()

    # DAY BOUNDARIES =======================================

    def check_streak(self):
        """Break the streak if a whole day went by without studying."""
        gamification = self.gamification
        streak = ledger.idle_streak(
            gamification['current_streak'], gamification['last_activity_date'], self.clock()
        )
        if streak != gamification['current_streak']:
            logging.info(f"Streak of {gamification['current_streak']} lost")
            gamification['current_streak'] = streak
            self.save()

    def roll_day(self):
        """Reset today's counters once the last activity is on an earlier day."""
        now = self.clock()
        last_activity = self.gamification['last_activity_date']
        if last_activity is None or last_activity == day_key(now):
            return

        goal = ledger.roll_daily_goal(self.gamification['daily_goal'], last_activity, now)
        if goal == self.gamification['daily_goal'] and not (
            self.stats['cards_created_today'] or self.stats['study_time_today']
        ):
            return

        self.gamification['daily_goal'] = goal
        self.stats['cards_created_today'] = 0
        self.stats['study_time_today'] = 0
        self.save()

    # LEDGER ===============================================

    def _refresh_badges(self, now):
        self.gamification['badges'] = ledger.update_badges(
            self.gamification['badges'], self.document, now
        )

    def snapshot(self):
        return copy.deepcopy(self.document)


def _difficulty(value):
    if value not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty: {value}")
    return value
