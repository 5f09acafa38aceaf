"""
Gamification ledger: XP, levels, streaks, daily goals and badges.

Everything here is a pure function over plain dicts. Inputs are copied,
never mutated; callers store whatever comes back.
"""

import copy
import logging
import math

from utils.utils import day_key, to_iso, yesterday_key

BASE_LEVEL_XP = 100
LEVEL_GROWTH = 1.5

XP_PER_CORRECT = 10
ACCURACY_BONUS = 50
STREAK_BONUS_RATE = 0.2
PERFECT_BONUS = 100


# ── Levels & XP ──────────────────────────────────────────────

def calculate_level(xp: int) -> dict[str, int]:
    level = 1
    required = 0
    xp_for_level = BASE_LEVEL_XP

    while required + xp_for_level <= xp:
        required += xp_for_level
        level += 1
        xp_for_level = math.floor(xp_for_level * LEVEL_GROWTH)

    return {
        'level': level,
        'xp_in_level': xp - required,
        'xp_for_next_level': xp_for_level,
    }


def is_perfect_session(cards_studied: int, cards_incorrect: int) -> bool:
    return cards_incorrect == 0 and cards_studied > 0


def calculate_session_xp(cards_correct: int, total_cards: int,
                         streak_active: bool, is_perfect: bool) -> int:
    base = cards_correct * XP_PER_CORRECT
    accuracy_bonus = math.floor(cards_correct / total_cards * ACCURACY_BONUS) if total_cards else 0
    streak_bonus = math.floor(base * STREAK_BONUS_RATE) if streak_active else 0
    perfect_bonus = PERFECT_BONUS if is_perfect else 0
    return base + accuracy_bonus + streak_bonus + perfect_bonus


def add_weekly_xp(weekly_xp: list[int], now, xp: int) -> list[int]:
    """Index 0 is Sunday."""
    buckets = list(weekly_xp) + [0] * (7 - len(weekly_xp))
    day = now.isoweekday() % 7
    buckets[day] += xp
    return buckets


# ── Streaks ──────────────────────────────────────────────────

def next_streak(current: int, longest: int, last_activity_date, now) -> dict[str, int]:
    """Streak after studying at `now`."""
    if last_activity_date is None or last_activity_date == yesterday_key(now):
        current += 1
    elif last_activity_date != day_key(now):
        current = 1

    return {'current_streak': current, 'longest_streak': max(longest, current)}


def idle_streak(current: int, last_activity_date, now) -> int:
    """Streak as seen on load: a full missed day breaks it."""
    if last_activity_date is None:
        return current
    if last_activity_date not in (day_key(now), yesterday_key(now)):
        return 0
    return current


# ── Daily goal ───────────────────────────────────────────────

def default_daily_goal() -> dict:
    return {
        'cards_to_review': 20,
        'cards_reviewed': 0,
        'minutes_to_study': 15,
        'minutes_studied': 0,
        'xp_to_earn': 100,
        'xp_earned': 0,
        'completed_at': None,
    }


def roll_daily_goal(goal: dict, last_activity_date, now) -> dict:
    if last_activity_date is None or last_activity_date == day_key(now):
        return dict(goal)
    return {
        **default_daily_goal(),
        'cards_to_review': goal['cards_to_review'],
        'minutes_to_study': goal['minutes_to_study'],
        'xp_to_earn': goal['xp_to_earn'],
    }


def add_daily_progress(goal: dict, cards: int, minutes: int, xp: int, now) -> dict:
    goal = {
        **goal,
        'cards_reviewed': goal['cards_reviewed'] + cards,
        'minutes_studied': goal['minutes_studied'] + minutes,
        'xp_earned': goal['xp_earned'] + xp,
    }
    if (
        goal['completed_at'] is None
        and goal['cards_reviewed'] >= goal['cards_to_review']
        and goal['minutes_studied'] >= goal['minutes_to_study']
        and goal['xp_earned'] >= goal['xp_to_earn']
    ):
        goal['completed_at'] = to_iso(now)
    return goal


# ── Badges ───────────────────────────────────────────────────

def _badge(badge_id, name, description, category, requirement, rarity):
    return {
        'id': badge_id,
        'name': name,
        'description': description,
        'category': category,
        'requirement': requirement,
        'progress': 0,
        'unlocked_at': None,
        'rarity': rarity,
    }


def default_badges() -> list[dict]:
    return [
        _badge('first-set', 'First Steps', 'Create your first flashcard set', 'study', 1, 'common'),
        _badge('card-collector', 'Collector', 'Create 50 flashcards', 'study', 50, 'common'),
        _badge('card-hoarder', 'Librarian', 'Create 200 flashcards', 'study', 200, 'rare'),
        _badge('streak-3', 'Warming Up', 'Keep a 3 day streak', 'streak', 3, 'common'),
        _badge('streak-7', 'Dedicated', 'Keep a 7 day streak', 'streak', 7, 'rare'),
        _badge('streak-30', 'Unstoppable', 'Keep a 30 day streak', 'streak', 30, 'epic'),
        _badge('perfect-5', 'Flawless', 'Finish 5 perfect sessions', 'mastery', 5, 'common'),
        _badge('perfect-25', 'Perfectionist', 'Finish 25 perfect sessions', 'mastery', 25, 'epic'),
        _badge('level-10', 'Apprentice', 'Reach level 10', 'mastery', 10, 'rare'),
        _badge('level-25', 'Expert', 'Reach level 25', 'mastery', 25, 'legendary'),
        _badge('study-60', 'Marathon', 'Study 60 minutes in one day', 'study', 60, 'rare'),
        _badge('review-100', 'Reviewer', 'Review 100 cards', 'study', 100, 'common'),
        _badge('review-1000', 'Master', 'Review 1000 cards', 'mastery', 1000, 'legendary'),
    ]


def _stat(field):
    return lambda document: document['stats'][field]


def _ledger(field):
    return lambda document: document['gamification'][field]


BADGE_RULES = {
    'first-set': _stat('total_sets'),
    'card-collector': _stat('total_cards'),
    'card-hoarder': _stat('total_cards'),
    'streak-3': _ledger('current_streak'),
    'streak-7': _ledger('current_streak'),
    'streak-30': _ledger('current_streak'),
    'perfect-5': _ledger('perfect_sessions'),
    'perfect-25': _ledger('perfect_sessions'),
    'level-10': _ledger('current_level'),
    'level-25': _ledger('current_level'),
    'study-60': _stat('study_time_today'),
    'review-100': _ledger('total_cards_reviewed'),
    'review-1000': _ledger('total_cards_reviewed'),
}


def update_badges(badges: list[dict], document: dict, now) -> list[dict]:
    """
    Refresh progress on locked badges and unlock the ones that reached
    their requirement. Unlocked badges are returned untouched, and progress
    never goes backwards even when the source counter does.
    """
    updated = []
    for badge in badges:
        rule = BADGE_RULES.get(badge['id'])
        if badge['unlocked_at'] is not None or rule is None:
            updated.append(dict(badge))
            continue

        progress = max(badge['progress'], rule(document))
        badge = {**badge, 'progress': progress}
        if progress >= badge['requirement']:
            badge['unlocked_at'] = to_iso(now)
            logging.info(f"Badge unlocked: {badge['id']}")
        updated.append(badge)
    return updated


def get_unlocked_badges(badges: list[dict]) -> list[dict]:
    return [b for b in badges if b['unlocked_at'] is not None]


def get_next_badges(badges: list[dict], limit: int = 3) -> list[dict]:
    """Locked badges closest to unlocking."""
    locked = [b for b in badges if b['unlocked_at'] is None]
    locked.sort(key=lambda b: b['progress'] / b['requirement'], reverse=True)
    return locked[:limit]


# ── Defaults ─────────────────────────────────────────────────

def default_gamification() -> dict:
    return {
        'total_xp': 0,
        'current_level': 1,
        'xp_to_next_level': BASE_LEVEL_XP,
        'current_streak': 0,
        'longest_streak': 0,
        'last_activity_date': None,
        'total_study_time': 0,
        'total_cards_reviewed': 0,
        'perfect_sessions': 0,
        'badges': default_badges(),
        'daily_goal': default_daily_goal(),
        'weekly_xp': [0] * 7,
    }


def merge_badges(saved: list[dict]) -> list[dict]:
    """Saved badges first, then any default badge the save predates."""
    defaults = {b['id']: b for b in default_badges()}
    badges = []
    for badge in copy.deepcopy(saved):
        template = defaults.get(badge['id'], {'progress': 0, 'unlocked_at': None})
        badges.append({**template, **badge})
    known = {b['id'] for b in badges}
    badges.extend(b for b in defaults.values() if b['id'] not in known)
    return badges
