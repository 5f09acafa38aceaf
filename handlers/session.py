"""
Study session completion.

`record_session` is the one place where a finished session turns into
scheduling changes, XP, streak, daily goal, badge and stats updates. It
works on a copy of the store's document and commits the copy with a single
save, so a failure part way through leaves the store as it was.
"""
import logging

from config import SRS_STRATEGY
from database.flashcard_store import average_mastery
from utils import ledger, srs
from utils.constants import MAX_SESSIONS
from utils.utils import day_key, generate_id, to_iso, yesterday_key


def _find(items, item_id, what):
    for item in items:
        if item['id'] == item_id:
            return item
    raise KeyError(f"No {what} {item_id}")


def _apply_reviews(flashcard_set, reviews, now, strategy):
    correct = 0
    for card_id, outcome in reviews:
        card = _find(flashcard_set['cards'], card_id, 'card')
        index = flashcard_set['cards'].index(card)
        flashcard_set['cards'][index] = srs.review(card, outcome, now, strategy)
        if srs.is_correct(outcome):
            correct += 1
    return correct


def record_session(store, set_id, reviews, duration, started_at=None, strategy=None):
    """
    Record a finished session.

    reviews: list of (card_id, outcome) in the order they were answered;
             outcome is an SM-2 quality (0-5) or a bool
    duration: seconds spent

    Returns the stored session record. Must not run concurrently with itself.
    """
    if duration < 0:
        raise ValueError(f"duration must not be negative, got {duration}")

    # A store left open past a missed day still holds the old streak.
    store.check_streak()
    now = store.clock()
    today = day_key(now)
    document = store.snapshot()
    stats = document['stats']
    gamification = document['gamification']
    flashcard_set = _find(document['sets'], set_id, 'flashcard set')

    # 1. scheduling
    cards_studied = len(reviews)
    cards_correct = _apply_reviews(flashcard_set, reviews, now, strategy or SRS_STRATEGY)
    cards_incorrect = cards_studied - cards_correct

    # 2. XP, with the streak as it stood before this session
    last_activity = gamification['last_activity_date']
    is_perfect = ledger.is_perfect_session(cards_studied, cards_incorrect)
    xp_earned = ledger.calculate_session_xp(
        cards_correct, cards_studied, gamification['current_streak'] > 0, is_perfect
    )

    # 3. streak and level
    gamification.update(ledger.next_streak(
        gamification['current_streak'], gamification['longest_streak'], last_activity, now
    ))
    previous_level = gamification['current_level']
    gamification['total_xp'] += xp_earned
    level = ledger.calculate_level(gamification['total_xp'])
    gamification['current_level'] = level['level']
    gamification['xp_to_next_level'] = level['xp_for_next_level']

    # 4. weekly XP
    gamification['weekly_xp'] = ledger.add_weekly_xp(gamification['weekly_xp'], now, xp_earned)

    # 5. daily goal and counters
    minutes = int(duration // 60)
    if last_activity is not None and last_activity != today:
        stats['study_time_today'] = 0
    goal = ledger.roll_daily_goal(gamification['daily_goal'], last_activity, now)
    gamification['daily_goal'] = ledger.add_daily_progress(goal, cards_studied, minutes, xp_earned, now)

    gamification['last_activity_date'] = today
    gamification['total_study_time'] += minutes
    gamification['total_cards_reviewed'] += cards_studied
    gamification['perfect_sessions'] += 1 if is_perfect else 0

    accuracy = srs.calculate_accuracy(cards_correct, cards_incorrect)
    sessions_on_set = flashcard_set['total_reviews'] + 1
    flashcard_set['average_score'] = round(
        (flashcard_set['average_score'] * (sessions_on_set - 1) + accuracy) / sessions_on_set
    )
    flashcard_set['total_reviews'] = sessions_on_set
    flashcard_set['last_studied_at'] = to_iso(now)
    flashcard_set['updated_at'] = to_iso(now)

    stats['total_reviews'] += 1
    stats['study_time_today'] += minutes
    stats['most_studied_set'] = flashcard_set['title']
    stats['average_mastery'] = average_mastery(document['sets'])

    # 6. badges
    gamification['badges'] = ledger.update_badges(gamification['badges'], document, now)

    # 7. session log, newest first
    session = {
        'id': generate_id('session'),
        'set_id': set_id,
        'set_title': flashcard_set['title'],
        'started_at': started_at or to_iso(now),
        'completed_at': to_iso(now),
        'cards_studied': cards_studied,
        'cards_correct': cards_correct,
        'cards_incorrect': cards_incorrect,
        'duration': duration,
        'xp_earned': xp_earned,
        'streak_maintained': last_activity in (today, yesterday_key(now)),
    }
    document['sessions'] = ([session] + document['sessions'])[:MAX_SESSIONS]

    # 8. commit
    store.replace(document)

    logging.info(f"Session on {set_id}: {cards_correct}/{cards_studied} correct, +{xp_earned} XP")
    if level['level'] > previous_level:
        logging.info(f"Level up: {previous_level} -> {level['level']}")
    return session
