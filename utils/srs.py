"""
Flashcard scheduling.

Two strategies share one contract, `review(card, outcome, now) -> card'`:

  'sm2'      SuperMemo-2. Quality 0-5 (>= 3 is a correct recall) drives the
             ease factor, the interval and the next review date.
  'mastery'  Accuracy heuristic. A boolean outcome drives times_reviewed,
             times_correct and an advisory 0-100 mastery level. No due dates.

Neither strategy mutates the card it is given.
"""

import math
from datetime import datetime, timedelta

from utils.utils import generate_id, parse_iso, to_iso

# Quality ratings
BLACKOUT = 0
WRONG = 1
WRONG_EASY_RECALL = 2
CORRECT_HARD = 3
CORRECT_HESITANT = 4
PERFECT = 5

PASSING_QUALITY = CORRECT_HARD

DEFAULT_EASE = 2.5
MIN_EASE = 1.3
MIN_INTERVAL = 1


def new_card(question, answer, difficulty='medium', now=None, card_id=None):
    """Fresh card, due immediately."""
    now = now or datetime.now()
    return {
        'id': card_id or generate_id('card'),
        'question': question,
        'answer': answer,
        'difficulty': difficulty,
        'times_reviewed': 0,
        'times_correct': 0,
        'last_reviewed_at': None,
        'mastery_level': 0,
        'interval': MIN_INTERVAL,
        'ease_factor': DEFAULT_EASE,
        'repetitions': 0,
        'next_review': to_iso(now),
    }


def is_correct(outcome) -> bool:
    if isinstance(outcome, bool):
        return outcome
    return outcome >= PASSING_QUALITY


def _quality(outcome) -> int:
    if isinstance(outcome, bool):
        return CORRECT_HESITANT if outcome else WRONG
    if not BLACKOUT <= outcome <= PERFECT:
        raise ValueError(f"quality must be between 0 and 5, got {outcome}")
    return int(outcome)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _next_ease(ease_factor: float, quality: int) -> float:
    miss = 5 - quality
    return max(MIN_EASE, ease_factor + 0.1 - miss * (0.08 + miss * 0.02))


# ── Strategy A: SM-2 ─────────────────────────────────────────

def review_sm2(card, outcome, now):
    quality = _quality(outcome)
    ease = _next_ease(card.get('ease_factor', DEFAULT_EASE), quality)
    repetitions = card.get('repetitions', 0)
    interval = card.get('interval', MIN_INTERVAL)

    if quality >= PASSING_QUALITY:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = _round_half_up(interval * ease)
        repetitions += 1
    else:
        repetitions = 0
        interval = 1

    interval = max(MIN_INTERVAL, interval)
    return {
        **card,
        'ease_factor': ease,
        'interval': interval,
        'repetitions': repetitions,
        'last_reviewed_at': to_iso(now),
        'next_review': to_iso(now + timedelta(days=interval)),
    }


# ── Strategy B: accuracy / mastery ───────────────────────────

def mastery_level(times_correct: int, times_reviewed: int) -> int:
    if times_reviewed <= 0:
        return 0
    accuracy = times_correct / times_reviewed
    level = math.floor(accuracy * 100 * math.log10(times_reviewed + 1))
    return max(0, min(100, level))


def review_mastery(card, outcome, now):
    reviewed = card.get('times_reviewed', 0) + 1
    correct = card.get('times_correct', 0) + (1 if is_correct(outcome) else 0)
    return {
        **card,
        'times_reviewed': reviewed,
        'times_correct': correct,
        'mastery_level': mastery_level(correct, reviewed),
        'last_reviewed_at': to_iso(now),
    }


STRATEGIES = {
    'sm2': review_sm2,
    'mastery': review_mastery,
}


def review(card, outcome, now=None, strategy='sm2'):
    """Apply one review outcome to `card` with the named strategy."""
    try:
        apply = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown scheduling strategy: {strategy}") from None
    return apply(card, outcome, now or datetime.now())


# ── Queries ──────────────────────────────────────────────────

def is_due(card, now) -> bool:
    due = parse_iso(card.get('next_review'))
    return due is None or due <= now


def get_due_cards(cards, now):
    """Due cards, most overdue first, then hardest (lowest ease) first."""
    due = [c for c in cards if is_due(c, now)]
    return sorted(
        due,
        key=lambda c: (parse_iso(c.get('next_review')) or now, c.get('ease_factor', DEFAULT_EASE))
    )


def swipe_to_quality(direction: str, was_flipped: bool) -> int:
    """Right = knew it, left = didn't. Peeking at the answer costs one point."""
    if direction == 'right':
        return CORRECT_HESITANT if was_flipped else PERFECT
    return WRONG_EASY_RECALL if was_flipped else WRONG


def calculate_retention(cards) -> int:
    if not cards:
        return 0
    remembered = [c for c in cards if c.get('repetitions', 0) > 0]
    return round(len(remembered) / len(cards) * 100)


def calculate_accuracy(total_correct: int, total_incorrect: int) -> int:
    total = total_correct + total_incorrect
    if total == 0:
        return 0
    return round(total_correct / total * 100)


def preview_all_qualities(card, now):
    """What each SM-2 rating would do to `card`, keyed by quality."""
    return {q: review_sm2(card, q, now) for q in range(BLACKOUT, PERFECT + 1)}


def format_interval(days: int) -> str:
    if days < 30:
        return f"{days}d"
    elif days < 365:
        months = round(days / 30)
        return f"{months}mo"
    else:
        years = round(days / 365, 1)
        return f"{years}y"
