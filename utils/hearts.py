"""
Hearts: a capped resource that refills over wall-clock time.

Nothing runs in the background. Every function takes the current time and
works out the pool from `last_lost_at`, so the answer is only as fresh as
the last call.
"""

from datetime import datetime, timedelta

from utils.constants import HEART_REGEN_MINUTES, MAX_HEARTS
from utils.utils import parse_iso, to_iso

REGEN_INTERVAL = timedelta(minutes=HEART_REGEN_MINUTES)


def default_hearts() -> dict:
    return {'hearts': MAX_HEARTS, 'last_lost_at': None, 'is_premium': False}


def _elapsed(data, now: datetime) -> timedelta | None:
    lost_at = parse_iso(data.get('last_lost_at'))
    if lost_at is None:
        return None
    return max(timedelta(0), now - lost_at)


def regenerate(data, now: datetime) -> int:
    if data.get('is_premium'):
        return MAX_HEARTS
    elapsed = _elapsed(data, now)
    if data['hearts'] >= MAX_HEARTS or elapsed is None:
        return data['hearts']
    gained = elapsed // REGEN_INTERVAL
    return min(MAX_HEARTS, data['hearts'] + gained)


def settle(data, now: datetime) -> dict:
    """
    Fold regenerated hearts into `data`. `last_lost_at` moves forward by the
    whole intervals used up, so the partial interval in progress is kept and
    nothing is counted twice on the next read.
    """
    hearts = regenerate(data, now)
    if hearts >= MAX_HEARTS:
        return {**data, 'hearts': MAX_HEARTS, 'last_lost_at': None}

    elapsed = _elapsed(data, now)
    if elapsed is None:
        return {**data, 'hearts': hearts}

    gained = hearts - data['hearts']
    lost_at = parse_iso(data['last_lost_at']) + gained * REGEN_INTERVAL
    return {**data, 'hearts': hearts, 'last_lost_at': to_iso(lost_at)}


def consume(data, now: datetime) -> dict:
    return {**data, 'hearts': max(0, data['hearts'] - 1), 'last_lost_at': to_iso(now)}


def time_until_next(data, now: datetime) -> timedelta | None:
    """None once the pool is full, counting hearts regenerated since the last loss."""
    elapsed = _elapsed(data, now)
    if elapsed is None or regenerate(data, now) >= MAX_HEARTS:
        return None
    return REGEN_INTERVAL - (elapsed % REGEN_INTERVAL)


def format_time_remaining(remaining: timedelta) -> str:
    total = int(remaining.total_seconds())
    minutes, seconds = divmod(total, 60)
    return f"{minutes}:{seconds:02d}"
