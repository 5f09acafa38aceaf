from datetime import date, timedelta
from typing import Any

from utils import ledger, srs
from utils.hearts import format_time_remaining
from utils.utils import parse_iso


def get_forecast(cards: list[dict[str, Any]], now, days: int = 7) -> list[dict[str, Any]]:
    """How many cards fall due on each of the next `days` days."""
    counts: dict[date, int] = {}
    for card in cards:
        due = parse_iso(card.get('next_review'))
        if due is not None and due > now:
            counts[due.date()] = counts.get(due.date(), 0) + 1

    today = now.date()
    return [
        {'day': (today + timedelta(d)).isoformat(), 'count': counts.get(today + timedelta(d), 0)}
        for d in range(1, days + 1)
    ]


def build_dashboard(store, hearts) -> dict[str, Any]:
    """Everything the home screen derives from the stores."""
    now = store.clock()
    gamification = store.gamification
    level = ledger.calculate_level(gamification['total_xp'])
    cards = store.all_cards()
    next_heart = hearts.time_until_next()

    return {
        'level': level['level'],
        'xp_in_level': level['xp_in_level'],
        'xp_for_next_level': level['xp_for_next_level'],
        'total_xp': gamification['total_xp'],
        'current_streak': gamification['current_streak'],
        'longest_streak': gamification['longest_streak'],
        'daily_goal': dict(gamification['daily_goal']),
        'due_count': len(srs.get_due_cards(cards, now)),
        'retention': srs.calculate_retention(cards),
        'hearts': hearts.hearts,
        'next_heart_in': format_time_remaining(next_heart) if next_heart is not None else None,
        'unlocked_badges': len(store.get_unlocked_badges()),
        'next_badges': [b['id'] for b in store.get_next_badges()],
    }


def _forecast_lines(forecast: list[dict[str, Any]]) -> str:
    if not any(entry['count'] for entry in forecast):
        return "  No cards due in the next 7 days"

    lines = []
    for entry in forecast:
        day = date.fromisoformat(entry['day'])
        count = entry['count']
        lines.append(f"  {day.strftime('%b %d')}  ·  {count} card{'s' if count != 1 else ''}")
    return '\n'.join(lines)


def build_stats_text(store, hearts) -> str:
    dashboard = build_dashboard(store, hearts)
    forecast = get_forecast(store.all_cards(), store.clock(), days=7)
    goal = dashboard['daily_goal']
    return (
        f"Level {dashboard['level']}  ({dashboard['xp_in_level']}/{dashboard['xp_for_next_level']} XP)\n"
        f"Streak: {dashboard['current_streak']} (best {dashboard['longest_streak']})\n"
        f"Hearts: {dashboard['hearts']}\n\n"
        f"Today: {goal['cards_reviewed']}/{goal['cards_to_review']} cards, "
        f"{goal['minutes_studied']}/{goal['minutes_to_study']} min, "
        f"{goal['xp_earned']}/{goal['xp_to_earn']} XP\n"
        f"Due now: {dashboard['due_count']}\n\n"
        f"Next 7 days\n"
        f"{_forecast_lines(forecast)}"
    )
