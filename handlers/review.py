import logging

from config import SRS_STRATEGY
from utils import srs


def review_card(store, set_id, card_id, outcome, strategy=None):
    """Reschedule one card right away and commit. Returns the updated card."""
    card = store.get_card(set_id, card_id)
    if card is None:
        raise KeyError(f"No card {card_id} in set {set_id}")

    reviewed = srs.review(card, outcome, store.clock(), strategy or SRS_STRATEGY)
    store.put_card(set_id, reviewed)
    logging.debug(f"Reviewed {card_id}: next review {reviewed['next_review']}")
    return reviewed


def due_cards(store, set_id=None):
    """Cards due now, across every set or just one."""
    if set_id is None:
        cards = store.all_cards()
    else:
        cards = store.require_set(set_id)['cards']
    return srs.get_due_cards(cards, store.clock())
