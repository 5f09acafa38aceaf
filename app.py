import logging
from collections import namedtuple
from datetime import datetime

import config  # noqa: F401  (logging setup)
import database.database as db
from database.flashcard_store import FlashcardStore
from database.hearts import HeartPool
from database.user_data import UserDataStore
from handlers.stats import build_stats_text

App = namedtuple('App', ['flashcards', 'user_data', 'hearts'])


def open_app(kv=db, clock=datetime.now):
    """Create the schema if needed and load all three documents."""
    if kv is db:
        db.init_db()
    return App(
        flashcards=FlashcardStore(kv, clock).load(),
        user_data=UserDataStore(kv, clock).load(),
        hearts=HeartPool(kv, clock).load(),
    )


def main() -> None:
    logging.info("Opening progress store")
    app = open_app()
    print(build_stats_text(app.flashcards, app.hearts))


if __name__ == '__main__':
    main()
