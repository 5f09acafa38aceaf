from datetime import datetime, timedelta

import pytest

import database.database as db


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture()
def tdb(tmp_path, monkeypatch):
    """Point DB_PATH at a fresh temp file and create the schema."""
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(db, 'DB_PATH', db_path)
    db.init_db()
    return db_path


@pytest.fixture()
def clock():
    # A Wednesday, mid-morning
    return FakeClock(datetime(2024, 3, 13, 10, 0, 0))
