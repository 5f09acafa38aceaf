"""
Key-value byte store on SQLite.

Each document lives whole under one key. Writes replace the previous value
inside a transaction, so a failed write leaves the old value in place.
"""
import logging
import sqlite3
from contextlib import contextmanager

from database.schema import blob_schema
from config import DB_PATH


# BLOB COMMANDS ==============================================

def get_blob(key):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT value FROM blobs WHERE key = ?', (key,))
        row = cursor.fetchone()
        if row:
            return bytes(row['value'])
        return None


def set_blob(key, data):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            """INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, datetime('now'))
               ON CONFLICT(key) DO UPDATE
               SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, sqlite3.Binary(data))
        )
        logging.debug(f"Wrote {len(data)} bytes to {key}")


def remove_blob(key):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('DELETE FROM blobs WHERE key = ?', (key,))
        return cursor.rowcount > 0


def list_keys():
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT key FROM blobs ORDER BY key')
        return [row['key'] for row in cursor.fetchall()]


# DB CONNECTION ==============================================

@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    with get_db() as conn:
        conn.execute(blob_schema)
