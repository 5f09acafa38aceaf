"""
Whole-document persistence over a key-value byte store.

A store backend is anything with `get_blob(key)`, `set_blob(key, data)` and
`remove_blob(key)`; the `database.database` module is the SQLite one.
"""
import copy
import json
import logging
from datetime import datetime

# Raised by json and by walking a document of the wrong shape.
DECODE_ERRORS = (ValueError, TypeError, KeyError, AttributeError)


def merge_defaults(defaults, loaded):
    """
    Overlay `loaded` on `defaults` key by key, recursing into nested dicts.
    Keys missing from `loaded` keep their default; lists and scalars from
    `loaded` win as they are.
    """
    if not isinstance(defaults, dict) or not isinstance(loaded, dict):
        return copy.deepcopy(loaded)

    merged = copy.deepcopy(defaults)
    for key, value in loaded.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_defaults(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _kind(value):
    if isinstance(value, bool):
        return bool
    if isinstance(value, (int, float)):
        return float
    return type(value)


def check_shape(defaults, document, path=''):
    """
    Raise ValueError where `document` holds a different type than the
    default for the same key. Defaults of None accept anything; ints and
    floats count as the same type.
    """
    for key, default in defaults.items():
        if default is None:
            continue
        value = document.get(key)
        where = f"{path}{key}"
        if _kind(value) is not _kind(default):
            raise ValueError(f"{where} should be {type(default).__name__}, got {type(value).__name__}")
        if isinstance(default, dict):
            check_shape(default, value, f"{where}.")
    return document


def check_items(items, what):
    """Every entry of a list section must be an object."""
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"{what} entries must be objects, got {type(item).__name__}")
    return items


class BlobDocument:
    """One JSON document stored under one key."""

    key = None

    def __init__(self, kv, clock=datetime.now):
        self.kv = kv
        self.clock = clock
        self.document = self.defaults()
        self.is_loaded = False

    def defaults(self):
        raise NotImplementedError

    def decode(self, parsed):
        """Turn parsed JSON into the in-memory document."""
        defaults = self.defaults()
        return check_shape(defaults, merge_defaults(defaults, parsed))

    def encode(self):
        """The document as it should be written."""
        return self.document

    def fallback(self):
        """Document to use when the stored blob is missing or unreadable."""
        return self.defaults()

    def load(self):
        raw = self.kv.get_blob(self.key)
        document = None

        if raw is not None:
            try:
                parsed = json.loads(raw)
                if not isinstance(parsed, dict):
                    raise ValueError(f"expected an object, got {type(parsed).__name__}")
                document = self.decode(parsed)
            except DECODE_ERRORS as e:
                logging.warning(f"Could not read {self.key}, falling back: {e}")

        if document is None:
            document = self.fallback()

        self.document = document
        self.is_loaded = True
        self.after_load()
        logging.info(f"Loaded {self.key}")
        return self

    def after_load(self):
        pass

    def save(self):
        # Serialize first: a document that can't be encoded never reaches storage.
        data = json.dumps(self.encode(), ensure_ascii=False).encode('utf-8')
        self.kv.set_blob(self.key, data)

    def replace(self, document):
        self.document = document
        self.save()

    def reset(self):
        self.replace(self.defaults())
