"""
Reversible scrambling for the stored LLM API key.

This is NOT encryption. Anyone with the blob can undo it. It only keeps the
key from showing up verbatim in the stored document, and changing it would
make existing saves unreadable.
"""

import base64
import binascii


def obfuscate(text: str) -> str:
    return base64.b64encode(text[::-1].encode('utf-8')).decode('ascii')


def deobfuscate(encoded: str) -> str:
    """Undecodable input yields ''."""
    try:
        raw = base64.b64decode(encoded, validate=True)
        return raw.decode('utf-8')[::-1]
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return ''
