import uuid
from datetime import datetime, timedelta


def generate_id(prefix: str = 'id') -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def to_iso(moment: datetime) -> str:
    return moment.isoformat(timespec='seconds')


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def day_key(moment: datetime) -> str:
    """Calendar day of `moment` as 'YYYY-MM-DD'."""
    return moment.date().isoformat()


def yesterday_key(moment: datetime) -> str:
    return day_key(moment - timedelta(days=1))


def parse_text(content: str) -> dict[str, str]:
    """
    Split one block of notes into a card.

    returns: {'question': str, 'answer': str}
    """
    text = content.strip()

    if '|' in text:
        parts = text.split('|', 1)
        return {'question': parts[0].strip(), 'answer': parts[1].strip()}

    if '\n' in text:
        lines = [l.strip() for l in text.split('\n') if l.strip()]
        if len(lines) >= 2:
            return {'question': lines[0], 'answer': '\n'.join(lines[1:])}

    return {'question': text, 'answer': ''}


def parse_notes(notes: str) -> list[dict[str, str]]:
    """
    Turn pasted notes into cards. Blocks are separated by blank lines;
    blocks without an answer are dropped.
    """
    blocks = [b for b in notes.replace('\r\n', '\n').split('\n\n') if b.strip()]
    cards = [parse_text(block) for block in blocks]
    return [c for c in cards if c['question'] and c['answer']]
