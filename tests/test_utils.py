"""
Tests for utils/utils.py and utils/obfuscation.py: pure Python.
"""
import base64
from datetime import datetime

from utils.obfuscation import deobfuscate, obfuscate
from utils.utils import day_key, parse_notes, parse_text, to_iso, yesterday_key


class TestParseText:
    # ── Pipe separator ────────────────────────────────────────

    def test_pipe_basic(self):
        r = parse_text("Tokyo | Capital of Japan")
        assert r['question'] == 'Tokyo'
        assert r['answer'] == 'Capital of Japan'

    def test_pipe_strips_whitespace(self):
        r = parse_text("  Tokyo  |  Capital  ")
        assert r == {'question': 'Tokyo', 'answer': 'Capital'}

    def test_pipe_splits_on_first_only(self):
        r = parse_text("a | b | c")
        assert r['question'] == 'a'
        assert r['answer'] == 'b | c'

    def test_pipe_empty_answer(self):
        assert parse_text("front |") == {'question': 'front', 'answer': ''}

    # ── Newline separator ─────────────────────────────────────

    def test_newline_two_lines(self):
        r = parse_text("Tokyo\nCapital of Japan")
        assert r == {'question': 'Tokyo', 'answer': 'Capital of Japan'}

    def test_newline_multiple_answer_lines_joined(self):
        r = parse_text("Tokyo\nLine 2\nLine 3")
        assert r['answer'] == 'Line 2\nLine 3'

    def test_newline_ignores_blank_lines(self):
        r = parse_text("\nTokyo\n   \nCapital\n")
        assert r == {'question': 'Tokyo', 'answer': 'Capital'}

    # ── No separator ──────────────────────────────────────────

    def test_single_line_has_no_answer(self):
        assert parse_text("  Tokyo  ") == {'question': 'Tokyo', 'answer': ''}


class TestParseNotes:
    def test_blocks_become_cards(self):
        notes = "Tokyo | Japan\n\nParis\nFrance\n\n\nLonely line"
        assert parse_notes(notes) == [
            {'question': 'Tokyo', 'answer': 'Japan'},
            {'question': 'Paris', 'answer': 'France'},
        ]

    def test_windows_line_endings(self):
        assert parse_notes("a | b\r\n\r\nc | d") == [
            {'question': 'a', 'answer': 'b'},
            {'question': 'c', 'answer': 'd'},
        ]

    def test_empty(self):
        assert parse_notes("   ") == []


class TestDates:
    def test_day_keys(self):
        moment = datetime(2024, 3, 1, 0, 30)
        assert day_key(moment) == '2024-03-01'
        assert yesterday_key(moment) == '2024-02-29'

    def test_iso_drops_microseconds(self):
        assert to_iso(datetime(2024, 3, 1, 8, 5, 9, 123456)) == '2024-03-01T08:05:09'


class TestObfuscation:
    def test_reverse_then_base64(self):
        assert obfuscate('abc') == base64.b64encode(b'cba').decode()

    def test_reversible(self):
        assert deobfuscate(obfuscate('sk-test-1234')) == 'sk-test-1234'

    def test_non_ascii(self):
        assert deobfuscate(obfuscate('clé-ü')) == 'clé-ü'

    def test_not_the_plain_text(self):
        assert 'secret' not in obfuscate('secret')

    def test_garbage_decodes_to_empty(self):
        assert deobfuscate('***not base64***') == ''
