"""Tests for word bank parser (F1)."""

import pytest

from wordmemo.core.models import WordRecord
from wordmemo.core.word_parser import (
    DEFAULT_WORD_BANK,
    format_word_bank,
    parse_word_bank,
)


class TestParseWordBank:
    """Tests for parse_word_bank."""

    def test_parses_term_phonetic_and_definition(self):
        """A term line with phonetic plus a definition line gives one record."""
        records = parse_word_bank("card [kɑ:d]\nn. 卡片; 名片; 纸牌")

        assert records == [
            WordRecord(term="card", phonetic="[kɑ:d]", definition="n. 卡片; 名片; 纸牌", mistake_count=0)
        ]

    def test_phonetic_is_optional(self):
        """Term without phonetic gets an empty phonetic."""
        records = parse_word_bank("ice cream\nn. 冰淇淋")

        assert len(records) == 1
        assert records[0].term == "ice cream"
        assert records[0].phonetic == ""

    def test_default_bank(self):
        """Built-in bank parses to its four entries in order."""
        records = parse_word_bank(DEFAULT_WORD_BANK)

        assert [r.term for r in records] == ["aunt", "card", "fold", "grandfather"]
        assert records[2].definition == "v. 折叠; 折起来; 合拢 n. 褶;..."
        assert all(r.mistake_count == 0 for r in records)

    def test_trims_fields_and_tolerates_blank_lines(self):
        """Surrounding whitespace and blank separator lines are ignored."""
        text = "\n\n   aunt [ɑ:nt]   \n   n. 阿姨; 姑妈等  \n\n\ncard\n n. 卡片 \n\n"
        records = parse_word_bank(text)

        assert [(r.term, r.phonetic, r.definition) for r in records] == [
            ("aunt", "[ɑ:nt]", "n. 阿姨; 姑妈等"),
            ("card", "", "n. 卡片"),
        ]

    def test_orphan_definition_lines_are_skipped(self):
        """Lines starting with a part-of-speech tag never start a record."""
        text = "n. 多余的解释\nadj. 另一行\ncard [kɑ:d]\nn. 卡片"
        records = parse_word_bank(text)

        assert len(records) == 1
        assert records[0].term == "card"

    def test_only_pos_line_yields_nothing(self):
        """A block of a single n. line produces no record."""
        assert parse_word_bank("n. 卡片; 名片") == []
        assert parse_word_bank("n. card\nsomething else") == []

    def test_malformed_term_line_drops_the_pair(self):
        """A term line that is not letters/hyphens/spaces drops the whole pair."""
        text = "card123 [kɑ:d]\nn. 卡片\naunt\nn. 阿姨"
        records = parse_word_bank(text)

        assert [r.term for r in records] == ["aunt"]

    def test_term_without_definition_is_ignored(self):
        """A trailing term line with no definition produces nothing."""
        assert parse_word_bank("card [kɑ:d]") == []

    def test_hyphenated_terms(self):
        """Hyphens are allowed in terms."""
        records = parse_word_bank("well-known [ˌwelˈnəʊn]\nadj. 著名的")

        assert records[0].term == "well-known"

    @pytest.mark.parametrize("text", ["", "   ", "\n\n", "[kɑ:d]\n卡片"])
    def test_never_raises(self, text):
        """Degenerate input gives an empty list."""
        assert parse_word_bank(text) == []


class TestFormatWordBank:
    """Tests for format_word_bank."""

    def test_round_trip(self):
        """Formatting then parsing returns the same records."""
        records = [
            WordRecord("aunt", "[ɑ:nt]", "n. 阿姨; 姑妈等"),
            WordRecord("ice cream", "", "n. 冰淇淋"),
            WordRecord("well-known", "[ˌwelˈnəʊn]", "adj. 著名的; 众所周知的"),
        ]

        assert parse_word_bank(format_word_bank(records)) == records

    def test_round_trip_resets_mistake_count(self):
        """Mistake counts are not part of the text format."""
        records = [WordRecord("card", "[kɑ:d]", "n. 卡片", mistake_count=3)]

        parsed = parse_word_bank(format_word_bank(records))

        assert parsed[0].mistake_count == 0
        assert parsed[0].identity == records[0].identity

    def test_format_layout(self):
        """Entries are separated by a blank line."""
        text = format_word_bank([WordRecord("card", "[kɑ:d]", "n. 卡片"), WordRecord("aunt", "", "n. 阿姨")])

        assert text == "card [kɑ:d]\nn. 卡片\n\naunt\nn. 阿姨\n"
