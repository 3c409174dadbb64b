import random

import pytest

from nofi.config import ID_ALPHABET, ID_LENGTH
from nofi.framing import (
    Direction,
    Message,
    SeenIds,
    generate_id,
    is_valid_id,
    make_frame,
    normalize_id,
    parse_frame,
)


class TestFrameParsing:
    """Test cases for the ID|text wire format."""

    def test_make_frame(self):
        """Test joining id and text."""
        assert make_frame("AB12", "HI") == "AB12|HI"

    def test_make_frame_rejects_bad_id(self):
        """Test that ids containing the separator or spaces are refused."""
        with pytest.raises(ValueError):
            make_frame("A|B", "x")
        with pytest.raises(ValueError):
            make_frame("A B", "x")
        with pytest.raises(ValueError):
            make_frame("", "x")

    def test_parse_frame(self):
        """Test splitting a well-formed frame."""
        assert parse_frame("AB12|HI") == ("AB12", "HI")

    def test_parse_frame_splits_on_first_separator(self):
        """Test that the text keeps any further separators."""
        assert parse_frame("X9ZZ|a|b|c") == ("X9ZZ", "a|b|c")

    def test_parse_frame_normalizes_id(self):
        """Test that received ids are upper-cased."""
        assert parse_frame("ab12|hi") == ("AB12", "hi")

    def test_parse_frame_keeps_text_spacing(self):
        """Test that text after the separator is not trimmed."""
        assert parse_frame("AB12| hi") == ("AB12", " hi")

    def test_parse_frame_without_separator(self):
        """Test that a bare frame gets a synthesized id and keeps all its text."""
        msg_id, text = parse_frame("hello there", new_id=lambda: "NEW1")
        assert msg_id == "NEW1"
        assert text == "hello there"

    def test_parse_frame_with_empty_id(self):
        """Test that an empty id field is replaced."""
        msg_id, text = parse_frame("|orphan", new_id=lambda: "NEW2")
        assert msg_id == "NEW2"
        assert text == "|orphan"

    def test_parse_frame_with_spaced_id(self):
        """Test that an id containing whitespace is replaced."""
        msg_id, text = parse_frame("A B|text", new_id=lambda: "NEW3")
        assert msg_id == "NEW3"
        assert text == "A B|text"

    def test_parse_frame_empty_text(self):
        """Test a frame with an id and no text."""
        assert parse_frame("AB12|") == ("AB12", "")


class TestMessageIds:
    """Test cases for id generation and normalisation."""

    def test_generate_id_shape(self):
        """Test length and alphabet of generated ids."""
        rng = random.Random(1)
        for _ in range(50):
            msg_id = generate_id(rng)
            assert len(msg_id) == ID_LENGTH
            assert all(c in ID_ALPHABET for c in msg_id)
            assert is_valid_id(msg_id)

    def test_generate_id_is_seedable(self):
        """Test that a seeded generator is reproducible."""
        assert generate_id(random.Random(7)) == generate_id(random.Random(7))

    def test_normalize_id(self):
        """Test trimming and upper-casing."""
        assert normalize_id(" ab1c ") == "AB1C"


class TestSeenIds:
    """Test cases for duplicate detection."""

    def test_add_reports_new_ids(self):
        """Test that add() is True once, then False."""
        seen = SeenIds()
        assert seen.add("AB12")
        assert not seen.add("AB12")
        assert len(seen) == 1

    def test_case_insensitive(self):
        """Test that ids differing only in case are duplicates."""
        seen = SeenIds(["SYS1"])
        assert "sys1" in seen
        assert not seen.add("Sys1")

    def test_never_pruned(self):
        """Test that old ids stay known however many arrive after them."""
        seen = SeenIds()
        seen.add("OLD1")
        for i in range(5000):
            seen.add(f"{i:04d}")
        assert "OLD1" in seen
        assert len(seen) == 5001


class TestMessage:
    """Test cases for the chat message record."""

    def test_message_fields(self):
        """Test that a message carries a timestamp by default."""
        message = Message("AB12", "hi", Direction.INBOUND)
        assert message.direction is Direction.INBOUND
        assert message.timestamp > 0

    def test_message_is_immutable(self):
        """Test that messages cannot be edited after recording."""
        message = Message("AB12", "hi", Direction.OUTBOUND)
        with pytest.raises(AttributeError):
            message.text = "changed"
