"""
Tests for title similarity in similarity.py.
"""
import pytest

from similarity import (
    levenshtein,
    matching_patterns,
    normalize_title,
    similarity_ratio,
    titles_similar,
)


class TestNormalizeTitle:
    """Tests for normalize_title."""

    def test_lowercases_and_strips_punctuation(self):
        """Punctuation becomes whitespace and runs collapse."""
        assert normalize_title("  Reply: to   JOHN!! ") == "reply to john"


class TestMatchingPatterns:
    """Tests for domain pattern detection."""

    def test_email_reply(self):
        """Replies count as email work."""
        assert matching_patterns("Reply to John") == ["Email"]

    def test_meeting(self):
        """Sync calls count as meetings."""
        assert "Meeting" in matching_patterns("Weekly sync call")

    def test_several_patterns_in_order(self):
        """A title can match more than one pattern, reported in pattern order."""
        assert matching_patterns("Organize invoice folder") == ["Admin", "File management"]

    def test_no_pattern(self):
        """Unrelated titles match nothing."""
        assert matching_patterns("Walk the dog") == []


class TestLevenshtein:
    """Tests for edit distance."""

    @pytest.mark.parametrize("a,b,expected", [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ])
    def test_distance(self, a, b, expected):
        """Known distances."""
        assert levenshtein(a, b) == expected

    def test_symmetric(self):
        """Argument order does not matter."""
        assert levenshtein("gumbo", "gambol") == levenshtein("gambol", "gumbo")


class TestSimilarity:
    """Tests for similarity_ratio and titles_similar."""

    def test_identical_titles(self):
        """Titles equal after normalization score 1.0."""
        assert similarity_ratio("Read paper", "read paper!") == 1.0

    def test_shared_pattern_is_similar(self):
        """Two email titles are similar even with little text in common."""
        assert titles_similar("Reply to John", "Check inbox")

    def test_close_spelling_is_similar(self):
        """Near-identical titles pass on edit distance alone."""
        assert titles_similar("Read chapter 3", "Read chapter 4")

    def test_different_titles_not_similar(self):
        """Unrelated titles fall under the threshold."""
        assert not titles_similar("Walk the dog", "Refactor parser")

    def test_threshold_is_respected(self):
        """A stricter threshold rejects a pair the default accepts."""
        assert titles_similar("Read chapter 3", "Read chapter 4", threshold=0.6)
        assert not titles_similar("Read chapter 3", "Read chapter 4", threshold=0.99)
