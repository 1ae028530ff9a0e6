"""Tests for Levenshtein-based table name similarity."""

import pytest

from table_catalog.fuzzy import FuzzyConfig, FuzzyMatcher


class TestFuzzyMatcher:
    """Tests for FuzzyMatcher."""

    def test_distance(self):
        """Test the raw edit distance."""
        assert FuzzyMatcher.levenshtein_distance("kitten", "sitting") == 3
        assert FuzzyMatcher.levenshtein_distance("台股分析", "台股分析表") == 1

    def test_similarity_normalized_by_longer_string(self):
        """Test (maxLen - distance) / maxLen."""
        assert FuzzyMatcher.levenshtein_similarity("kitten", "sitting") == pytest.approx(4 / 7)
        assert FuzzyMatcher.levenshtein_similarity(
            "台股技術分析", "台股技術分析表"
        ) == pytest.approx(6 / 7)

    def test_similarity_bounds(self):
        """Test identical, empty and disjoint inputs."""
        assert FuzzyMatcher.levenshtein_similarity("abc", "abc") == 1.0
        assert FuzzyMatcher.levenshtein_similarity("", "") == 1.0
        assert FuzzyMatcher.levenshtein_similarity("abc", "") == 0.0
        assert FuzzyMatcher.levenshtein_similarity("", "abc") == 0.0
        assert FuzzyMatcher.levenshtein_similarity("abc", "xyz") == 0.0

    def test_similarity_ignores_case_and_whitespace(self):
        """Test that comparison is case-insensitive and trimmed."""
        assert FuzzyMatcher.levenshtein_similarity(" ABC ", "abc") == 1.0


def test_fuzzy_config_defaults():
    """Test default threshold and candidate cap."""
    config = FuzzyConfig()
    assert config.enabled is True
    assert config.threshold == 0.5
    assert config.max_candidates == 3
    assert config.auto_accept_threshold is None
