#!/usr/bin/env python3
"""
Fuzzy matching of table names for table-catalog.

Contains:
- Levenshtein distance and normalized similarity
- Threshold and candidate cap configuration
"""

from dataclasses import dataclass
from typing import Optional

from rapidfuzz.distance import Levenshtein


@dataclass
class FuzzyConfig:
    """Configuration for fuzzy table matching."""

    enabled: bool = True
    threshold: float = 0.5  # Candidates must score strictly above this
    max_candidates: int = 3
    auto_accept_threshold: Optional[float] = None


class FuzzyMatcher:
    """Implements normalized Levenshtein similarity."""

    @staticmethod
    def levenshtein_distance(s1: str, s2: str) -> int:
        """Calculate Levenshtein distance between two strings."""
        return Levenshtein.distance(s1, s2)

    @staticmethod
    def levenshtein_similarity(s1: str, s2: str) -> float:
        """
        Calculate ``(maxLen - distance) / maxLen`` in [0.0, 1.0].

        Comparison is case-insensitive and ignores surrounding whitespace.
        Two empty strings are identical; one empty string scores 0.0.
        """
        clean1 = (s1 or "").strip().lower()
        clean2 = (s2 or "").strip().lower()

        if clean1 == clean2:
            return 1.0
        if not clean1 or not clean2:
            return 0.0

        max_len = max(len(clean1), len(clean2))
        distance = FuzzyMatcher.levenshtein_distance(clean1, clean2)
        return (max_len - distance) / max_len
