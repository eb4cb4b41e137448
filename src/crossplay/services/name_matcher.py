"""Fuzzy title matching for name-based sources.

Titles are compared after normalization (lowercase, punctuation stripped,
whitespace collapsed). The score is 1.0 for identical titles, 0.8 when one
title contains the other, and the Jaccard overlap of their word sets
otherwise.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from crossplay.shared.constants import MatchingConfig
from crossplay.shared.models import SearchCandidate

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_SLUG_DISALLOWED = re.compile(r"[^\w\s-]")
_HYPHEN_RUNS = re.compile(r"-+")


def normalize_title(title: str) -> str:
    """Lowercase ``title``, drop punctuation and collapse whitespace.

    Example:
        >>> normalize_title("  Baldur's   Gate 3 ")
        'baldurs gate 3'
    """
    normalized = _PUNCTUATION.sub("", title.lower())
    return _WHITESPACE.sub(" ", normalized).strip()


def calculate_similarity(a: str, b: str) -> float:
    """Score how alike two titles are, in the range 0..1."""
    norm_a = normalize_title(a)
    norm_b = normalize_title(b)

    if norm_a == norm_b:
        return 1.0

    if norm_a in norm_b or norm_b in norm_a:
        return MatchingConfig.CONTAINMENT_SCORE

    words_a = set(norm_a.split(" "))
    words_b = set(norm_b.split(" "))
    return len(words_a & words_b) / len(words_a | words_b)


def select_best_candidate(
    query: str,
    candidates: Sequence[SearchCandidate],
    min_confidence: float = MatchingConfig.DEFAULT_MIN_CONFIDENCE,
) -> SearchCandidate | None:
    """Return the candidate most similar to ``query``.

    Ties go to the earliest candidate; None when nothing reaches
    ``min_confidence``.
    """
    best: SearchCandidate | None = None
    best_score = 0.0

    for candidate in candidates:
        score = calculate_similarity(query, candidate.name)
        if score >= min_confidence and (best is None or score > best_score):
            best = candidate
            best_score = score

    if best is not None:
        logger.debug(
            "Best match for %r: %r (similarity %.2f)",
            query,
            best.name,
            best_score,
        )
    return best


def create_slug(name: str) -> str:
    """Build a URL slug.

    Example:
        >>> create_slug("Baldur's Gate 3")
        'baldurs-gate-3'
    """
    slug = _SLUG_DISALLOWED.sub("", name.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHEN_RUNS.sub("-", slug)
    return slug.strip("-")


class NameMatcher:
    """Injectable matcher carrying the configured confidence floor."""

    def __init__(self, min_confidence: float = MatchingConfig.DEFAULT_MIN_CONFIDENCE) -> None:
        self.min_confidence = min_confidence

    def similarity(self, a: str, b: str) -> float:
        return calculate_similarity(a, b)

    def best_match(
        self,
        query: str,
        candidates: Sequence[SearchCandidate],
    ) -> SearchCandidate | None:
        return select_best_candidate(query, candidates, self.min_confidence)

    def slug(self, name: str) -> str:
        return create_slug(name)


__all__ = [
    "NameMatcher",
    "calculate_similarity",
    "create_slug",
    "normalize_title",
    "select_best_candidate",
]
