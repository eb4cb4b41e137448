"""Tests for fuzzy title matching."""

from __future__ import annotations

import pytest

from crossplay.services.name_matcher import (
    NameMatcher,
    calculate_similarity,
    create_slug,
    normalize_title,
    select_best_candidate,
)
from crossplay.shared.models import SearchCandidate


class TestNormalizeTitle:
    """Title normalization."""

    @pytest.mark.parametrize(
        ("title", "expected"),
        [
            ("Hollow Knight", "hollow knight"),
            ("  Baldur's   Gate 3 ", "baldurs gate 3"),
            ("DOOM: Eternal", "doom eternal"),
            ("Pokémon Legends", "pokémon legends"),
            ("", ""),
        ],
    )
    def test_normalize(self, title: str, expected: str) -> None:
        assert normalize_title(title) == expected


class TestCalculateSimilarity:
    """Similarity scoring."""

    def test_identical_after_normalization(self) -> None:
        assert calculate_similarity("Hollow Knight", "  HOLLOW knight! ") == 1.0

    def test_two_empty_titles_are_identical(self) -> None:
        assert calculate_similarity("", "  ") == 1.0

    def test_containment_scores_point_eight(self) -> None:
        assert calculate_similarity("Hollow Knight", "Hollow Knight: Voidheart Edition") == 0.8

    def test_jaccard_overlap(self) -> None:
        """Two shared words out of four distinct words."""
        assert calculate_similarity("Dark Souls Remastered", "Dark Souls Prepare") == pytest.approx(
            2 / 4
        )

    def test_disjoint_titles(self) -> None:
        assert calculate_similarity("Celeste", "Hades") == 0.0

    def test_symmetric(self) -> None:
        a, b = "Ori and the Blind Forest", "Ori and the Will of the Wisps"
        assert calculate_similarity(a, b) == calculate_similarity(b, a)


class TestSelectBestCandidate:
    """Candidate selection."""

    def test_picks_highest_score(self) -> None:
        # Given
        candidates = [
            SearchCandidate("1", "Hollow Knight: Silksong"),
            SearchCandidate("2", "Hollow Knight"),
            SearchCandidate("3", "Knights of Hollow"),
        ]

        # When
        best = select_best_candidate("Hollow Knight", candidates)

        # Then
        assert best is not None
        assert best.id == "2"

    def test_tie_goes_to_first_candidate(self) -> None:
        candidates = [
            SearchCandidate("1", "Hades Deluxe"),
            SearchCandidate("2", "Hades Ultimate"),
        ]

        best = select_best_candidate("Hades", candidates)

        assert best is not None
        assert best.id == "1"

    def test_none_below_confidence_floor(self) -> None:
        candidates = [SearchCandidate("1", "Celeste")]

        assert select_best_candidate("Hollow Knight", candidates) is None

    def test_empty_candidate_list(self) -> None:
        assert select_best_candidate("Hollow Knight", []) is None

    def test_custom_floor(self) -> None:
        candidates = [SearchCandidate("1", "Dark Souls Prepare")]

        assert select_best_candidate("Dark Souls Remastered", candidates, 0.5) is not None
        assert select_best_candidate("Dark Souls Remastered", candidates, 0.6) is None


class TestCreateSlug:
    """URL slugs."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Baldur's Gate 3", "baldurs-gate-3"),
            ("Hollow Knight", "hollow-knight"),
            ("  Spaced   Out  ", "spaced-out"),
            ("Half-Life - Alyx", "half-life-alyx"),
        ],
    )
    def test_slug(self, name: str, expected: str) -> None:
        assert create_slug(name) == expected


class TestNameMatcher:
    """Injectable wrapper."""

    def test_uses_configured_floor(self) -> None:
        matcher = NameMatcher(min_confidence=0.9)
        candidates = [SearchCandidate("1", "Hollow Knight: Silksong")]

        assert matcher.best_match("Hollow Knight", candidates) is None
        assert matcher.similarity("Hollow Knight", "Hollow Knight: Silksong") == 0.8
        assert matcher.slug("Hollow Knight") == "hollow-knight"
