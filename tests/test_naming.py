"""Tests for collision-free name resolution."""

import pytest

from domain.naming import case_insensitive_exists, resolve_unique_name


def taken(*names):
    return case_insensitive_exists(names)


class TestResolveUniqueName:
    """Tests for resolve_unique_name."""

    def test_free_name_is_returned_unchanged(self):
        """A name nobody uses comes back as-is."""
        assert resolve_unique_name("Apollo", taken("Gemini"), 100) == "Apollo"

    def test_first_collision_gets_suffix_one(self):
        """The first duplicate gets ' (1)'."""
        assert resolve_unique_name("Apollo", taken("Apollo"), 100) == "Apollo (1)"

    def test_skips_used_suffixes(self):
        """X, X (1) and X (2) taken resolves to X (3)."""
        exists = taken("X", "X (1)", "X (2)")
        assert resolve_unique_name("X", exists, 100) == "X (3)"

    def test_collision_is_case_insensitive(self):
        """Existing names are compared ignoring case."""
        assert resolve_unique_name("APOLLO", taken("apollo"), 100) == "APOLLO (1)"

    def test_resolution_is_deterministic(self):
        """Same existing-name set, same answer."""
        exists = taken("X", "X (1)")
        first = resolve_unique_name("X", exists, 100)
        second = resolve_unique_name("X", exists, 100)
        assert first == second == "X (2)"

    def test_resolved_name_is_free_on_second_pass(self):
        """Feeding a resolved name back returns it unchanged."""
        exists = taken("X")
        resolved = resolve_unique_name("X", exists, 100)
        assert resolve_unique_name(resolved, exists, 100) == resolved

    def test_long_name_is_truncated_to_exact_length(self):
        """A taken 100-char name is cut so the suffixed result is 100 chars."""
        candidate = "a" * 100
        result = resolve_unique_name(candidate, taken(candidate), 100)
        assert len(result) == 100
        assert result == "a" * 96 + " (1)"

    def test_truncation_recomputed_when_suffix_grows(self):
        """Reaching ' (10)' cuts one more character than ' (9)'."""
        candidate = "b" * 100
        existing = [candidate]
        for n in range(1, 10):
            suffix = f" ({n})"
            existing.append(candidate[: 100 - len(suffix)] + suffix)
        result = resolve_unique_name(candidate, taken(*existing), 100)
        assert result == "b" * 95 + " (10)"
        assert len(result) == 100

    def test_near_limit_name_is_truncated(self):
        """A 98-char name cannot take ' (1)' without cutting two characters."""
        candidate = "c" * 98
        result = resolve_unique_name(candidate, taken(candidate), 100)
        assert result == "c" * 96 + " (1)"

    def test_short_name_is_not_truncated(self):
        """Names with room for the suffix keep every character."""
        candidate = "d" * 96
        assert resolve_unique_name(candidate, taken(candidate), 100) == candidate + " (1)"

    def test_max_length_too_small_for_suffix(self):
        """A limit that cannot hold the suffix is rejected."""
        with pytest.raises(ValueError):
            resolve_unique_name("abc", lambda name: True, 4)


class TestCaseInsensitiveExists:
    """Tests for the in-memory existence predicate."""

    def test_matches_any_case(self):
        exists = case_insensitive_exists(["Alpha"])
        assert exists("alpha")
        assert exists("ALPHA")
        assert not exists("beta")
