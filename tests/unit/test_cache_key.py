"""Tests for cache key building."""

from uuid import UUID

import pytest

from evolve_commons.features.cache.entities.cache_key import CacheKey


class TestCacheKey:
    """Key format and user isolation."""

    def test_format(self):
        key = CacheKey.for_user("evolve", "abc123", "workout_plan")
        assert str(key) == "evolve_abc123_workout_plan"
        assert key.value == "evolve_abc123_workout_plan"

    def test_lowercases_parts(self):
        user = UUID("0B7D3C1E-5A2F-4C9E-8D61-2F4E9A7C1B30")
        key = CacheKey.for_user("Evolve", user, "Journal_Entries")
        assert str(key) == "evolve_0b7d3c1e-5a2f-4c9e-8d61-2f4e9a7c1b30_journal_entries"

    @pytest.mark.parametrize("user_id", [None, "", "   "])
    def test_no_user_yields_no_key(self, user_id):
        """Without an authenticated user there is no key at all."""
        assert CacheKey.for_user("evolve", user_id, "workout_plan") is None

    def test_users_never_share_keys(self):
        alice = CacheKey.for_user("evolve", "alice", "workout_plan")
        bob = CacheKey.for_user("evolve", "bob", "workout_plan")
        assert alice != bob
        assert str(alice) != str(bob)

    def test_user_prefix_matches_keys(self):
        key = CacheKey.for_user("evolve", "Alice", "meal_plan")
        assert str(key).startswith(CacheKey.user_prefix("evolve", "Alice"))

    @pytest.mark.parametrize("namespace,user_id,resource", [
        ("evolve", "ålice", "plan"),
        ("evolve", "bob", "meal plan"),
        ("evolve", "Bob", "plan"),
        ("ev_olve", "bob", "plan"),
        ("evolve", "a_b", "plan"),
        ("evolve", "bob", ""),
    ])
    def test_direct_construction_validates(self, namespace, user_id, resource):
        with pytest.raises(ValueError):
            CacheKey(namespace=namespace, user_id=user_id, resource=resource)

    def test_non_ascii_user_rejected_by_builder(self):
        with pytest.raises(ValueError):
            CacheKey.for_user("evolve", "ålice", "plan")

    def test_user_ids_with_separator_are_not_keyed(self):
        assert CacheKey.for_user("evolve", "a_b", "res") is None
        assert CacheKey.user_prefix("evolve", "a_b") is None

    def test_keys_stay_unique_when_resource_has_separator(self):
        first = CacheKey.for_user("evolve", "a", "b_res")
        second = CacheKey.for_user("evolve", "a_b", "res")

        assert str(first) == "evolve_a_b_res"
        assert second is None
