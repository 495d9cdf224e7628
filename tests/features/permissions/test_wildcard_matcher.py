"""Tests for wildcard permission matching."""

import pytest

from neo_authz.config.settings import WildcardSettings
from neo_authz.features.permissions.services import WildcardMatcher


@pytest.fixture
def matcher():
    WildcardMatcher.clear_cache()
    return WildcardMatcher(WildcardSettings(enabled=True))


class TestWildcardMatching:
    """Segment-wise matching rules."""

    @pytest.mark.parametrize("pattern,name,expected", [
        ("users.*", "users.view", True),
        ("users.*", "posts.view", False),
        ("*.view", "users.view", True),
        ("*.view", "users.edit", False),
        ("*", "anything", True),
        ("*", "a.b.c", True),
    ])
    def test_coverage_examples(self, matcher, pattern, name, expected):
        assert matcher.matches(pattern, name) is expected

    def test_trailing_wildcard_spans_remaining_segments(self, matcher):
        assert matcher.matches("users.*", "users.create.bulk")

    def test_trailing_wildcard_needs_at_least_one_segment(self, matcher):
        assert not matcher.matches("users.*", "users")

    def test_inner_wildcard_matches_single_segment(self, matcher):
        assert matcher.matches("users.*.bulk", "users.create.bulk")
        assert not matcher.matches("*.view", "users.list.view")

    def test_literal_segments_are_case_sensitive(self, matcher):
        assert not matcher.matches("Users.*", "users.view")
        assert not matcher.matches("users.view", "users.View")

    def test_colon_delimiter(self, matcher):
        assert matcher.matches("articles:*", "articles:edit")
        assert not matcher.matches("articles:*", "posts:edit")

    def test_subparts_are_alternatives(self, matcher):
        assert matcher.matches("articles:edit,delete", "articles:delete")
        assert not matcher.matches("articles:edit,delete", "articles:view")

    def test_partial_segment_wildcard(self, matcher):
        assert matcher.matches("art*:view", "articles:view")
        assert not matcher.matches("art*:view", "posts:view")

    def test_partial_segment_wildcard_needs_a_character(self, matcher):
        assert not matcher.matches("art*:view", "art:view")
        assert matcher.matches("art*:view", "arts:view")

    def test_trailing_wildcard_rejects_empty_segments(self, matcher):
        assert not matcher.matches("users.*", "users.")
        assert not matcher.matches("users.*", "users.create.")
        assert not matcher.matches("articles:*", "articles:")

    def test_plain_name_matches_only_itself(self, matcher):
        assert matcher.matches("users.view", "users.view")
        assert not matcher.matches("users.view", "users.viewer")


class TestWildcardHelpers:
    """Pattern detection, expansion and the compiled-pattern cache."""

    def test_contains_wildcard(self, matcher):
        assert matcher.contains_wildcard("users.*")
        assert not matcher.contains_wildcard("users.view")

    def test_is_pattern_includes_subparts(self, matcher):
        assert matcher.is_pattern("articles:edit,delete")
        assert not matcher.is_pattern("articles:edit")

    def test_expand(self, matcher):
        names = ["users.view", "users.edit", "posts.view"]
        assert matcher.expand("users.*", names) == ["users.view", "users.edit"]
        assert matcher.expand("*.view", names) == ["users.view", "posts.view"]

    def test_matches_any_returns_first_covering_pattern(self, matcher):
        assert matcher.matches_any(["posts.*", "users.*"], "users.view") == "users.*"
        assert matcher.matches_any(["posts.*"], "users.view") is None

    def test_custom_token(self):
        matcher = WildcardMatcher(WildcardSettings(enabled=True, token="#"))
        assert matcher.matches("users.#", "users.view")
        assert not matcher.matches("users.*", "users.view")

    def test_clear_cache(self, matcher):
        matcher.matches("users.*", "users.view")
        WildcardMatcher.clear_cache()
        assert matcher.matches("users.*", "users.view")
