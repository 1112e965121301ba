"""
Unit tests for character-name normalization and tag resolution.

Tests cover:
1. normalize_name: case, diacritics and whitespace insensitivity
2. Bracket groups take precedence over the leading-letter run
3. Default character fallback only on a total miss with letters present
"""
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import Character
from agents.tag_resolver import resolve_tag, extract_candidate_names, build_name_index
from utils.text_utils import normalize_name, leading_letters, letters_only


# ==========================================================================
# Test 1: Name Normalizer
# ==========================================================================

class TestNormalizeName:

    def test_diacritics_and_case(self):
        assert normalize_name("Nguyễn") == normalize_name("nguyen") == "nguyen"

    def test_whitespace_removed(self):
        assert normalize_name(" Nguyen ") == "nguyen"
        assert normalize_name("Nguyễn  Minh") == normalize_name("nguyenminh")

    def test_empty_and_none(self):
        assert normalize_name("") == ""
        assert normalize_name(None) == ""

    def test_vietnamese_d_is_a_letter_not_a_mark(self):
        """đ has no decomposition; it stays distinct from d."""
        assert normalize_name("Đức") == "đuc"


class TestTextHelpers:

    def test_leading_letters_stops_at_digit(self):
        assert leading_letters("lan3") == "lan"
        assert leading_letters("42lan") == ""

    def test_letters_only(self):
        assert letters_only("Lan 2!") == "Lan"
        assert letters_only("Nguyễn") == "Nguyễn"


# ==========================================================================
# Test 2: Tag parsing
# ==========================================================================

class TestCandidateNames:

    def test_bracket_group_split_and_trimmed(self):
        assert extract_candidate_names("[Lan + Minh] 12") == ["Lan", "Minh"]

    def test_bracket_precedence_over_leading_run(self):
        assert extract_candidate_names("Lan[Minh]") == ["Minh"]

    def test_leading_run(self):
        assert extract_candidate_names("lan3") == ["lan"]

    def test_no_letters(self):
        assert extract_candidate_names("42") == []

    def test_empty_brackets_fall_back_to_leading_run(self):
        assert extract_candidate_names("lan[]") == ["lan"]


class TestResolveTag:

    def test_bracket_pair_any_order_and_spacing(self, roster):
        roster = roster[:2] + [Character(name="Minh")]
        for tag in ("[Lan+Minh]", "[minh + lan]", "[  LAN+  MINH ]3"):
            assert set(resolve_tag(tag, roster, None)) == {1, 2}

    def test_single_name_with_diacritics(self, roster):
        assert resolve_tag("nguyenminh4", roster, None) == [2]

    def test_no_letters_ignores_default(self, roster):
        assert resolve_tag("42", roster, 1) == []
        assert resolve_tag(42, roster, 1) == []
        assert resolve_tag(None, roster, 1) == []

    def test_unmatched_letters_use_default(self, roster):
        assert resolve_tag("hoa5", roster, 2) == [2]

    def test_unmatched_letters_without_default(self, roster):
        assert resolve_tag("hoa5", roster, None) == []

    def test_partial_bracket_match_does_not_add_default(self, roster):
        """Fallback applies only when nothing matched."""
        assert resolve_tag("[Lan+Hoa]", roster, 2) == [1]

    def test_duplicates_collapse(self, roster):
        assert resolve_tag("[Lan+lan]", roster, None) == [1]

    def test_empty_slots_never_match(self, roster):
        assert "" not in build_name_index(roster)
        assert resolve_tag("[+]", roster, None) == []
