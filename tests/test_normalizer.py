"""Tests for name normalization used by the drug-safety matchers."""

import pytest

from carevault.services.normalizer import names_match, normalize


class TestNormalize:
    @pytest.mark.parametrize(
        "text",
        ["Amoxicillin 500mg", "amoxicillin-500-mg", "  AMOXICILLIN 500 MG  ", "amoxicillin_500/mg"],
    )
    def test_variants_share_canonical_form(self, text):
        assert normalize(text) == "amoxicillin500mg"

    def test_empty_and_punctuation_only(self):
        assert normalize("") == ""
        assert normalize("  -- / ") == ""

    def test_non_ascii_letters_are_dropped(self):
        assert normalize("Café") == "caf"

    def test_idempotent(self):
        for text in ["Co-Codamol 30/500", "Vitamin K", "ß-blocker", "ASPIRIN"]:
            once = normalize(text)
            assert normalize(once) == once

    def test_output_alphabet(self):
        out = normalize("Acetylsalicylic Acid (ASA) 81 mg!")
        assert out == "acetylsalicylicacidasa81mg"
        assert all(ch.isdigit() or "a" <= ch <= "z" for ch in out)


class TestNamesMatch:
    def test_substring_either_direction(self):
        assert names_match("Warfarin 5mg", "warfarin")
        assert names_match("warfarin", "Warfarin 5mg")

    def test_unrelated(self):
        assert not names_match("Metformin", "Aspirin")
