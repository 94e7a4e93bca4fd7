"""Tests for skill label normalisation."""

from scout.scoring.numeric import clamp, round_half_up, to_number
from scout.scoring.skills import (
    canonicalize_skill,
    dedupe_preserve_order,
    normalize_value,
    strip_not_specified,
)


class TestCanonicalizeSkill:
    def test_punctuation_becomes_spaces(self):
        assert canonicalize_skill("Node.js") == "node js"

    def test_version_tokens_removed(self):
        assert canonicalize_skill("PostgreSQL 13.1") == "postgresql"
        assert canonicalize_skill("React v18") == "react"
        assert canonicalize_skill("Python version 3") == "python"

    def test_plus_and_hash_survive(self):
        assert canonicalize_skill("C++") == "c++"
        assert canonicalize_skill("C#") == "c#"

    def test_accents_stripped(self):
        assert canonicalize_skill("Café") == "cafe"

    def test_empty_values(self):
        assert canonicalize_skill(None) == ""
        assert canonicalize_skill("") == ""
        assert canonicalize_skill("  ") == ""


def test_normalize_value_trims_and_lowercases():
    assert normalize_value("  Docker ") == "docker"


def test_dedupe_preserve_order_keeps_first_spelling():
    assert dedupe_preserve_order(["Python", "python", " ", "SQL", "PYTHON"]) == ["Python", "SQL"]


def test_strip_not_specified():
    assert strip_not_specified(["Not Specified", "Go", ""]) == ["Go"]
    assert strip_not_specified(None) == []


class TestNumeric:
    def test_round_half_up_rounds_halves_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1
        assert round_half_up(2.4) == 2

    def test_clamp(self):
        assert clamp(120, 0, 100) == 100
        assert clamp(-3, 0, 100) == 0

    def test_to_number_coercions(self):
        assert to_number("12.5") == 12.5
        assert to_number(" 7 ") == 7.0
        assert to_number("abc") is None
        assert to_number(True) is None
        assert to_number(float("nan")) is None
        assert to_number(None) is None
