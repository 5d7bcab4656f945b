"""Tests for priority/time/text normalization."""

import math

import pytest

from core.normalize import normalize_priority, normalize_text, normalize_time


class TestNormalizePriority:
    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "1e", math.nan, math.inf, -math.inf, "nan", True, [], {}])
    def test_missing_or_invalid_is_none(self, value):
        assert normalize_priority(value) is None

    @pytest.mark.parametrize(
        "value, expected",
        [(3, 3), ("4", 4), (" 5 ", 5), (2.9, 2), (-2.9, -2), ("7.8", 7), (0, 0), ("-0.5", 0)],
    )
    def test_truncates_toward_zero(self, value, expected):
        assert normalize_priority(value) == expected

    @pytest.mark.parametrize("value", [None, "", "x", 1, "2.5", -3.7, math.inf, " 12 ", 10**30])
    def test_idempotent(self, value):
        once = normalize_priority(value)
        assert normalize_priority(once) == once

    def test_large_int_keeps_precision(self):
        assert normalize_priority(10**30 + 1) == 10**30 + 1


class TestNormalizeText:
    def test_time_is_trimmed(self):
        assert normalize_time(" 09:30 ") == "09:30"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_blank_time_is_none(self, value):
        assert normalize_time(value) is None

    def test_text_is_trimmed_or_none(self):
        assert normalize_text("  note ") == "note"
        assert normalize_text(" ") is None
