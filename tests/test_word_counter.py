"""Tests for debatesim/word_counter.py."""

import pytest

from debatesim.word_counter import BAND_COLORS, LimitBand, classify, count_words


def test_count_words_basic():
    assert count_words("one two three") == 3


def test_count_words_trims_and_collapses_whitespace():
    assert count_words("  a   b ") == 2


def test_count_words_handles_tabs_and_newlines():
    assert count_words("a\tb\n\nc") == 3


@pytest.mark.parametrize("text", ["", "   ", "\n\t ", None])
def test_count_words_empty(text):
    assert count_words(text) == 0


def test_count_words_invariant_under_outer_whitespace():
    text = "Regulation protects consumers"
    assert count_words(text) == count_words(f"\n  {text}\t ")


def test_classify_nominal_below_90_percent():
    status = classify(179, 200)
    assert status.band is LimitBand.NOMINAL
    assert status.is_over_limit is False


def test_classify_warning_at_90_percent():
    status = classify(180, 200)
    assert status.band is LimitBand.WARNING
    assert status.is_over_limit is False


def test_classify_warning_at_limit():
    status = classify(200, 200)
    assert status.band is LimitBand.WARNING
    assert status.is_over_limit is False


def test_classify_over_limit():
    status = classify(201, 200)
    assert status.band is LimitBand.OVER_LIMIT
    assert status.is_over_limit is True
    assert status.color == BAND_COLORS[LimitBand.OVER_LIMIT]


def test_classify_zero_count_is_nominal():
    assert classify(0, 200).band is LimitBand.NOMINAL


def test_classify_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        classify(10, 0)
