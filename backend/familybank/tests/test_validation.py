"""Tests for request value checks."""

import pathlib
import sys

import pytest

# Allow importing the familybank package
sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from familybank.errors import (
    InvalidAmount,
    InvalidFrequencyDayCombination,
    InvalidInterestRate,
    InvalidName,
    InvalidNote,
    InvalidSlug,
)
from familybank.validation import (
    merge_day_spec,
    validate_amount,
    validate_child_name,
    validate_note,
    validate_rate,
    validate_slug,
)


def test_amount_bounds():
    assert validate_amount(1) == 1
    assert validate_amount(99_999_999) == 99_999_999
    for bad in (0, -1, 100_000_000):
        with pytest.raises(InvalidAmount):
            validate_amount(bad)


def test_note_trimming():
    assert validate_note(None) is None
    assert validate_note("   ") is None
    assert validate_note("  hi  ") == "hi"
    assert validate_note(" " + "x" * 500 + " ") == "x" * 500
    with pytest.raises(InvalidNote):
        validate_note("x" * 501)


def test_rate_bounds():
    assert validate_rate(0) == 0
    assert validate_rate(10000) == 10000
    with pytest.raises(InvalidInterestRate):
        validate_rate(-1)
    with pytest.raises(InvalidInterestRate):
        validate_rate(10001)


def test_merge_day_spec_switches_frequency_family():
    current = {"frequency": "weekly", "day_of_week": 5, "day_of_month": None}
    assert merge_day_spec(current, {"frequency": "monthly", "day_of_month": 3}) == {
        "frequency": "monthly",
        "day_of_week": None,
        "day_of_month": 3,
    }
    assert merge_day_spec(current, {"day_of_week": 2})["day_of_week"] == 2
    with pytest.raises(InvalidFrequencyDayCombination):
        merge_day_spec(current, {"frequency": "monthly"})
    with pytest.raises(InvalidFrequencyDayCombination):
        merge_day_spec(current, {"frequency": "monthly", "day_of_month": 3, "day_of_week": 1})


def test_child_name_and_slug():
    assert validate_child_name("Ann") == "Ann"
    for bad in ("", " Ann", "<b>", "x" * 51):
        with pytest.raises(InvalidName):
            validate_child_name(bad)
    assert validate_slug("smith-family") == "smith-family"
    for bad in ("ab", "-smith", "Smith", "smith_family"):
        with pytest.raises(InvalidSlug):
            validate_slug(bad)
