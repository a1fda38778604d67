"""Tests for duration formatting and parsing."""
from datetime import timedelta

import pytest

from loadopts import Duration
from loadopts.duration import HOUR, MICROSECOND, MILLISECOND, MINUTE, SECOND, parse_duration


@pytest.mark.parametrize("nanoseconds,expected", [
    (0, "0s"),
    (500, "500ns"),
    (1500, "1.5µs"),
    (1500 * MICROSECOND, "1.5ms"),
    (300 * MILLISECOND, "300ms"),
    (10 * SECOND, "10s"),
    (1500 * MILLISECOND, "1.5s"),
    (2 * MINUTE, "2m0s"),
    (90 * SECOND, "1m30s"),
    (HOUR, "1h0m0s"),
    (HOUR + 2 * MINUTE + 3 * SECOND, "1h2m3s"),
    (-2 * SECOND, "-2s"),
])
def test_duration_string(nanoseconds, expected):
    """Test durations render in compound unit form."""
    assert str(Duration(nanoseconds)) == expected


@pytest.mark.parametrize("text,expected", [
    ("0", 0),
    ("10s", 10 * SECOND),
    ("2m0s", 2 * MINUTE),
    ("1h30m", 90 * MINUTE),
    ("1.5s", 1500 * MILLISECOND),
    ("1.5h", 90 * MINUTE),
    ("300ms", 300 * MILLISECOND),
    ("2us", 2 * MICROSECOND),
    ("2µs", 2 * MICROSECOND),
    ("100ns", 100),
    ("-1m", -MINUTE),
    ("+5s", 5 * SECOND),
])
def test_duration_parse(text, expected):
    """Test parsing of the compound unit format."""
    assert Duration.parse(text) == Duration(expected)


@pytest.mark.parametrize("text", ["", "10", "1x", "abc", ".s", "-", "1s2"])
def test_duration_parse_invalid(text):
    """Test malformed durations are rejected."""
    with pytest.raises(ValueError):
        Duration.parse(text)


def test_duration_timedelta_conversion():
    """Test conversion to and from timedelta."""
    assert Duration.from_timedelta(timedelta(minutes=2)) == Duration(2 * MINUTE)
    assert Duration(1500 * MILLISECOND).to_timedelta() == timedelta(seconds=1.5)
    assert Duration(-SECOND).to_timedelta() == timedelta(seconds=-1)
    assert parse_duration(timedelta(seconds=10)) == Duration(10 * SECOND)
    assert Duration(90 * SECOND).total_seconds() == 90.0


def test_duration_ordering():
    assert Duration(SECOND) < Duration(MINUTE)
