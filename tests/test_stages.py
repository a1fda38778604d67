"""Tests for ramp stages and the stage list grammar."""
import pytest

from loadopts import Duration, NullDuration, NullInt, Stage, StageParseError, parse_stages
from loadopts.duration import SECOND
from loadopts.stages import format_stages


@pytest.mark.parametrize("text,expected", [
    ("1s", [Stage(duration=NullDuration.of(Duration(SECOND)))]),
    ("1s:100", [Stage(duration=NullDuration.of(Duration(SECOND)), target=NullInt.of(100))]),
    ("1s,2s:100", [
        Stage(duration=NullDuration.of(Duration(SECOND))),
        Stage(duration=NullDuration.of(Duration(2 * SECOND)), target=NullInt.of(100)),
    ]),
    ("30s:0", [Stage(duration=NullDuration.of(Duration(30 * SECOND)), target=NullInt.of(0))]),
])
def test_parse_stages(text, expected):
    """Test stage list text parses into ordered stages."""
    assert parse_stages(text) == expected


def test_parse_stages_empty():
    assert parse_stages("") == []


@pytest.mark.parametrize("text,segment", [
    ("1x", "1x"),
    ("1s,abc:10", "abc:10"),
    ("1s:ten", "1s:ten"),
    ("1s:1_000", "1s:1_000"),
    ("1s:1.5", "1s:1.5"),
    ("1s:", "1s:"),
    ("1s,", ""),
])
def test_parse_stages_invalid(text, segment):
    """Test malformed segments fail with an error naming the segment."""
    with pytest.raises(StageParseError) as exc_info:
        parse_stages(text)
    assert exc_info.value.segment == segment
    assert exc_info.value.field == "stages"


def test_stage_dict_conversion():
    """Test stage dictionaries omit absent fields."""
    stage = Stage(duration=NullDuration.of(Duration(SECOND)))
    assert stage.to_dict() == {"duration": "1s"}
    assert Stage.from_dict({"duration": "1s"}) == stage

    full = Stage.from_dict({"duration": "2m0s", "target": 50})
    assert full.target == NullInt.of(50)
    assert full.to_dict() == {"duration": "2m0s", "target": 50}


def test_format_stages():
    assert format_stages(parse_stages("1s,2m0s:100")) == "1s,2m0s:100"
    assert format_stages(None) == ""
