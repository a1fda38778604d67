"""Ramp stages and the compact ``1s,2s:100`` stage list grammar."""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .duration import Duration
from .errors import OptionsDecodeError, StageParseError
from .nullable import NullDuration, NullInt

_TARGET = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class Stage:
    """One segment of a ramp profile.

    Run for ``duration`` while moving the active VU count toward ``target``.
    An absent target holds the current level.
    """
    duration: NullDuration = field(default_factory=NullDuration)
    target: NullInt = field(default_factory=NullInt)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the stage to a dictionary, omitting absent fields."""
        data: Dict[str, Any] = {}
        if self.duration.present:
            data["duration"] = self.duration.to_json()
        if self.target.present:
            data["target"] = self.target.to_json()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stage":
        """Create a stage from a dictionary."""
        if not isinstance(data, dict):
            raise OptionsDecodeError(f"expected a stage object, got {data!r}", field="stages")
        return cls(
            duration=NullDuration.from_json(data.get("duration"), field="stages.duration"),
            target=NullInt.from_json(data.get("target"), field="stages.target"),
        )

    def to_text(self) -> str:
        """Render in the stage list grammar, e.g. ``1m0s:100``."""
        text = str(self.duration.value) if self.duration.present else ""
        if self.target.present:
            text += f":{self.target.value}"
        return text


def parse_stage(segment: str) -> Stage:
    """Parse ``<duration>`` or ``<duration>:<target>``."""
    duration_text, sep, target_text = segment.strip().partition(":")
    try:
        duration = Duration.parse(duration_text.strip())
    except ValueError as e:
        raise StageParseError(segment, str(e)) from e

    target = NullInt()
    if sep:
        target_text = target_text.strip()
        if not _TARGET.fullmatch(target_text):
            raise StageParseError(segment, f"target {target_text!r} is not an integer")
        try:
            target = NullInt.of(int(target_text, 10))
        except ValueError as e:
            raise StageParseError(segment, str(e)) from e

    return Stage(duration=NullDuration.of(duration), target=target)


def parse_stages(text: str) -> List[Stage]:
    """Parse a comma-separated stage list. Empty input yields no stages."""
    if not text.strip():
        return []
    return [parse_stage(segment) for segment in text.split(",")]


def format_stages(stages: Optional[List[Stage]]) -> str:
    return ",".join(stage.to_text() for stage in stages or [])
