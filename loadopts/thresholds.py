"""Storage shape for metric thresholds.

Threshold expressions are kept as opaque source text; evaluating them is the
metrics engine's job.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .errors import OptionsDecodeError


@dataclass(frozen=True)
class Threshold:
    """A single threshold expression, e.g. ``p(95)<200``."""
    source: str = ""
    abort_on_fail: bool = False

    def to_json(self) -> Union[str, Dict[str, Any]]:
        # Plain expressions stay plain strings on the wire
        if not self.abort_on_fail:
            return self.source
        return {"threshold": self.source, "abortOnFail": True}

    @classmethod
    def from_json(cls, raw: Any, metric: str) -> "Threshold":
        if isinstance(raw, str):
            return cls(source=raw)
        if isinstance(raw, dict) and isinstance(raw.get("threshold"), str):
            abort_on_fail = raw.get("abortOnFail", False)
            if not isinstance(abort_on_fail, bool):
                raise OptionsDecodeError(
                    f"abortOnFail must be a boolean, got {abort_on_fail!r}",
                    field=f"thresholds.{metric}",
                )
            return cls(source=raw["threshold"], abort_on_fail=abort_on_fail)
        raise OptionsDecodeError(f"invalid threshold {raw!r}", field=f"thresholds.{metric}")


@dataclass
class Thresholds:
    """Ordered threshold expressions attached to one metric."""
    thresholds: List[Threshold] = field(default_factory=list)

    def to_json(self) -> List[Union[str, Dict[str, Any]]]:
        return [threshold.to_json() for threshold in self.thresholds]

    @classmethod
    def from_json(cls, raw: Any, metric: str) -> "Thresholds":
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, list):
            raise OptionsDecodeError(
                f"expected a list of thresholds, got {raw!r}", field=f"thresholds.{metric}"
            )
        return cls([Threshold.from_json(item, metric) for item in raw])

    def __len__(self) -> int:
        return len(self.thresholds)

    def __iter__(self):
        return iter(self.thresholds)
