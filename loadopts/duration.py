"""Signed nanosecond durations with the compound ``2m0s`` text format."""
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Union

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

_MAX_NANOSECONDS = 2 ** 63 - 1

_UNITS: Dict[str, int] = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"(?P<whole>\d*)(?:\.(?P<frac>\d*))?(?P<unit>[^\d.]*)")


def _format_fraction(whole: int, frac: int, digits: int) -> str:
    text = str(frac).rjust(digits, "0").rstrip("0")
    return f"{whole}.{text}" if text else str(whole)


@dataclass(frozen=True, order=True)
class Duration:
    """A time span in integer nanoseconds.

    Renders as ``1h2m3.5s``, ``2m0s``, ``10s``, ``1.5ms`` or ``0s`` and parses
    the same grammar back.
    """
    nanoseconds: int = 0

    @classmethod
    def parse(cls, text: str) -> "Duration":
        """Parse a duration string such as ``"1m30s"`` or ``"-1.5h"``."""
        original = text
        negative = False
        if text[:1] in ("+", "-"):
            negative = text[0] == "-"
            text = text[1:]
        if text == "0":
            return cls(0)
        if not text:
            raise ValueError(f"invalid duration {original!r}")

        total = 0
        pos = 0
        while pos < len(text):
            match = _COMPONENT.match(text, pos)
            whole, frac, unit = match.group("whole"), match.group("frac"), match.group("unit")
            if not whole and not frac:
                raise ValueError(f"invalid duration {original!r}")
            if not unit:
                raise ValueError(f"missing unit in duration {original!r}")
            scale = _UNITS.get(unit)
            if scale is None:
                raise ValueError(f"unknown unit {unit!r} in duration {original!r}")
            total += int(whole or 0) * scale
            if frac:
                total += int(frac) * scale // 10 ** len(frac)
            if total > _MAX_NANOSECONDS:
                raise ValueError(f"invalid duration {original!r}: out of range")
            pos = match.end()

        return cls(-total if negative else total)

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "Duration":
        """Convert a ``timedelta`` to a duration."""
        micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
        return cls(micros * MICROSECOND)

    def to_timedelta(self) -> timedelta:
        """Convert to a ``timedelta``, truncating below microsecond resolution."""
        micros = abs(self.nanoseconds) // MICROSECOND
        return timedelta(microseconds=-micros if self.nanoseconds < 0 else micros)

    def total_seconds(self) -> float:
        return self.nanoseconds / SECOND

    def __str__(self) -> str:
        ns = self.nanoseconds
        if ns == 0:
            return "0s"
        sign = "-" if ns < 0 else ""
        u = abs(ns)

        if u < SECOND:
            if u < MICROSECOND:
                return f"{sign}{u}ns"
            if u < MILLISECOND:
                return sign + _format_fraction(u // MICROSECOND, u % MICROSECOND, 3) + "µs"
            return sign + _format_fraction(u // MILLISECOND, u % MILLISECOND, 6) + "ms"

        seconds, frac = divmod(u, SECOND)
        hours, seconds = divmod(seconds, 3600)
        minutes, seconds = divmod(seconds, 60)
        text = _format_fraction(seconds, frac, 9) + "s"
        if hours:
            return f"{sign}{hours}h{minutes}m{text}"
        if minutes:
            return f"{sign}{minutes}m{text}"
        return sign + text


def parse_duration(value: Union[str, Duration, timedelta]) -> Duration:
    """Coerce text, a ``timedelta`` or a ``Duration`` into a ``Duration``."""
    if isinstance(value, Duration):
        return value
    if isinstance(value, timedelta):
        return Duration.from_timedelta(value)
    return Duration.parse(value)
