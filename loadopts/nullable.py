"""Nullable scalar wrappers.

Every scalar option is stored as a ``(value, present)`` pair so that "not
provided" can be told apart from "provided as zero". A zero-constructed
wrapper is absent; ``of()`` always produces a present one.
"""
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Generic, Optional, TypeVar, Union

from .duration import Duration, parse_duration
from .errors import OptionsDecodeError

T = TypeVar("T")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class Nullable(Generic[T]):
    """A value paired with an explicit presence flag."""
    value: Any = None
    present: bool = False

    @classmethod
    def of(cls, value: Any) -> "Nullable[T]":
        """Wrap ``value`` and mark it present."""
        return cls(value=cls._coerce(value), present=True)

    @classmethod
    def _coerce(cls, value: Any) -> Any:
        return value

    def get(self, default: Optional[T] = None) -> Optional[T]:
        """Return the value if present, otherwise ``default``."""
        return self.value if self.present else default

    def to_json(self) -> Any:
        """Encode the bare value. Callers omit absent wrappers entirely."""
        return self.value

    @classmethod
    def from_json(cls, raw: Any, field: Optional[str] = None) -> "Nullable[T]":
        """Decode a JSON value; ``null`` decodes to an absent wrapper."""
        if raw is None:
            return cls()
        return cls(value=cls._decode(raw, field), present=True)

    @classmethod
    def _decode(cls, raw: Any, field: Optional[str]) -> Any:
        return raw


@dataclass(frozen=True)
class NullBool(Nullable[bool]):
    value: bool = False
    present: bool = False

    @classmethod
    def _decode(cls, raw: Any, field: Optional[str]) -> bool:
        if not isinstance(raw, bool):
            raise OptionsDecodeError(f"expected a boolean, got {raw!r}", field=field)
        return raw


@dataclass(frozen=True)
class NullInt(Nullable[int]):
    value: int = 0
    present: bool = False

    @classmethod
    def _coerce(cls, value: Any) -> int:
        value = int(value)
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"{value} does not fit in a 64-bit integer")
        return value

    @classmethod
    def _decode(cls, raw: Any, field: Optional[str]) -> int:
        # bool is an int subclass but never a valid integer option
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise OptionsDecodeError(f"expected an integer, got {raw!r}", field=field)
        try:
            return cls._coerce(raw)
        except ValueError as e:
            raise OptionsDecodeError(str(e), field=field) from e


@dataclass(frozen=True)
class NullString(Nullable[str]):
    value: str = ""
    present: bool = False

    @classmethod
    def _decode(cls, raw: Any, field: Optional[str]) -> str:
        if not isinstance(raw, str):
            raise OptionsDecodeError(f"expected a string, got {raw!r}", field=field)
        return raw


@dataclass(frozen=True)
class NullDuration(Nullable[Duration]):
    """A nullable ``Duration``; encodes as text such as ``"2m0s"``."""
    value: Duration = Duration()
    present: bool = False

    @classmethod
    def _coerce(cls, value: Union[str, Duration, timedelta]) -> Duration:
        return parse_duration(value)

    def to_json(self) -> str:
        return str(self.value)

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def _decode(cls, raw: Any, field: Optional[str]) -> Duration:
        if not isinstance(raw, str):
            raise OptionsDecodeError(f"expected a duration string, got {raw!r}", field=field)
        try:
            return Duration.parse(raw)
        except ValueError as e:
            raise OptionsDecodeError(str(e), field=field) from e
