"""Exceptions raised while decoding, binding and loading options."""
from typing import Optional


class OptionsError(Exception):
    """Base class for all options errors."""
    pass


class OptionsDecodeError(OptionsError, ValueError):
    """Raised when a file or script payload cannot be decoded."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class StageParseError(OptionsDecodeError):
    """Raised when a stage list segment is malformed."""

    def __init__(self, segment: str, reason: str):
        self.segment = segment
        super().__init__(f"invalid stage {segment!r}: {reason}", field="stages")


class OptionsBindingError(OptionsError):
    """Raised when an environment variable holds an unparseable value."""

    def __init__(self, variable: str, value: str, reason: str):
        self.variable = variable
        self.value = value
        super().__init__(f"{variable}={value!r}: {reason}")


class CertificateError(OptionsError):
    """Raised when a TLS auth bundle cannot be turned into a certificate."""
    pass
