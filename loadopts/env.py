"""Environment variable binding for scalar options.

Each scalar option is read from ``<PREFIX><FIELD_NAME>``, e.g. ``K6_VUS_MAX``
for ``vus_max``. Unset and empty variables both leave the option absent.
Structured options (TLS, thresholds, hosts, ext) are file-only.
"""
import logging
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .duration import Duration
from .errors import OptionsBindingError, StageParseError
from .nullable import NullDuration
from .options import SCALAR_FIELDS, Options
from .stages import parse_stages

logger = logging.getLogger(__name__)

ENV_PREFIX = "K6_"

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

_BOOL_FIELDS = (
    "paused", "linger", "insecure_skip_tls_verify", "no_connection_reuse", "throw", "no_usage_report",
)
_INT_FIELDS = ("vus", "vus_max", "iterations", "max_redirects", "rps")


class EnvOptions(BaseSettings):
    """Raw option values as found in the environment.

    Durations and stage lists stay as text here and are parsed when
    converting to ``Options``.
    """
    paused: Optional[bool] = None
    vus: Optional[int] = None
    vus_max: Optional[int] = None
    duration: Optional[str] = None
    iterations: Optional[int] = None
    stages: Optional[str] = None
    linger: Optional[bool] = None
    max_redirects: Optional[int] = None
    insecure_skip_tls_verify: Optional[bool] = None
    no_connection_reuse: Optional[bool] = None
    user_agent: Optional[str] = None
    throw: Optional[bool] = None
    rps: Optional[int] = None
    no_usage_report: Optional[bool] = None

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator(*_BOOL_FIELDS, mode="before")
    @classmethod
    def parse_bool(cls, value: Any) -> Any:
        """Only ``true`` and ``false`` are booleans; ``yes``, ``on`` and ``1`` are not."""
        if isinstance(value, str):
            text = value.lower()
            if text not in ("true", "false"):
                raise ValueError("expected true or false")
            return text == "true"
        return value

    @field_validator(*_INT_FIELDS, mode="before")
    @classmethod
    def parse_int(cls, value: Any) -> Any:
        """Accept decimal digits only, rejecting ``1.0``, ``1_000`` and padded text."""
        if isinstance(value, str):
            if not INTEGER_PATTERN.fullmatch(value):
                raise ValueError("expected a decimal integer")
            return int(value, 10)
        return value


def env_var_name(attr: str, prefix: str = ENV_PREFIX) -> str:
    """Name of the variable an option attribute is bound to."""
    return f"{prefix}{attr}".upper()


def options_from_env(prefix: str = ENV_PREFIX) -> Options:
    """Build ``Options`` from the process environment.

    Args:
        prefix: Variable name prefix

    Returns:
        Options with only the variables that were set to a non-empty value

    Raises:
        OptionsBindingError: if a variable cannot be parsed as its option type
    """
    try:
        settings = EnvOptions(_env_prefix=prefix)
    except ValidationError as e:
        error = e.errors()[0]
        attr = str(error["loc"][0])
        raise OptionsBindingError(env_var_name(attr, prefix), str(error.get("input")), error["msg"]) from e

    kinds = {attr: kind for attr, _, kind in SCALAR_FIELDS}
    values: Dict[str, Any] = {}
    for attr in sorted(settings.model_fields_set):
        raw = getattr(settings, attr)
        if raw is None:
            continue
        if attr == "stages":
            try:
                stages = parse_stages(raw)
            except StageParseError as e:
                raise OptionsBindingError(env_var_name(attr, prefix), raw, str(e)) from e
            if stages:
                values["stages"] = stages
        elif attr == "duration":
            try:
                values["duration"] = NullDuration.of(Duration.parse(raw))
            except ValueError as e:
                raise OptionsBindingError(env_var_name(attr, prefix), raw, str(e)) from e
        else:
            try:
                values[attr] = kinds[attr].of(raw)
            except ValueError as e:
                raise OptionsBindingError(env_var_name(attr, prefix), str(raw), str(e)) from e

    if values:
        logger.debug(f"Bound options from environment: {sorted(values)}")
    return Options(**values)
