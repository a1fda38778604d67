"""The options aggregate and its merge engine.

An ``Options`` value is built from one configuration source at a time
(defaults, a file or script payload, the environment) and sources are
combined with ``apply``. Every field is replaced as a whole: a later
source with a non-empty stage list or a hosts mapping discards the earlier
one instead of merging into it.
"""
import ipaddress
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, Union

import yaml

from .errors import OptionsDecodeError
from .nullable import NullBool, NullDuration, NullInt, Nullable, NullString
from .stages import Stage
from .thresholds import Thresholds
from .tls import TLSAuth, TLSCipherSuites, TLSVersions

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# (attribute, JSON key, wrapper type) for every nullable scalar
SCALAR_FIELDS: List[Tuple[str, str, Type[Nullable]]] = [
    ("paused", "paused", NullBool),
    ("vus", "vus", NullInt),
    ("vus_max", "vusMax", NullInt),
    ("duration", "duration", NullDuration),
    ("iterations", "iterations", NullInt),
    ("linger", "linger", NullBool),
    ("max_redirects", "maxRedirects", NullInt),
    ("insecure_skip_tls_verify", "insecureSkipTLSVerify", NullBool),
    ("no_connection_reuse", "noConnectionReuse", NullBool),
    ("user_agent", "userAgent", NullString),
    ("throw", "throw", NullBool),
    ("rps", "rps", NullInt),
    ("no_usage_report", "noUsageReport", NullBool),
]

_STRUCTURED_KEYS = {
    "stages", "tlsCipherSuites", "tlsVersion", "tlsAuth", "thresholds", "hosts", "ext",
}
KNOWN_KEYS = {key for _, key, _ in SCALAR_FIELDS} | _STRUCTURED_KEYS


@dataclass(frozen=True)
class Options:
    """Every tunable parameter of a test run.

    Scalars are nullable wrappers; structured fields are ``None`` when not
    provided. Consumers must treat absent values as "use your own default".
    """
    paused: NullBool = field(default_factory=NullBool)
    vus: NullInt = field(default_factory=NullInt)
    vus_max: NullInt = field(default_factory=NullInt)
    duration: NullDuration = field(default_factory=NullDuration)
    iterations: NullInt = field(default_factory=NullInt)
    stages: Optional[List[Stage]] = None
    linger: NullBool = field(default_factory=NullBool)

    max_redirects: NullInt = field(default_factory=NullInt)
    insecure_skip_tls_verify: NullBool = field(default_factory=NullBool)
    tls_cipher_suites: Optional[TLSCipherSuites] = None
    tls_version: Optional[TLSVersions] = None
    tls_auth: Optional[List[TLSAuth]] = None
    no_connection_reuse: NullBool = field(default_factory=NullBool)
    user_agent: NullString = field(default_factory=NullString)
    throw: NullBool = field(default_factory=NullBool)
    rps: NullInt = field(default_factory=NullInt)
    no_usage_report: NullBool = field(default_factory=NullBool)

    thresholds: Optional[Dict[str, Thresholds]] = None
    hosts: Optional[Dict[str, IPAddress]] = None
    external: Optional[Dict[str, Any]] = None

    def apply(self, opts: "Options") -> "Options":
        """Return a copy of self with every field that ``opts`` provides replaced.

        Args:
            opts: The overriding options

        Returns:
            A new Options; neither operand is modified
        """
        changes: Dict[str, Any] = {}
        for attr, _, _ in SCALAR_FIELDS:
            value = getattr(opts, attr)
            if value.present:
                changes[attr] = value

        if opts.stages:
            changes["stages"] = opts.stages
        if opts.tls_auth:
            changes["tls_auth"] = opts.tls_auth
        if opts.tls_cipher_suites is not None:
            changes["tls_cipher_suites"] = opts.tls_cipher_suites
        if opts.tls_version is not None:
            changes["tls_version"] = opts.tls_version
        if opts.thresholds is not None:
            changes["thresholds"] = opts.thresholds
        if opts.hosts is not None:
            changes["hosts"] = opts.hosts
        if opts.external is not None:
            changes["external"] = opts.external

        if changes:
            logger.debug(f"Applying options: {sorted(changes)}")
        return replace(self, **changes)

    def tls_auth_for(self, hostname: str) -> Optional[TLSAuth]:
        """Return the first TLS auth entry whose domains cover ``hostname``."""
        for auth in self.tls_auth or []:
            if auth.matches(hostname):
                return auth
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary. Absent fields are omitted."""
        data: Dict[str, Any] = {}
        for attr, key, _ in SCALAR_FIELDS:
            value = getattr(self, attr)
            if value.present:
                data[key] = value.to_json()

        if self.stages is not None:
            data["stages"] = [stage.to_dict() for stage in self.stages]
        if self.tls_cipher_suites is not None:
            data["tlsCipherSuites"] = self.tls_cipher_suites.to_json()
        if self.tls_version is not None:
            data["tlsVersion"] = self.tls_version.to_json()
        if self.tls_auth is not None:
            data["tlsAuth"] = [auth.to_dict() for auth in self.tls_auth]
        if self.thresholds is not None:
            data["thresholds"] = {name: t.to_json() for name, t in self.thresholds.items()}
        if self.hosts is not None:
            data["hosts"] = {name: str(ip) for name, ip in self.hosts.items()}
        if self.external is not None:
            data["ext"] = self.external
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["Options"] = None) -> "Options":
        """Decode a payload on top of ``base``.

        Keys missing from ``data`` keep the value from ``base``. Decoding is
        all-or-nothing: on error ``base`` is untouched and nothing is returned.

        Raises:
            OptionsDecodeError: if any field holds an invalid value
        """
        if not isinstance(data, dict):
            raise OptionsDecodeError(f"expected an options object, got {type(data).__name__}")

        changes: Dict[str, Any] = {}
        for attr, key, kind in SCALAR_FIELDS:
            if key in data:
                changes[attr] = kind.from_json(data[key], field=key)

        if "stages" in data:
            changes["stages"] = _decode_list(data["stages"], "stages", Stage.from_dict)
        if "tlsCipherSuites" in data:
            changes["tls_cipher_suites"] = _decode_optional(data["tlsCipherSuites"], TLSCipherSuites.from_json)
        if "tlsVersion" in data:
            changes["tls_version"] = _decode_optional(data["tlsVersion"], TLSVersions.from_json)
        if "tlsAuth" in data:
            changes["tls_auth"] = _decode_list(data["tlsAuth"], "tlsAuth", TLSAuth.from_dict)
        if "thresholds" in data:
            changes["thresholds"] = _decode_thresholds(data["thresholds"])
        if "hosts" in data:
            changes["hosts"] = _decode_hosts(data["hosts"])
        if "ext" in data:
            external = data["ext"]
            if external is not None and not isinstance(external, dict):
                raise OptionsDecodeError(f"expected an object, got {external!r}", field="ext")
            changes["external"] = external

        unknown = set(data) - KNOWN_KEYS
        if unknown:
            logger.debug(f"Ignoring unknown option keys: {sorted(unknown)}")

        return replace(base if base is not None else cls(), **changes)

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_json(cls, text: Union[str, bytes], base: Optional["Options"] = None) -> "Options":
        """Decode a JSON document on top of ``base``."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise OptionsDecodeError(f"malformed JSON: {e}") from e
        return cls.from_dict(data, base=base)

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional["Options"] = None) -> "Options":
        """Load options from a JSON file, or YAML for ``.yml``/``.yaml`` files."""
        path = Path(path)
        content = path.read_text()
        if path.suffix.lower() in (".yml", ".yaml"):
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise OptionsDecodeError(f"malformed YAML in {path}: {e}") from e
            if data is None:
                data = {}
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise OptionsDecodeError(f"malformed JSON in {path}: {e}") from e

        logger.debug(f"Loaded options file {path}")
        return cls.from_dict(data, base=base)


def merge(*layers: Options) -> Options:
    """Fold option layers left to right, later layers winning field by field."""
    result = Options()
    for layer in layers:
        result = result.apply(layer)
    return result


def _decode_optional(raw: Any, decode):
    return None if raw is None else decode(raw)


def _decode_list(raw: Any, key: str, decode) -> Optional[List[Any]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise OptionsDecodeError(f"expected a list, got {raw!r}", field=key)
    return [decode(item) for item in raw]


def _decode_thresholds(raw: Any) -> Optional[Dict[str, Thresholds]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise OptionsDecodeError(f"expected an object, got {raw!r}", field="thresholds")
    return {metric: Thresholds.from_json(value, metric) for metric, value in raw.items()}


def _decode_hosts(raw: Any) -> Optional[Dict[str, IPAddress]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise OptionsDecodeError(f"expected an object, got {raw!r}", field="hosts")
    hosts = {}
    for name, address in raw.items():
        try:
            if not isinstance(address, str):
                raise ValueError(address)
            hosts[name] = ipaddress.ip_address(address)
        except ValueError as e:
            raise OptionsDecodeError(f"invalid IP address {address!r} for {name}", field="hosts") from e
    return hosts


__all__ = ["Options", "merge", "SCALAR_FIELDS", "KNOWN_KEYS"]
