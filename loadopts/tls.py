"""TLS option codecs: cipher suites, version ranges and client auth bundles."""
import logging
import os
import ssl
import tempfile
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple, Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from .errors import CertificateError, OptionsDecodeError, OptionsError

if TYPE_CHECKING:
    from .options import Options

logger = logging.getLogger(__name__)


class CipherSuite(NamedTuple):
    name: str
    id: int
    openssl_name: str


_CIPHER_SUITES: List[CipherSuite] = [
    CipherSuite("TLS_RSA_WITH_RC4_128_SHA", 0x0005, "RC4-SHA"),
    CipherSuite("TLS_RSA_WITH_3DES_EDE_CBC_SHA", 0x000A, "DES-CBC3-SHA"),
    CipherSuite("TLS_RSA_WITH_AES_128_CBC_SHA", 0x002F, "AES128-SHA"),
    CipherSuite("TLS_RSA_WITH_AES_256_CBC_SHA", 0x0035, "AES256-SHA"),
    CipherSuite("TLS_RSA_WITH_AES_128_CBC_SHA256", 0x003C, "AES128-SHA256"),
    CipherSuite("TLS_RSA_WITH_AES_128_GCM_SHA256", 0x009C, "AES128-GCM-SHA256"),
    CipherSuite("TLS_RSA_WITH_AES_256_GCM_SHA384", 0x009D, "AES256-GCM-SHA384"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_RC4_128_SHA", 0xC007, "ECDHE-ECDSA-RC4-SHA"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA", 0xC009, "ECDHE-ECDSA-AES128-SHA"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA", 0xC00A, "ECDHE-ECDSA-AES256-SHA"),
    CipherSuite("TLS_ECDHE_RSA_WITH_RC4_128_SHA", 0xC011, "ECDHE-RSA-RC4-SHA"),
    CipherSuite("TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA", 0xC012, "ECDHE-RSA-DES-CBC3-SHA"),
    CipherSuite("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA", 0xC013, "ECDHE-RSA-AES128-SHA"),
    CipherSuite("TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA", 0xC014, "ECDHE-RSA-AES256-SHA"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256", 0xC023, "ECDHE-ECDSA-AES128-SHA256"),
    CipherSuite("TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256", 0xC027, "ECDHE-RSA-AES128-SHA256"),
    CipherSuite("TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256", 0xC02F, "ECDHE-RSA-AES128-GCM-SHA256"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256", 0xC02B, "ECDHE-ECDSA-AES128-GCM-SHA256"),
    CipherSuite("TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384", 0xC030, "ECDHE-RSA-AES256-GCM-SHA384"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384", 0xC02C, "ECDHE-ECDSA-AES256-GCM-SHA384"),
    CipherSuite("TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305", 0xCCA8, "ECDHE-RSA-CHACHA20-POLY1305"),
    CipherSuite("TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305", 0xCCA9, "ECDHE-ECDSA-CHACHA20-POLY1305"),
]

# Name -> id, and the reverse lookups, built once at import
SUPPORTED_TLS_CIPHER_SUITES: Dict[str, int] = {suite.name: suite.id for suite in _CIPHER_SUITES}
_CIPHER_SUITES_BY_ID: Dict[int, CipherSuite] = {suite.id: suite for suite in _CIPHER_SUITES}


class TLSCipherSuites(list):
    """Ordered cipher suite ids; encodes as canonical suite names."""

    def names(self) -> List[str]:
        names = []
        for suite_id in self:
            suite = _CIPHER_SUITES_BY_ID.get(suite_id)
            if suite is None:
                raise ValueError(f"unsupported cipher suite: {suite_id:#06x}")
            names.append(suite.name)
        return names

    def openssl_cipher_string(self) -> str:
        """Join the suites into a cipher string for ``SSLContext.set_ciphers``."""
        return ":".join(_CIPHER_SUITES_BY_ID[suite_id].openssl_name for suite_id in self)

    def to_json(self) -> List[str]:
        return self.names()

    @classmethod
    def from_json(cls, raw: Any) -> "TLSCipherSuites":
        if not isinstance(raw, list):
            raise OptionsDecodeError(
                f"expected a list of cipher suite names, got {raw!r}", field="tlsCipherSuites"
            )
        suites = cls()
        for name in raw:
            suite_id = SUPPORTED_TLS_CIPHER_SUITES.get(name) if isinstance(name, str) else None
            if suite_id is None:
                raise OptionsDecodeError(f"unsupported cipher suite: {name}", field="tlsCipherSuites")
            suites.append(suite_id)
        return suites


class TLSVersion(IntEnum):
    """Protocol versions, valued by their wire version number."""
    SSL_3_0 = 0x0300
    TLS_1_0 = 0x0301
    TLS_1_1 = 0x0302
    TLS_1_2 = 0x0303

    @property
    def label(self) -> str:
        return _TLS_VERSION_NAMES[self]

    @property
    def ssl_version(self) -> ssl.TLSVersion:
        return ssl.TLSVersion(int(self))

    @classmethod
    def from_name(cls, name: str) -> "TLSVersion":
        try:
            return SUPPORTED_TLS_VERSIONS[name]
        except KeyError:
            raise OptionsDecodeError(f"unsupported TLS version: {name}", field="tlsVersion") from None


SUPPORTED_TLS_VERSIONS: Dict[str, TLSVersion] = {
    "ssl3.0": TLSVersion.SSL_3_0,
    "tls1.0": TLSVersion.TLS_1_0,
    "tls1.1": TLSVersion.TLS_1_1,
    "tls1.2": TLSVersion.TLS_1_2,
}
_TLS_VERSION_NAMES: Dict[TLSVersion, str] = {v: k for k, v in SUPPORTED_TLS_VERSIONS.items()}


def _version_from_json(raw: Any) -> Optional[TLSVersion]:
    if not isinstance(raw, str):
        raise OptionsDecodeError(f"expected a TLS version name, got {raw!r}", field="tlsVersion")
    if raw == "":
        return None
    return TLSVersion.from_name(raw)


@dataclass(frozen=True)
class TLSVersions:
    """Inclusive range of negotiable TLS versions.

    A zero-valued range (both ends ``None``) leaves the library default in
    place.
    """
    min: Optional[TLSVersion] = None
    max: Optional[TLSVersion] = None

    @property
    def is_zero(self) -> bool:
        return self.min is None and self.max is None

    def to_json(self) -> Dict[str, str]:
        return {
            "min": self.min.label if self.min is not None else "",
            "max": self.max.label if self.max is not None else "",
        }

    @classmethod
    def from_json(cls, raw: Any) -> "TLSVersions":
        """Decode ``{"min": .., "max": ..}``, a single version name, or ``""``."""
        if isinstance(raw, dict):
            return cls(min=_version_from_json(raw.get("min", "")), max=_version_from_json(raw.get("max", "")))
        version = _version_from_json(raw)
        return cls(min=version, max=version)


@dataclass(frozen=True)
class TLSCertificate:
    """A parsed client certificate chain and its private key."""
    certificate: x509.Certificate
    chain: List[x509.Certificate]
    private_key: Any

    def to_pem(self) -> bytes:
        """Key followed by the certificate chain, as one PEM bundle."""
        data = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )
        for cert in self.chain:
            data += cert.public_bytes(serialization.Encoding.PEM)
        return data

    def load_into(self, context: ssl.SSLContext) -> None:
        """Install this certificate as the client certificate of ``context``."""
        # load_cert_chain only reads from files
        fd, path = tempfile.mkstemp(suffix=".pem")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(self.to_pem())
            context.load_cert_chain(path)
        finally:
            os.unlink(path)


_SUPPORTED_KEY_TYPES = (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey)


def _public_der(public_key: Any) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )


def parse_key_pair(cert_pem: str, key_pem: str) -> TLSCertificate:
    """Parse a PEM certificate chain and private key and check they belong together."""
    try:
        chain = x509.load_pem_x509_certificates(cert_pem.encode())
    except ValueError as e:
        raise CertificateError(f"invalid certificate PEM: {e}") from e

    try:
        private_key = serialization.load_pem_private_key(key_pem.encode(), password=None)
    except (ValueError, TypeError) as e:
        raise CertificateError(f"invalid private key PEM: {e}") from e
    except UnsupportedAlgorithm as e:
        raise CertificateError(f"unsupported private key algorithm: {e}") from e

    if not isinstance(private_key, _SUPPORTED_KEY_TYPES):
        raise CertificateError(f"unsupported private key type: {type(private_key).__name__}")

    leaf = chain[0]
    if _public_der(leaf.public_key()) != _public_der(private_key.public_key()):
        raise CertificateError("private key does not match certificate public key")

    return TLSCertificate(certificate=leaf, chain=chain, private_key=private_key)


@dataclass(frozen=True)
class TLSAuthFields:
    """Serialisable part of a TLS auth entry."""
    domains: List[str] = field(default_factory=list)
    cert: str = ""
    key: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"domains": list(self.domains), "cert": self.cert, "key": self.key}

    @classmethod
    def from_dict(cls, data: Any) -> "TLSAuthFields":
        if not isinstance(data, dict):
            raise OptionsDecodeError(f"expected a TLS auth object, got {data!r}", field="tlsAuth")
        domains = data.get("domains") or []
        if not isinstance(domains, list) or not all(isinstance(d, str) for d in domains):
            raise OptionsDecodeError(f"domains must be a list of strings, got {domains!r}", field="tlsAuth")
        cert = data.get("cert") or ""
        key = data.get("key") or ""
        if not isinstance(cert, str) or not isinstance(key, str):
            raise OptionsDecodeError("cert and key must be PEM strings", field="tlsAuth")
        return cls(domains=domains, cert=cert, key=key)


class TLSAuth:
    """A client certificate bundle and the domains it is offered to."""

    def __init__(self, fields: TLSAuthFields):
        self.fields = fields
        self._certificate: Optional[TLSCertificate] = None
        self._lock = threading.Lock()

    @property
    def domains(self) -> List[str]:
        return self.fields.domains

    def certificate(self) -> TLSCertificate:
        """Parse the bundle on first use and return the cached result.

        Raises:
            CertificateError: if the PEM data is malformed, the key does not
                match the certificate, or the key algorithm is unsupported.
                Failures are not cached.
        """
        with self._lock:
            if self._certificate is None:
                try:
                    self._certificate = parse_key_pair(self.fields.cert, self.fields.key)
                except CertificateError as e:
                    logger.error(f"Failed to load TLS auth certificate for {self.fields.domains}: {e}")
                    raise
                logger.info(f"Loaded TLS auth certificate for {self.fields.domains}: "
                            f"{self._certificate.certificate.subject.rfc4514_string()}")
            return self._certificate

    def matches(self, hostname: str) -> bool:
        """Check whether any domain pattern covers ``hostname``.

        ``example.com`` matches only itself; ``*.example.com`` matches any
        name ending in ``.example.com`` but not ``example.com``.
        """
        for pattern in self.fields.domains:
            if pattern == hostname:
                return True
            if pattern.startswith("*.") and hostname.endswith(pattern[1:]):
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return self.fields.to_dict()

    @classmethod
    def from_dict(cls, data: Any) -> "TLSAuth":
        return cls(TLSAuthFields.from_dict(data))

    def __getstate__(self) -> Dict[str, Any]:
        # Copies and pickles carry only the PEM fields and re-parse on demand
        return {"fields": self.fields}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self.__init__(state["fields"])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TLSAuth):
            return NotImplemented
        return self.fields == other.fields

    def __repr__(self) -> str:
        return f"TLSAuth(domains={self.fields.domains!r})"


def configure_context(
    context: ssl.SSLContext,
    options: "Options",
    hostname: Optional[str] = None
) -> ssl.SSLContext:
    """Apply the TLS-related options to a client ``SSLContext``.

    Args:
        context: Context to configure in place
        options: Effective merged options
        hostname: Target host, used to pick a client certificate

    Returns:
        The same context, for chaining

    Raises:
        OptionsError: if OpenSSL offers none of the configured cipher suites
        CertificateError: if the matching client certificate cannot be parsed
    """
    versions = options.tls_version
    if versions is not None:
        if versions.min is not None:
            context.minimum_version = versions.min.ssl_version
        if versions.max is not None:
            context.maximum_version = versions.max.ssl_version

    if options.tls_cipher_suites:
        try:
            context.set_ciphers(options.tls_cipher_suites.openssl_cipher_string())
        except ssl.SSLError as e:
            raise OptionsError(
                f"no usable cipher suite in {options.tls_cipher_suites.names()}: {e}"
            ) from e

    if options.insecure_skip_tls_verify.get(False):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if hostname is not None:
        auth = options.tls_auth_for(hostname)
        if auth is not None:
            logger.debug(f"Using TLS auth {auth!r} for {hostname}")
            auth.certificate().load_into(context)

    return context
