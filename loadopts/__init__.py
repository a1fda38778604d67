"""loadopts - options model for load test runs.

This package provides:
- Nullable scalar wrappers that tell "unset" apart from "zero"
- The Options aggregate and its whole-value merge
- TLS cipher suite, version range and client certificate codecs
- Stage list parsing and environment variable binding
"""

from .duration import Duration
from .env import ENV_PREFIX, EnvOptions, options_from_env
from .errors import (
    CertificateError,
    OptionsBindingError,
    OptionsDecodeError,
    OptionsError,
    StageParseError,
)
from .nullable import NullBool, NullDuration, NullInt, NullString
from .options import Options, merge
from .stages import Stage, parse_stages
from .thresholds import Threshold, Thresholds
from .tls import (
    SUPPORTED_TLS_CIPHER_SUITES,
    SUPPORTED_TLS_VERSIONS,
    TLSAuth,
    TLSAuthFields,
    TLSCertificate,
    TLSCipherSuites,
    TLSVersion,
    TLSVersions,
    configure_context,
)
from .version import __version__

__all__ = [
    'Duration',
    'NullBool',
    'NullInt',
    'NullString',
    'NullDuration',
    'Options',
    'merge',
    'Stage',
    'parse_stages',
    'Threshold',
    'Thresholds',
    'TLSAuth',
    'TLSAuthFields',
    'TLSCertificate',
    'TLSCipherSuites',
    'TLSVersion',
    'TLSVersions',
    'SUPPORTED_TLS_CIPHER_SUITES',
    'SUPPORTED_TLS_VERSIONS',
    'configure_context',
    'ENV_PREFIX',
    'EnvOptions',
    'options_from_env',
    'OptionsError',
    'OptionsDecodeError',
    'OptionsBindingError',
    'StageParseError',
    'CertificateError',
    '__version__',
]

# Initialize package-level logger
import logging
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
