"""Envelope: Versioned, authenticated encryption of cookie payloads.

Security Note (Threat Model):
    Decoded envelope buffers are wiped once a call returns, but Python may
    keep transient immutable copies (bytes) until garbage collection.
    This is an accepted limitation of a pure Python runtime.
"""

from .config import (
    Encoding,
    EnvelopeConfig,
    SecretKey,
    load_secret_key,
    generate_secret_key,
)
from .crypto import (
    CURRENT_VERSION,
    CURRENT_VERSION_CHACHA20,
    LEGACY_VERSION,
    VERSION_PREFIX,
    encrypt,
    decrypt,
    version_config,
)
from .resolver import CurrentVersion, LegacyVersion, resolve_config

__all__ = [
    "Encoding",
    "EnvelopeConfig",
    "SecretKey",
    "load_secret_key",
    "generate_secret_key",
    "CURRENT_VERSION",
    "CURRENT_VERSION_CHACHA20",
    "LEGACY_VERSION",
    "VERSION_PREFIX",
    "encrypt",
    "decrypt",
    "version_config",
    "CurrentVersion",
    "LegacyVersion",
    "resolve_config",
]
