"""
Envelope Resolver: Detect which protocol version produced a stored envelope.

Current envelopes start with a visible ASCII signature and are base64url
encoded end to end; legacy envelopes are plain hex, and their first 8
characters hold the hex-encoded header.
"""
from typing import Literal, Union

from cryptography.hazmat.primitives import constant_time
from pydantic import BaseModel

from ..exceptions import InvalidEnvelope
from .config import Encoding, EnvelopeConfig
from .crypto import (
    HEADER_LENGTH,
    VERSION_PREFIX,
    b64url_decode,
    hex_decode,
    version_config,
    wipe,
)

# Shortest input that can hold a hex-encoded header.
MIN_ENVELOPE_LENGTH = HEADER_LENGTH * 2

_PREFIX_BYTES = VERSION_PREFIX.encode("ascii")


class CurrentVersion(BaseModel):
    """Envelope carrying the ASCII version signature."""

    kind: Literal["current"] = "current"
    config: EnvelopeConfig

    model_config = {"frozen": True}

    @property
    def encoding(self) -> Encoding:
        return self.config.encoding


class LegacyVersion(BaseModel):
    """Envelope written before the signature existed (hex header)."""

    kind: Literal["legacy"] = "legacy"
    config: EnvelopeConfig

    model_config = {"frozen": True}

    @property
    def encoding(self) -> Encoding:
        return self.config.encoding


ResolvedVersion = Union[CurrentVersion, LegacyVersion]


def resolve_config(stored: str) -> ResolvedVersion:
    """Resolve the version and decoding parameters of a stored envelope.

    Args:
        stored: Raw envelope text received from the transport.

    Returns:
        CurrentVersion or LegacyVersion wrapping the EnvelopeConfig.

    Raises:
        InvalidEnvelope: If the input is too short, badly encoded, or its
            header is not a known version for the encoding it arrived in.
    """
    # This doesn't even have a header.
    if len(stored) < MIN_ENVELOPE_LENGTH:
        raise InvalidEnvelope("Envelope is too short")
    prefix = stored[:len(VERSION_PREFIX)].encode("utf-8", "surrogatepass")
    if constant_time.bytes_eq(prefix, _PREFIX_BYTES):
        decoded = b64url_decode(stored)
        try:
            config = version_config(decoded)
        finally:
            wipe(decoded)
        if config.encoding is not Encoding.BASE64URL:
            raise InvalidEnvelope("Signed envelope names a hex version")
        return CurrentVersion(config=config)
    header = hex_decode(stored[:MIN_ENVELOPE_LENGTH])
    try:
        config = version_config(header)
    finally:
        wipe(header)
    if config.encoding is not Encoding.HEX:
        raise InvalidEnvelope("Legacy envelope names a base64url version")
    return LegacyVersion(config=config)
