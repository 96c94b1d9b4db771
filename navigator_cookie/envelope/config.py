"""
Envelope Configuration: Secret key handling and per-version envelope settings.

Reads the cookie secret key from environment variables in the format:
    COOKIE_SECRET_KEY = <base64-encoded 32-byte key>
    COOKIE_CIPHER_BACKEND = aesgcm | chacha20

Security Note:
    Never log key material. Only log envelope versions and cookie names.
"""
import os
import base64
import binascii
import secrets
import logging
from enum import Enum

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.cookie")

KEY_LENGTH = 32  # AES-256 / ChaCha20
SUPPORTED_CIPHERS = ("aesgcm", "chacha20")


class Encoding(str, Enum):
    """Text encoding wrapping the binary envelope."""

    BASE64URL = "base64url"
    HEX = "hex"


class EnvelopeConfig(BaseModel):
    """Decoding parameters for one envelope version.

    Derived from the envelope header only, never from process settings.
    """

    version: bytes
    encoding: Encoding
    header_length: int = Field(default=4, ge=4)
    cipher: str = Field(default="aesgcm")
    salt_length: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @field_validator("cipher")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher is supported."""
        if v not in SUPPORTED_CIPHERS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v


class SecretKey:
    """Opaque handle around the raw 32-byte cookie key.

    The key material is kept out of ``repr()`` and is never copied into
    an envelope.
    """

    __slots__ = ("_material",)

    def __init__(self, material: bytes):
        if not isinstance(material, (bytes, bytearray)):
            raise TypeError("Secret key material must be bytes")
        if len(material) != KEY_LENGTH:
            raise ValueError(
                f"Secret key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(material)}"
            )
        object.__setattr__(self, "_material", bytes(material))

    def __setattr__(self, name, value):
        raise AttributeError("SecretKey is immutable")

    def __repr__(self) -> str:
        return "<SecretKey: private>"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("SecretKey cannot be pickled")

    def raw_bytes(self) -> bytes:
        """Return the raw key material, for key derivation only."""
        return self._material

    @classmethod
    def from_base64(cls, value: str) -> "SecretKey":
        """Build a key from its base64 text form.

        Raises:
            ValueError: If the text is not base64 or not 32 bytes long.
        """
        try:
            material = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as err:
            raise ValueError("Secret key is not valid base64") from err
        return cls(material)

    @classmethod
    def generate(cls) -> "SecretKey":
        return cls(secrets.token_bytes(KEY_LENGTH))


def load_secret_key() -> SecretKey:
    """Load the cookie secret key from the COOKIE_SECRET_KEY env var.

    Returns:
        SecretKey built from the decoded variable.

    Raises:
        RuntimeError: If COOKIE_SECRET_KEY is not set.
        ValueError: If the key does not decode to exactly 32 bytes.
    """
    raw = os.environ.get("COOKIE_SECRET_KEY")
    if not raw:
        raise RuntimeError(
            "No cookie secret key found in environment. "
            "Set COOKIE_SECRET_KEY=<base64-encoded-32-byte-key>"
        )
    key = SecretKey.from_base64(raw)
    logger.debug("Loaded cookie secret key from environment")
    return key


def get_cipher_backend() -> str:
    """Read the cipher used for new envelopes from COOKIE_CIPHER_BACKEND.

    Raises:
        ValueError: If the backend is not supported.
    """
    backend = os.environ.get("COOKIE_CIPHER_BACKEND", "aesgcm").lower()
    if backend not in SUPPORTED_CIPHERS:
        raise ValueError(f"Unsupported cipher backend: {backend}")
    return backend


def generate_secret_key() -> str:
    """Generate a random 32-byte secret key and return as base64 string.

    This is a utility for operators to generate new keys.

    Returns:
        Base64-encoded 32-byte key string.
    """
    return base64.b64encode(secrets.token_bytes(KEY_LENGTH)).decode("ascii")
