"""
Envelope Crypto Core: Version table, text encodings, and authenticated encryption.

Envelope layouts (header is authenticated as associated data):
- Current (v4): base64url([header 4B][salt 32B][nonce 12B][payload + tag 16B]), no padding
- Legacy (v3):  hex([header 4B][nonce 12B][payload + tag 16B])

Keys: HKDF-SHA256(secret_key, salt, "navigator-cookie" + header) → AEAD.

Security Note:
    Never log plaintext, envelope or key values.
    Every decryption failure raises the same InvalidMessage, whatever the cause.
"""
import os
import re
import base64
import binascii
import logging
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import CannotPerformOperation, InvalidEnvelope, InvalidMessage
from .config import KEY_LENGTH, Encoding, EnvelopeConfig, SecretKey

logger = logging.getLogger("navigator.cookie")

HEADER_LENGTH = 4
NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
SALT_SIZE = 32

MAGIC = b"\x31\x42"
CURRENT_VERSION = MAGIC + b"\x04\x00"
CURRENT_VERSION_CHACHA20 = MAGIC + b"\x04\x01"
LEGACY_VERSION = MAGIC + b"\x03\x00"

# First five characters of base64url(CURRENT_VERSION*).
VERSION_PREFIX = "MUIEA"

_KDF_INFO = b"navigator-cookie"
_INVALID_MESSAGE = "Invalid message authentication code"

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}

VERSIONS: dict[bytes, EnvelopeConfig] = {
    CURRENT_VERSION: EnvelopeConfig(
        version=CURRENT_VERSION,
        encoding=Encoding.BASE64URL,
        header_length=HEADER_LENGTH,
        cipher="aesgcm",
        salt_length=SALT_SIZE,
    ),
    CURRENT_VERSION_CHACHA20: EnvelopeConfig(
        version=CURRENT_VERSION_CHACHA20,
        encoding=Encoding.BASE64URL,
        header_length=HEADER_LENGTH,
        cipher="chacha20",
        salt_length=SALT_SIZE,
    ),
    LEGACY_VERSION: EnvelopeConfig(
        version=LEGACY_VERSION,
        encoding=Encoding.HEX,
        header_length=HEADER_LENGTH,
        cipher="aesgcm",
        salt_length=0,
    ),
}

_BASE64URL_RE = re.compile(r"[A-Za-z0-9_-]*")
_HEX_RE = re.compile(r"(?:[0-9a-f]{2})*")


# ---------------------------------------------------------------------------
# Version table
# ---------------------------------------------------------------------------

def version_config(header: Union[bytes, bytearray]) -> EnvelopeConfig:
    """Map a decoded envelope header to its EnvelopeConfig.

    Args:
        header: At least the first HEADER_LENGTH bytes of a decoded envelope.

    Raises:
        InvalidEnvelope: If the header is truncated or names no known version.
    """
    if len(header) < HEADER_LENGTH:
        raise InvalidEnvelope("Envelope header is truncated")
    config = VERSIONS.get(bytes(header[:HEADER_LENGTH]))
    if config is None:
        raise InvalidEnvelope("Unknown envelope version")
    return config


def current_version(cipher_backend: str = "aesgcm") -> bytes:
    """Return the header written by new envelopes for a cipher backend."""
    for version, config in VERSIONS.items():
        if config.encoding is Encoding.BASE64URL and config.cipher == cipher_backend:
            return version
    raise ValueError(f"Unsupported cipher backend: {cipher_backend}")


# ---------------------------------------------------------------------------
# Text encodings
# ---------------------------------------------------------------------------

def wipe(buf: bytearray) -> None:
    """Overwrite a mutable buffer with zeros, in place."""
    buf[:] = bytes(len(buf))


def b64url_encode(data: Union[bytes, bytearray]) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytearray:
    """Strictly decode unpadded, canonical base64url text.

    Raises:
        InvalidEnvelope: On foreign characters, padding, impossible length
            or non-canonical trailing bits.
    """
    if not _BASE64URL_RE.fullmatch(text) or len(text) % 4 == 1:
        raise InvalidEnvelope("Incorrect encoding")
    try:
        decoded = bytearray(
            base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
        )
    except (binascii.Error, ValueError) as err:
        raise InvalidEnvelope("Incorrect encoding") from err
    if b64url_encode(decoded) != text:
        wipe(decoded)
        raise InvalidEnvelope("Incorrect encoding")
    return decoded


def hex_decode(text: str) -> bytearray:
    """Strictly decode canonical hex text: lowercase, even length, no whitespace.

    Raises:
        InvalidEnvelope: If the text is not canonical hex.
    """
    if not _HEX_RE.fullmatch(text):
        raise InvalidEnvelope("Incorrect encoding")
    try:
        return bytearray(binascii.unhexlify(text))
    except (binascii.Error, ValueError) as err:
        raise InvalidEnvelope("Incorrect encoding") from err


def decode(text: str, encoding: Encoding) -> bytearray:
    if encoding is Encoding.BASE64URL:
        return b64url_decode(text)
    return hex_decode(text)


def encode(data: Union[bytes, bytearray], encoding: Encoding) -> str:
    if encoding is Encoding.BASE64URL:
        return b64url_encode(data)
    return bytes(data).hex()


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(key: SecretKey, salt: Union[bytes, None], header: bytes) -> bytes:
    """Derive the per-envelope AEAD key using HKDF-SHA256.

    Args:
        key: Caller-owned secret key (never modified).
        salt: Random per-envelope salt, or None for legacy envelopes.
        header: Envelope header, bound into the derivation context.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        info=_KDF_INFO + header,
    )
    return hkdf.derive(key.raw_bytes())


# ---------------------------------------------------------------------------
# Authenticated encryption
# ---------------------------------------------------------------------------

def encrypt(
    plaintext: bytes,
    key: SecretKey,
    version: bytes = CURRENT_VERSION,
) -> str:
    """Encrypt plaintext into a text envelope.

    Args:
        plaintext: Serialized value.
        key: Secret key.
        version: Envelope header to produce (default: current AES-GCM).

    Returns:
        Envelope text, base64url or hex according to the version.

    Raises:
        CannotPerformOperation: On any failure; nothing partial is returned.
    """
    try:
        config = version_config(version)
    except InvalidEnvelope as err:
        raise CannotPerformOperation(
            f"Unsupported envelope version: {bytes(version).hex()}"
        ) from err
    try:
        salt = os.urandom(config.salt_length) if config.salt_length else None
        cipher = _CIPHERS[config.cipher](derive_key(key, salt, config.version))
        nonce = os.urandom(NONCE_SIZE)
        ct = cipher.encrypt(nonce, plaintext, config.version)
    except (TypeError, ValueError, OverflowError, AttributeError) as err:
        raise CannotPerformOperation("Encryption failed") from err
    return encode(config.version + (salt or b"") + nonce + ct, config.encoding)


def decrypt(envelope: str, key: SecretKey, encoding: Encoding) -> bytes:
    """Authenticate and decrypt a text envelope.

    Args:
        envelope: Envelope text as produced by ``encrypt``.
        key: Secret key.
        encoding: Text encoding resolved for this envelope.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        InvalidMessage: On bad encoding, unknown header, truncation,
            tampering or wrong key. The message never tells them apart.
    """
    try:
        message = decode(envelope, encoding)
    except InvalidEnvelope as err:
        raise InvalidMessage(_INVALID_MESSAGE) from err
    try:
        config = version_config(message)
        if config.encoding is not encoding:
            raise InvalidMessage(_INVALID_MESSAGE)
        offset = config.header_length + config.salt_length
        if len(message) < offset + NONCE_SIZE + TAG_SIZE:
            raise InvalidMessage(_INVALID_MESSAGE)
        header = bytes(message[:config.header_length])
        salt = bytes(message[config.header_length:offset]) or None
        nonce = bytes(message[offset:offset + NONCE_SIZE])
        ct = bytes(message[offset + NONCE_SIZE:])
        cipher = _CIPHERS[config.cipher](derive_key(key, salt, header))
        return cipher.decrypt(nonce, ct, header)
    except (InvalidEnvelope, InvalidTag) as err:
        raise InvalidMessage(_INVALID_MESSAGE) from err
    finally:
        wipe(message)
