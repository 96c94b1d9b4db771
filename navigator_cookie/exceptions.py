"""Navigator Cookie exceptions.

Read-path failures (``InvalidEnvelope``, ``InvalidMessage``) are absorbed by
``EncryptedCookie.fetch``; everything else reaches the caller.
"""


class CookieError(Exception):
    """Base class for all Navigator Cookie errors."""


class InvalidEnvelope(CookieError):
    """Stored container has an unknown header or a broken text encoding."""


class InvalidMessage(CookieError):
    """Envelope could not be authenticated or decrypted."""


class InvalidType(CookieError, TypeError):
    """Transport returned a value of the wrong type."""


class CannotPerformOperation(CookieError, RuntimeError):
    """Encryption failed; nothing was stored."""


class SerializationError(CookieError, ValueError):
    """Value could not be converted to or from bytes."""
