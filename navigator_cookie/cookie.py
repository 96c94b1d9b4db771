"""
EncryptedCookie: Store structured values in tamper-evident, encrypted cookies.

Provides the public API:
- ``store(name, value, ...)``: serialize, encrypt and hand to the transport
- ``fetch(name, default)``: read back a value, or ``default`` when the cookie
  is missing, tampered, forged, undecodable or written under an unknown version
- ``delete(name, ...)``: expire a cookie through the transport

Writes fail loudly; reads fail silently. The only read error that reaches the
caller is InvalidType, raised when the transport hands back something that is
not text.

Security Note:
    Never log plaintext or envelope values. Rejections are logged with one
    message that does not name the cause.
"""
import re
import logging
from typing import Any, Optional

from .conf import COOKIE_DEFAULT_PATH, CookieConfig, CookieOptions
from .envelope.config import SecretKey
from .envelope.crypto import current_version, decrypt, encrypt
from .envelope.resolver import resolve_config
from .exceptions import (
    InvalidEnvelope,
    InvalidMessage,
    InvalidType,
    SerializationError,
)
from .serializers import BaseSerializer, JSONSerializer
from .transport import AbstractTransport

logger = logging.getLogger("navigator.cookie")

# RFC 6265 cookie-name: a token, no separators, no controls.
_COOKIE_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class _Absent:
    """Marker for "no authentic value stored"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()


class EncryptedCookie:
    """Encrypted cookie codec bound to a secret key and a transport.

    Args:
        key: Secret key shared by every store and fetch.
        transport: Channel carrying envelopes to and from the client.
        serializer: Value serializer (default: JSON through orjson).
        cipher_backend: AEAD for new envelopes, ``aesgcm`` or ``chacha20``.
            Existing envelopes decode whatever backend wrote them.
        options: Default transport attributes for ``store``.
    """

    def __init__(
        self,
        key: SecretKey,
        transport: AbstractTransport,
        serializer: Optional[BaseSerializer] = None,
        cipher_backend: str = "aesgcm",
        options: Optional[CookieOptions] = None,
    ):
        if not isinstance(key, SecretKey):
            raise TypeError("key must be a SecretKey")
        self._key = key
        self._transport = transport
        self._serializer = serializer or JSONSerializer()
        self._version = current_version(cipher_backend)
        self._options = options or CookieOptions()

    def __repr__(self) -> str:
        return (
            f"<EncryptedCookie key='private' "
            f"transport={self._transport.name!r} "
            f"serializer={self._serializer.name!r}>"
        )

    @classmethod
    def from_config(
        cls,
        config: CookieConfig,
        transport: AbstractTransport,
        serializer: Optional[BaseSerializer] = None,
    ) -> "EncryptedCookie":
        return cls(
            key=config.secret_key,
            transport=transport,
            serializer=serializer,
            cipher_backend=config.cipher_backend,
            options=config.options,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_name(self, name: str) -> None:
        """Validate a cookie name.

        Raises:
            ValueError: If name is empty or holds separators/controls.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Cookie name cannot be empty")
        if not _COOKIE_NAME_RE.fullmatch(name):
            raise ValueError(f"Invalid cookie name: {name!r}")

    def _build_options(
        self, base: Optional[CookieOptions] = None, **overrides: Any
    ) -> CookieOptions:
        if base is None:
            base = self._options
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return base
        return base.model_copy(update=values)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def store(
        self,
        name: str,
        value: Any,
        expire: Optional[int] = None,
        path: Optional[str] = None,
        domain: Optional[str] = None,
        secure: Optional[bool] = None,
        httponly: Optional[bool] = None,
        options: Optional[CookieOptions] = None,
    ) -> bool:
        """Encrypt a value and hand it to the transport.

        Keyword attributes override ``options``; attributes not given fall
        back to ``options`` and then to the codec defaults (session cookie,
        path "/", secure, http-only).

        Args:
            name: Cookie name.
            value: Value to protect.

        Returns:
            Whatever success flag the transport returns.

        Raises:
            ValueError: If the name is invalid.
            SerializationError: If the value cannot be serialized.
            CannotPerformOperation: If encryption fails.
        """
        self._validate_name(name)
        options = self._build_options(
            options,
            expire=expire,
            path=path,
            domain=domain,
            secure=secure,
            httponly=httponly,
        )
        plaintext = self._serializer.dumps(value)
        envelope = encrypt(plaintext, self._key, self._version)
        stored = self._transport.set(name, envelope, options)
        logger.debug(
            "Cookie store: name=%s version=%s", name, self._version.hex()
        )
        return stored

    def fetch(self, name: str, default: Any = ABSENT) -> Any:
        """Decrypt and return a stored value.

        Args:
            name: Cookie name.
            default: Returned when nothing authentic is stored.

        Returns:
            The stored value, or ``default``.

        Raises:
            InvalidType: If the transport returned a non-text value.
        """
        stored = self._transport.get(name)
        if stored is None:
            return default
        if not isinstance(stored, str):
            raise InvalidType("Cookie value is not a string")
        try:
            resolved = resolve_config(stored)
            plaintext = decrypt(stored, self._key, resolved.encoding)
            return self._serializer.loads(plaintext)
        except (InvalidEnvelope, InvalidMessage, SerializationError):
            logger.debug("Rejected cookie %s", name)
            return default

    def delete(
        self,
        name: str,
        path: str = COOKIE_DEFAULT_PATH,
        domain: str = '',
    ) -> bool:
        """Expire a cookie through the transport."""
        self._validate_name(name)
        return self._transport.delete(
            name,
            self._options.model_copy(update={"path": path, "domain": domain}),
        )
