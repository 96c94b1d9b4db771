"""Navigator Cookie.

Encrypted, tamper-evident cookies for structured values.
"""
from .version import (
    __title__,
    __description__,
    __version__,
    __author__,
    __author_email__,
    __license__,
)
from .conf import CookieConfig, CookieOptions
from .cookie import ABSENT, EncryptedCookie
from .envelope import SecretKey, generate_secret_key, load_secret_key
from .exceptions import (
    CookieError,
    InvalidEnvelope,
    InvalidMessage,
    InvalidType,
    CannotPerformOperation,
    SerializationError,
)
from .serializers import BaseSerializer, JSONSerializer, PickleSerializer
from .transport import AbstractTransport, MemoryTransport, AiohttpTransport

__all__ = (
    "ABSENT",
    "EncryptedCookie",
    "CookieConfig",
    "CookieOptions",
    "SecretKey",
    "generate_secret_key",
    "load_secret_key",
    "CookieError",
    "InvalidEnvelope",
    "InvalidMessage",
    "InvalidType",
    "CannotPerformOperation",
    "SerializationError",
    "BaseSerializer",
    "JSONSerializer",
    "PickleSerializer",
    "AbstractTransport",
    "MemoryTransport",
    "AiohttpTransport",
)
